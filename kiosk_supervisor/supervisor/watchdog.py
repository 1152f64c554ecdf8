import threading

from ..lib import get_kiosk_logger
from .probe import endpoint_url


class Watchdog(threading.Thread):
  """Waits for the primary service while the fallback page is on screen.

  Polls the probe until the primary answers, then calls on_reachable once
  and ends. cancel() is checked at every poll and before acting, so a
  cancelled watchdog never calls on_reachable.
  """
  _cancelled: threading.Event

  def __init__(self, probe, endpoint, on_reachable, poll_interval=1.0, poll_timeout=3.0, logger=None):
    super().__init__(name="watchdog", daemon=True)
    self.probe = probe
    self.endpoint = endpoint
    self.on_reachable = on_reachable
    self.poll_interval = poll_interval
    self.poll_timeout = poll_timeout
    self.logger = logger if logger else get_kiosk_logger()
    self.polls = 0
    self.fired = False
    self._cancelled = threading.Event()
    pass

  def cancel(self):
    self._cancelled.set()
    pass

  @property
  def cancelled(self):
    return self._cancelled.is_set()

  def is_active(self):
    return self.is_alive() and not self.cancelled and not self.fired

  def run(self):
    url = endpoint_url(self.endpoint)
    self.logger.info("Watchdog: waiting for %s", url)
    while not self.cancelled:
      self.polls += 1
      if self.probe.is_reachable(self.endpoint, self.poll_timeout):
        if self.cancelled:
          break
        self.logger.info("Watchdog: %s is up after %d polls.", url, self.polls)
        self.fired = True
        try:
          self.on_reachable(self)
        except Exception:
          self.logger.exception("Watchdog: terminating the browser failed")
          pass
        return
      self._cancelled.wait(self.poll_interval)
      pass
    self.logger.info("Watchdog: cancelled.")
    pass

  pass
