"""
The MIT License (MIT) Copyright (c) 2024 - Naoyuki Tai

controller.py: display controller

One loop owns the browser on screen:

  probe primary -> pick URL -> launch browser -> wait for exit -> backoff -> ...

While the fallback page is up, a watchdog thread waits for the primary and
terminates the fallback browser once the primary answers. The loop then
comes around and picks the primary.
"""
import threading
import time
import traceback
from enum import Enum
from typing import Optional

from ..const import const
from ..lib import get_kiosk_logger
from . import BrowserLaunchError
from .browser import BrowserLauncher, BrowserSession
from .probe import Probe
from .watchdog import Watchdog


class DisplayState(Enum):
  Idle = 0
  ShowingPrimary = 1
  ShowingFallback = 2
  pass


class DisplayController(object):
  state: DisplayState
  current_url: Optional[str]
  launch_count: int
  watchdog_activations: int
  last_probe: Optional[bool]
  _reload_pending: bool
  _session: Optional[BrowserSession]
  _watchdog: Optional[Watchdog]
  _retired: list
  _lock: threading.Lock
  _stopping: threading.Event

  def __init__(self, config, probe=None, launcher=None, logger=None):
    self.config = config
    self.logger = logger if logger else get_kiosk_logger()
    self.probe = probe if probe else Probe(logger=self.logger)
    self.launcher = launcher if launcher else BrowserLauncher(config, logger=self.logger)
    self.state = DisplayState.Idle
    self.current_url = None
    self.launch_count = 0
    self.watchdog_activations = 0
    self.last_probe = None
    self._reload_pending = False
    self._session = None
    self._watchdog = None
    self._retired = []
    self._lock = threading.Lock()
    self._stopping = threading.Event()
    pass

  #
  # Watchdog handling. Start and cancel are both idempotent.
  #
  def start_watchdog(self):
    """Starts a watchdog unless one is already active. Returns True when started."""
    with self._lock:
      if self._watchdog is not None and self._watchdog.is_active():
        return False
      self._retire(self._watchdog)
      self._watchdog = Watchdog(self.probe, self.config.primary, self._watchdog_fired,
                                poll_interval=self.config.poll_interval,
                                poll_timeout=self.config.poll_timeout,
                                logger=self.logger)
      self.watchdog_activations += 1
      self._watchdog.start()
      pass
    return True

  def cancel_watchdog(self):
    """Cancels the watchdog if any. Returns True when an active one was cancelled."""
    with self._lock:
      watchdog = self._watchdog
      self._watchdog = None
      self._retire(watchdog)
      pass
    if watchdog is None:
      return False
    was_active = watchdog.is_active()
    watchdog.cancel()
    if was_active:
      self.logger.info("Watchdog cancelled.")
      pass
    return was_active

  def _retire(self, watchdog):
    # Caller holds the lock.
    self._retired = [w for w in self._retired if w.is_alive()]
    if watchdog is not None:
      self._retired.append(watchdog)
      pass
    pass

  def join_watchdogs(self, timeout):
    """Waits for replaced and cancelled watchdog threads to end. Returns True when none is left."""
    with self._lock:
      retired = list(self._retired)
      pass
    deadline = time.monotonic() + timeout
    for watchdog in retired:
      if watchdog is not threading.current_thread():
        watchdog.join(max(0.0, deadline - time.monotonic()))
        pass
      pass
    with self._lock:
      self._retire(None)
      return not self._retired

  def is_watchdog_active(self):
    with self._lock:
      return self._watchdog is not None and self._watchdog.is_active()

  def _watchdog_fired(self, watchdog):
    with self._lock:
      if watchdog is not self._watchdog or watchdog.cancelled:
        return
      session = self._session
      if session is None:
        self._reload_pending = True
        pass
      pass
    if session is None:
      # The fallback browser is not registered yet. run_once ends it once it is.
      self.logger.info("Primary is up before the fallback browser started.")
      return
    self.logger.info("Primary is up. Terminating fallback browser PID=%s to reload.", session.pid)
    if not session.terminate(grace_period=self.config.terminate_grace_period,
                             retries=self.config.terminate_retries):
      self.logger.warning("Fallback browser PID=%s survived termination. "
                          "It stays on screen until it exits by itself.", session.pid)
      pass
    pass

  #
  # Launch cycle
  #
  def select_target(self):
    """Decides which URL to show and starts or cancels the watchdog to match."""
    with self._lock:
      self._reload_pending = False
      pass
    forced = self.config.force_display
    if forced == const.primary or forced == const.fallback:
      self.cancel_watchdog()
      self.state = DisplayState.ShowingPrimary if forced == const.primary else DisplayState.ShowingFallback
      url = self.config.primary_url if forced == const.primary else self.config.fallback_url
      self.logger.info("Display forced to %s.", forced)
      return url

    reachable = self.probe.is_reachable(self.config.primary, self.config.probe_timeout)
    self.last_probe = reachable
    if reachable:
      self.logger.info("Primary %s is UP. Launching main app.", self.config.primary_url)
      self.cancel_watchdog()
      self.state = DisplayState.ShowingPrimary
      return self.config.primary_url

    self.logger.info("Primary %s is DOWN. Launching fallback %s.", self.config.primary_url, self.config.fallback_url)
    if self.start_watchdog():
      self.logger.info("Watchdog started.")
      pass
    self.state = DisplayState.ShowingFallback
    return self.config.fallback_url

  def run_once(self):
    """One launch, wait for exit, backoff cycle."""
    if self._stopping.is_set():
      return
    url = self.select_target()
    self.current_url = url

    session = None
    try:
      session = self.launcher.launch(url)
    except BrowserLaunchError as exc:
      self.logger.warning("Browser launch failed: %s", exc)
      pass

    if session is not None:
      with self._lock:
        self._session = session
        self.launch_count += 1
        stopping = self._stopping.is_set()
        reload_pending = self._reload_pending
        self._reload_pending = False
        pass
      if stopping or reload_pending:
        session.terminate(grace_period=self.config.terminate_grace_period,
                          retries=self.config.terminate_retries)
        pass
      returncode = session.wait()
      with self._lock:
        self._session = None
        pass
      self.logger.info("Browser exited with code %s at %s, restarting in %gs.",
                       returncode, time.strftime("%c"), self.config.backoff_interval)
      pass

    self._stopping.wait(self.config.backoff_interval)
    pass

  def run(self):
    """Runs until shutdown(). Nothing raised inside a cycle stops the loop."""
    self.logger.info("=== Kiosk display supervisor starting ===")
    while not self._stopping.is_set():
      try:
        self.run_once()
      except Exception:
        self.logger.error("Display cycle failed:\n%s", traceback.format_exc())
        self._stopping.wait(self.config.backoff_interval)
        pass
      pass
    self.cancel_watchdog()
    if not self.join_watchdogs(self.config.poll_timeout + self.config.poll_interval):
      self.logger.warning("A watchdog is still running at exit.")
      pass
    self.state = DisplayState.Idle
    self.logger.info("=== Kiosk display supervisor stopped ===")
    pass

  def shutdown(self):
    if self._stopping.is_set():
      return
    self.logger.info("Shutdown requested.")
    self._stopping.set()
    self.cancel_watchdog()
    with self._lock:
      session = self._session
      pass
    if session is not None:
      session.terminate(grace_period=self.config.terminate_grace_period,
                        retries=self.config.terminate_retries)
      pass
    pass

  @property
  def stopping(self):
    return self._stopping.is_set()

  def status(self):
    """Supervisor state for status.json."""
    with self._lock:
      session = self._session
      pass
    return {"state": self.state.name,
            "url": self.current_url,
            "primary": self.config.primary_url,
            "fallback": self.config.fallback_url,
            "display": self.config.force_display,
            "primaryReachable": self.last_probe,
            "browserPid": session.pid if session else None,
            "launches": self.launch_count,
            "watchdogActive": self.is_watchdog_active()}

  pass
