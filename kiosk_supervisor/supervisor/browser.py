"""
The MIT License (MIT) Copyright (c) 2024 - Naoyuki Tai

browser.py: full screen browser process

The supervisor keeps the Popen handle of the browser it started and
terminates that process only. Nothing here looks processes up by name.
"""
import datetime
import glob
import json
import os
import shlex
import shutil
import subprocess
from typing import Optional

from ..lib import get_kiosk_logger
from . import BrowserLaunchError

CHROME_PREFERENCES = {
  "browser": {"check_default_browser": False},
  "credentials_enable_service": False,
  "profile": {"password_manager_enabled": False}
}


def prepare_profile(profile_dir):
  """Sets up the browser profile so that no first run dialog shows up."""
  default_dir = os.path.join(profile_dir, "Default")
  os.makedirs(default_dir, exist_ok=True)
  preferences = os.path.join(default_dir, "Preferences")
  if not os.path.exists(preferences):
    with open(preferences, "w") as prefs:
      json.dump(CHROME_PREFERENCES, prefs, indent=4)
      pass
    pass
  first_run = os.path.join(profile_dir, "First Run")
  if not os.path.exists(first_run):
    open(first_run, "a").close()
    pass
  pass


def clear_singleton_locks(profile_dir):
  """Removes the single instance markers a crashed browser leaves behind.
  With those in place, the next launch exits immediately."""
  removed = []
  for path in glob.glob(os.path.join(profile_dir, "Singleton*")):
    try:
      if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
      else:
        os.unlink(path)
        pass
      removed.append(path)
    except FileNotFoundError:
      pass
    pass
  return removed


class BrowserSession(object):
  """One browser process, tagged with the URL it was launched with."""
  args: list
  url: str
  log_file: Optional[str]
  process: Optional[subprocess.Popen]
  returncode: Optional[int]
  started_at: Optional[datetime.datetime]

  def __init__(self, args, url, log_file=None, logger=None):
    self.args = args
    self.url = url
    self.log_file = log_file
    self.logger = logger if logger else get_kiosk_logger()
    self.process = None
    self.returncode = None
    self.started_at = None
    self._output = None
    pass

  @property
  def pid(self):
    return self.process.pid if self.process else None

  def _open_output(self):
    if self.log_file:
      try:
        return open(self.log_file, "ab")
      except OSError as exc:
        self.logger.warning("Cannot open browser log %s: %s", self.log_file, exc)
        pass
      pass
    return subprocess.DEVNULL

  def _close_output(self):
    if self._output not in (None, subprocess.DEVNULL):
      self._output.close()
      pass
    self._output = None
    pass

  def start(self):
    self.logger.info("Start browser: " + shlex.join(self.args))
    self._output = self._open_output()
    try:
      self.process = subprocess.Popen(self.args,
                                      stdout=self._output,
                                      stderr=subprocess.STDOUT,
                                      stdin=subprocess.DEVNULL)
    except OSError as exc:
      self._close_output()
      raise BrowserLaunchError("%s: %s" % (self.args[0], exc))
    self.started_at = datetime.datetime.now()
    self.logger.info("Browser PID=%d showing %s", self.process.pid, self.url)
    return self

  def wait(self):
    """Blocks until the browser exits for whatever reason."""
    if self.process is None:
      return self.returncode
    self.returncode = self.process.wait()
    self._close_output()
    return self.returncode

  def is_running(self):
    return self.process is not None and self.process.poll() is None

  def terminate(self, grace_period=1.0, retries=10):
    """Asks the browser to quit, then kills it.

    SIGTERM is sent up to `retries` times, each followed by `grace_period`
    seconds of waiting. After that SIGKILL is sent once. Returns True when
    the process is gone.
    """
    if not self.is_running():
      return True
    process = self.process
    for attempt in range(retries):
      try:
        self.logger.info("Sending SIGTERM to browser PID=%d (attempt %d)", process.pid, attempt + 1)
        process.terminate()
        process.wait(timeout=grace_period)
        return True
      except subprocess.TimeoutExpired:
        pass
      except OSError as exc:
        self.logger.warning("SIGTERM to browser PID=%d failed: %s", process.pid, exc)
        pass
      pass

    self.logger.warning("Browser PID=%d still running after %d attempts. Using SIGKILL.", process.pid, retries)
    try:
      process.kill()
      process.wait(timeout=grace_period)
      return True
    except (OSError, subprocess.TimeoutExpired) as exc:
      self.logger.warning("Giving up on browser PID=%d: %s", process.pid, exc)
      pass
    return False

  pass


class BrowserLauncher(object):
  """Builds browser command lines and starts sessions."""

  def __init__(self, config, logger=None):
    self.config = config
    self.logger = logger if logger else get_kiosk_logger()
    self._prepared = False
    pass

  def build_args(self, url):
    return [self.config.browser] + list(self.config.browser_flags) + [
      "--user-data-dir=" + self.config.profile_dir,
      "--app=" + url]

  def prepare(self):
    try:
      prepare_profile(self.config.profile_dir)
      self._prepared = True
    except OSError as exc:
      self.logger.warning("Preparing browser profile %s failed: %s", self.config.profile_dir, exc)
      pass
    pass

  def launch(self, url) -> BrowserSession:
    if not self._prepared:
      self.prepare()
      pass
    try:
      for path in clear_singleton_locks(self.config.profile_dir):
        self.logger.info("Removed stale lock %s", path)
        pass
      pass
    except OSError as exc:
      self.logger.warning("Clearing browser locks failed: %s", exc)
      pass
    session = BrowserSession(self.build_args(url), url,
                             log_file=self.config.browser_log_file,
                             logger=self.logger)
    return session.start()

  pass
