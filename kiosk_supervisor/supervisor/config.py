"""
The MIT License (MIT) Copyright (c) 2024 - Naoyuki Tai

config.py: kiosk supervisor configuration

The configuration is read once when the supervisor starts. Later sources
override earlier ones:

  defaults < /proc/cmdline < /etc/kiosk-mode.conf < command line flags

A bad value is logged and ignored. The kiosk display must come up even when
the configuration is broken.
"""
import datetime
import os
import re
import sys
import urllib.parse
from typing import Optional

from ..const import const
from ..lib import get_kiosk_logger
from ..lib.util import read_file
from . import ConfigError
from .probe import ServiceEndpoint

KIOSK_MODE_CONF = "/etc/kiosk-mode.conf"
PROC_CMDLINE = "/proc/cmdline"
FSTAB = "/etc/fstab"

KIOSK_MODES = (const.chrome, const.terminal)
DISPLAY_MODES = (const.auto, const.primary, const.fallback)

DEFAULT_BROWSER_FLAGS = [
  "--kiosk",
  "--no-sandbox",
  "--disable-gpu",
  "--disable-dev-shm-usage",
  "--no-first-run",
  "--no-default-browser-check",
  "--disable-infobars",
  "--disable-translate",
  "--disable-features=TranslateUI",
]

# kernel cmdline key -> config attribute
CMDLINE_KEYS = {
  const.kiosk_mode: "kiosk_mode",
  const.kiosk_url: "primary_url",
  const.kiosk_default_url: "fallback_url",
  const.kiosk_display: "force_display",
}

# kiosk-mode.conf key -> config attribute
CONF_KEYS = {
  const.KIOSK_MODE: "kiosk_mode",
  const.KIOSK_URL: "primary_url",
  const.DEFAULT_URL: "fallback_url",
  const.KIOSK_DISPLAY: "force_display",
  const.KIOSK_BROWSER: "browser",
  const.PROBE_TIMEOUT: "probe_timeout",
  const.POLL_INTERVAL: "poll_interval",
  const.BACKOFF_INTERVAL: "backoff_interval",
  const.LOG_FILE: "log_file",
}

conf_line_re = re.compile(r'^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$')
installed_re = re.compile(r'^UUID=', re.MULTILINE)
quoted_re = re.compile(r'''^(["'])(.*?)\1''')


def _url(value):
  value = value.strip()
  parts = urllib.parse.urlsplit(value)
  if parts.scheme not in ("http", "https") or not parts.netloc:
    raise ConfigError("'%s' is not an http URL" % value)
  return value


def _seconds(value):
  if isinstance(value, datetime.timedelta):
    value = value.total_seconds()
    pass
  try:
    seconds = float(value)
  except (TypeError, ValueError):
    raise ConfigError("'%s' is not a number of seconds" % value)
  if seconds <= 0:
    raise ConfigError("'%s' must be positive" % value)
  return seconds


def _count(value):
  try:
    count = int(value)
  except (TypeError, ValueError):
    raise ConfigError("'%s' is not a count" % value)
  if count < 1:
    raise ConfigError("'%s' must be at least 1" % value)
  return count


def _choice(choices):
  def validate(value):
    value = str(value).strip().lower()
    if value not in choices:
      raise ConfigError("'%s' is not one of %s" % (value, ", ".join(choices)))
    return value
  return validate


def _text(value):
  value = str(value).strip()
  if not value:
    raise ConfigError("empty value")
  return value


class SupervisorConfig(object):
  """Typed supervisor configuration."""
  primary_url: str
  fallback_url: str
  probe_timeout: float
  poll_interval: float
  poll_timeout: float
  backoff_interval: float
  terminate_grace_period: float
  terminate_retries: int
  browser: str
  browser_flags: list
  profile_dir: str
  browser_log_file: str
  log_file: Optional[str]
  kiosk_mode: str
  force_display: str
  terminal_command: Optional[list]
  terminal_wait_tries: int
  terminal_wait_interval: float
  fallback_root: Optional[str]
  serve_fallback: bool

  validators = {
    "primary_url": _url,
    "fallback_url": _url,
    "probe_timeout": _seconds,
    "poll_interval": _seconds,
    "poll_timeout": _seconds,
    "backoff_interval": _seconds,
    "terminate_grace_period": _seconds,
    "terminate_retries": _count,
    "terminal_wait_tries": _count,
    "terminal_wait_interval": _seconds,
    "browser": _text,
    "log_file": _text,
    "kiosk_mode": _choice(KIOSK_MODES),
    "force_display": _choice(DISPLAY_MODES),
  }

  def __init__(self, **kwargs):
    home = os.path.expanduser("~")
    self.primary_url = "http://127.0.0.1:8090"
    self.fallback_url = "http://127.0.0.1:80"
    self.probe_timeout = 3.0
    self.poll_interval = 1.0
    self.poll_timeout = 3.0
    self.backoff_interval = 2.0
    self.terminate_grace_period = 1.0
    self.terminate_retries = 10
    self.browser = "google-chrome-stable"
    self.browser_flags = list(DEFAULT_BROWSER_FLAGS)
    self.profile_dir = os.path.join(home, ".config", "google-chrome")
    self.browser_log_file = os.path.join(home, "chrome.log")
    self.log_file = None
    self.kiosk_mode = const.chrome
    self.force_display = const.auto
    self.terminal_command = None
    self.terminal_wait_tries = 60
    self.terminal_wait_interval = 2.0
    self.fallback_root = None
    self.serve_fallback = False
    for name, value in kwargs.items():
      self.set_value(name, value)
      pass
    pass

  def set_value(self, name, value):
    """Sets one option. Raises ConfigError when the value is unusable."""
    if not hasattr(self, name) or name == "validators":
      raise ConfigError("unknown option '%s'" % name)
    validator = self.validators.get(name)
    if validator:
      value = validator(value)
      pass
    setattr(self, name, value)
    pass

  @property
  def primary(self) -> ServiceEndpoint:
    return ServiceEndpoint(const.primary, self.primary_url)

  @property
  def fallback(self) -> ServiceEndpoint:
    return ServiceEndpoint(const.fallback, self.fallback_url)

  def get_terminal_command(self):
    if self.terminal_command:
      return list(self.terminal_command)
    return ["xterm", "-maximized", "-fullscreen",
            "-fa", "Monospace", "-fs", "14",
            "-bg", "black", "-fg", "green",
            "-title", "Kiosk Terminal",
            "-e", sys.executable, "-m", "kiosk_supervisor", "status", "--watch"]

  def fallback_address(self):
    """(host, port) the fallback page server listens on."""
    parts = urllib.parse.urlsplit(self.fallback_url)
    port = parts.port
    if port is None:
      port = 443 if parts.scheme == "https" else 80
      pass
    return (parts.hostname or "127.0.0.1", port)

  def __repr__(self):
    return "SupervisorConfig(mode=%s, display=%s, primary=%s, fallback=%s)" % (
      self.kiosk_mode, self.force_display, self.primary_url, self.fallback_url)

  pass


def is_installed_system(fstab_text):
  """A system installed on disk mounts its root by UUID. The live session does not."""
  return bool(fstab_text) and installed_re.search(fstab_text) is not None


def parse_cmdline(cmdline):
  """Picks the kiosk options off the kernel command line."""
  options = {}
  if not cmdline:
    return options
  for key in CMDLINE_KEYS:
    matched = re.search(r'(?:^|\s)' + re.escape(key) + r'=(\S+)', cmdline)
    if matched:
      options[key] = matched.group(1)
      pass
    pass
  return options


def _unquote(value):
  value = value.strip()
  quoted = quoted_re.match(value)
  if quoted:
    return quoted.group(2)
  # unquoted value ends at a comment
  return value.split('#', 1)[0].strip()


def parse_conf(text):
  """Parses KEY="value" lines of kiosk-mode.conf into a dict."""
  options = {}
  if not text:
    return options
  for line in text.splitlines():
    stripped = line.strip()
    if not stripped or stripped.startswith('#'):
      continue
    matched = conf_line_re.match(stripped)
    if matched:
      options[matched.group(1)] = _unquote(matched.group(2))
      pass
    pass
  return options


def _apply(config, name, value, source, logger):
  try:
    config.set_value(name, value)
  except ConfigError as exc:
    logger.warning("%s: ignoring %s=%s (%s)", source, name, value, exc)
    return False
  return True


def load_config(conf_file=KIOSK_MODE_CONF,
                cmdline_file=PROC_CMDLINE,
                fstab_file=FSTAB,
                overrides=None) -> SupervisorConfig:
  """Builds the configuration for this supervisor start."""
  logger = get_kiosk_logger()
  config = SupervisorConfig()

  # Installed on hard disk -> chrome. Live session -> terminal, for installation.
  config.kiosk_mode = const.chrome if is_installed_system(read_file(fstab_file)) else const.terminal

  for key, value in parse_cmdline(read_file(cmdline_file)).items():
    _apply(config, CMDLINE_KEYS[key], value, cmdline_file, logger)
    pass

  for key, value in parse_conf(read_file(conf_file)).items():
    name = CONF_KEYS.get(key)
    if name is None:
      logger.info("%s: unknown key %s", conf_file, key)
      continue
    _apply(config, name, value, conf_file, logger)
    pass

  if overrides:
    for name, value in overrides.items():
      if value is None:
        continue
      _apply(config, name, value, "command line", logger)
      pass
    pass

  logger.info("Configuration: %r", config)
  return config


def write_conf_value(conf_file, key, value):
  """Sets KEY="value" in kiosk-mode.conf and keeps every other line as is.

  Used by the operator to switch modes for the next start. Returns True when
  the file changed. OSError from writing goes to the caller.
  """
  text = read_file(conf_file)
  lines = text.splitlines() if text else []
  generated = '%s="%s"' % (key, value)
  found = False
  updated = False
  for i_line in range(len(lines)):
    matched = conf_line_re.match(lines[i_line].strip())
    if matched and matched.group(1) == key:
      found = True
      if lines[i_line] != generated:
        lines[i_line] = generated
        updated = True
        pass
      pass
    pass
  if not found:
    lines.append(generated)
    updated = True
    pass
  if updated:
    with open(conf_file, "w") as conf:
      conf.write("\n".join(lines + [""]))
      pass
    get_kiosk_logger().info("%s: %s", conf_file, generated)
    pass
  return updated
