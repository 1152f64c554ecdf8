"""
The MIT License (MIT) Copyright (c) 2024 - Naoyuki Tai

Kiosk display supervisor.

Keeps exactly one full screen browser on the kiosk display, pointed at the
primary application when it answers and at the fallback page when it does
not.
"""


class KioskError(Exception):
  pass


class ConfigError(KioskError):
  pass


class BrowserLaunchError(KioskError):
  pass
