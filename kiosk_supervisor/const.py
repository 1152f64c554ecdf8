"""String constants.
Once defined, it becomes immutable.
"""


class _const:

  class ConstError(TypeError):
    pass

  def __setattr__(self, name, value):
    if name in self.__dict__:
      raise self.ConstError
    self.__dict__[name] = value

  def __delattr__(self, name):
    if name in self.__dict__:
      raise self.ConstError
    raise NameError
  pass

const = _const()

# Kiosk modes
const.chrome = 'chrome'
const.terminal = 'terminal'

# Display modes. auto follows the probe.
const.auto = 'auto'
const.primary = 'primary'
const.fallback = 'fallback'

# Kernel command line keys
const.kiosk_mode = 'kiosk_mode'
const.kiosk_url = 'kiosk_url'
const.kiosk_default_url = 'kiosk_default_url'
const.kiosk_display = 'kiosk_display'

# /etc/kiosk-mode.conf keys
const.KIOSK_MODE = 'KIOSK_MODE'
const.KIOSK_URL = 'KIOSK_URL'
const.DEFAULT_URL = 'DEFAULT_URL'
const.KIOSK_DISPLAY = 'KIOSK_DISPLAY'
const.KIOSK_BROWSER = 'KIOSK_BROWSER'
const.PROBE_TIMEOUT = 'PROBE_TIMEOUT'
const.POLL_INTERVAL = 'POLL_INTERVAL'
const.BACKOFF_INTERVAL = 'BACKOFF_INTERVAL'
const.LOG_FILE = 'LOG_FILE'

# Environment
const.KIOSK_LOG = 'KIOSK_LOG'
