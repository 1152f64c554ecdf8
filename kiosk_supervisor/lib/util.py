import os
import logging
import logging.handlers

from ..const import const


def read_file(filepath):
  """Returns the content of file, or None when it cannot be read."""
  content = None
  try:
    with open(filepath) as f:
      content = f.read()
      pass
    pass
  except OSError:
    pass
  return content


global _logger_
_logger_ = None

LOG_FORMAT = '%(asctime)s %(processName)-10s/%(threadName)s %(name)s %(levelname)-8s %(message)s'

def default_log_filename():
  filename = os.environ.get(const.KIOSK_LOG)
  if filename:
    return filename
  if os.getuid() == 0:
    return '/var/log/kiosk-supervisor.log'
  return '/tmp/kiosk-development.log'

#
#
#
def setup_kiosk_logger(logger, log_level=None, filename=None):
  if filename is None:
    filename = default_log_filename()
    pass
  if log_level is None:
    log_level = logging.INFO
    pass
  klog_handler = logging.handlers.RotatingFileHandler(filename, maxBytes=2**24, backupCount=3)
  klog_formatter = logging.Formatter(LOG_FORMAT)
  klog_handler.setFormatter(klog_formatter)
  if logger:
    while len(logger.handlers):
      logger.removeHandler(logger.handlers[0])
      pass
    logger.addHandler(klog_handler)
    logger.setLevel(log_level)
    pass
  return logger


def get_kiosk_logger() -> logging.Logger:
  global _logger_
  if _logger_ is None:
    _logger_ = logging.getLogger('kiosk')
    setup_kiosk_logger(_logger_)
  return _logger_
