from .util import get_kiosk_logger, setup_kiosk_logger
