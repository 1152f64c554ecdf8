KIOSK_VERSION = "0.3.1"
