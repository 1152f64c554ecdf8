# Kiosk Supervisor
#
# Author: Naoyuki Tai

"""
The top-level :mod:`kiosk_supervisor` module.
"""
name = "kiosk_supervisor"

from .version import *

# Semi-standard module versioning.
__version__ = KIOSK_VERSION
