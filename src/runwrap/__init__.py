"""
runwrap ships prebuilt native command-line tools as Python console scripts.
"""

import logging

from runwrap.binwrap import BinWrap, binwrap
from runwrap.runwrap_config import RunwrapConfig
from runwrap.runwrap_exceptions import (
    ConfigurationError,
    DownloadError,
    RunwrapException,
    UnsupportedPlatformError,
)

logging.getLogger("runwrap").addHandler(logging.NullHandler())

__all__ = [
    "BinWrap",
    "binwrap",
    "RunwrapConfig",
    "RunwrapException",
    "ConfigurationError",
    "DownloadError",
    "UnsupportedPlatformError",
]
