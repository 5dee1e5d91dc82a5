"""Common utilities and shared components."""

from openvideogen.common.config import Settings, get_settings
from openvideogen.common.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
