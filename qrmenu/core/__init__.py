"""
Core module initialization.
Exports configuration, logging utilities and the error hierarchy.
"""

from qrmenu.core.config import (
    get_settings,
    setup_logging,
    Settings,
    EnvironmentMode,
    OrderingConfig,
)
from qrmenu.core.exceptions import QRMenuError

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "OrderingConfig",
    "QRMenuError",
]
