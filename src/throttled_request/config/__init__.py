"""Configuration module for the throttled request dispatcher."""

from .logging import (
    DISPATCH_LOG_FIELDS,
    JSONFormatter,
    TextFormatter,
    configure_logging,
    configure_logging_from_settings,
)
from .settings import ThrottleSettings, get_settings

__all__ = [
    "ThrottleSettings",
    "get_settings",
    "configure_logging",
    "configure_logging_from_settings",
    "DISPATCH_LOG_FIELDS",
    "JSONFormatter",
    "TextFormatter",
]
