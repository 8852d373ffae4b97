"""Natural-language questions answered with validated, read-only SQL."""

from .core import get_logger, get_settings

__all__ = ["get_logger", "get_settings"]
