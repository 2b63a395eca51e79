"""
Utility modules for the evaluation engine.
"""

from .formatting import format_currency, format_number, format_percent, format_value
from .config import Config

__all__ = ["format_currency", "format_number", "format_percent", "format_value", "Config"]
