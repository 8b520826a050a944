"""Утилиты приложения."""

from fincontrol.utils.logger import setup_logging, get_logger
from fincontrol.utils.error_handler import ErrorHandler, safe_handler
from fincontrol.utils.dates import get_month_key, is_in_month
from fincontrol.utils.exceptions import (
    FinControlError,
    ValidationError,
    BusinessLogicError,
    PersistenceError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "ErrorHandler",
    "safe_handler",
    "get_month_key",
    "is_in_month",
    "FinControlError",
    "ValidationError",
    "BusinessLogicError",
    "PersistenceError",
]
