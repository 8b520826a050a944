"""
Модуль централизованной обработки ошибок.

Сверка и учётные правила не должны пробрасывать исключения наверх:
ошибка логируется, вызывающий код получает значение по умолчанию.
"""

import logging
import traceback
from functools import wraps
from typing import Any, Callable, Optional

from fincontrol.utils.exceptions import (
    ValidationError,
    BusinessLogicError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


class ErrorHandler:
    """
    Класс для централизованной обработки ошибок.
    """

    def __init__(self, notify: Optional[Callable[[str], None]] = None):
        # notify - необязательный приёмник сообщения для пользователя
        self.notify = notify

    def handle(self, exception: Exception, context_message: str = "") -> str:
        """
        Обрабатывает возникшее исключение: логирует и формирует сообщение пользователю.

        Args:
            exception: Исключение, которое нужно обработать.
            context_message: Дополнительное сообщение о контексте ошибки.

        Returns:
            Понятное пользователю сообщение об ошибке.
        """
        error_message = self.get_user_message(exception)
        log_message = f"{context_message}: {exception}" if context_message else str(exception)

        if isinstance(exception, (ValidationError, BusinessLogicError)):
            logger.warning(f"User error: {log_message}")
        else:
            logger.error(f"System error: {log_message}\n{traceback.format_exc()}")

        if self.notify is not None:
            self.notify(error_message)

        return error_message

    @staticmethod
    def get_user_message(exception: Exception) -> str:
        """Возвращает понятное пользователю сообщение об ошибке."""
        if isinstance(exception, ValidationError):
            return f"Ошибка ввода: {exception}"
        elif isinstance(exception, BusinessLogicError):
            return f"Невозможно выполнить операцию: {exception}"
        elif isinstance(exception, PersistenceError):
            return "Произошла ошибка при сохранении данных. Попробуйте позже."
        else:
            return f"Произошла непредвиденная ошибка: {exception}"


def safe_handler(default: Any = None, notify: Optional[Callable[[str], None]] = None):
    """
    Декоратор для операций, ошибки которых не должны доходить до вызывающего кода.
    Перехватывает исключение, передаёт его в ErrorHandler и возвращает default.

    Args:
        default: Значение, возвращаемое при ошибке.
        notify: Необязательный приёмник сообщения для пользователя.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                ErrorHandler(notify).handle(e, context_message=f"Error in {func.__name__}")
                return default
        return wrapper
    return decorator
