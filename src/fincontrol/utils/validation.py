import re
import logging

logger = logging.getLogger(__name__)

_MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_day_of_month(day: int, field_name: str = "day") -> int:
    """
    Валидация дня месяца (1-31).

    Args:
        day: Значение для проверки
        field_name: Название поля для сообщения об ошибке

    Raises:
        ValueError: Если день вне диапазона
    """
    if not 1 <= day <= 31:
        error_msg = f'Невалидный {field_name}: {day}. Ожидается число от 1 до 31'
        logger.error(error_msg)
        raise ValueError(error_msg)
    return day


def validate_month_key(value: str, field_name: str = "month_key") -> str:
    """
    Валидация ключа месяца формата YYYY-MM.

    Raises:
        ValueError: Если формат невалидный
    """
    if not _MONTH_KEY_PATTERN.match(value):
        error_msg = f'Невалидный формат {field_name}: {value}. Ожидается формат YYYY-MM'
        logger.error(error_msg)
        raise ValueError(error_msg)
    return value
