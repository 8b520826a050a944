"""
Работа с ключами месяцев.

Ключ месяца - строка "YYYY-MM", по которой ведётся учёт сгенерированных
фиксированных расходов и взносов рассрочки.
"""

from datetime import date


def get_month_key(target_date: date) -> str:
    """
    Возвращает ключ месяца для даты.

    Example:
        >>> get_month_key(date(2025, 3, 7))
        '2025-03'
    """
    return f"{target_date.year}-{target_date.month:02d}"


def is_in_month(target_date: date, month_key: str) -> bool:
    """Проверяет, относится ли дата к месяцу month_key."""
    return get_month_key(target_date) == month_key
