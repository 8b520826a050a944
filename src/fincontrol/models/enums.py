"""
Модуль перечислений (enums) FinControl.

Содержит все Enum классы, используемые в моделях данных.
"""

from enum import Enum


class TransactionType(str, Enum):
    """
    Тип финансовой транзакции.

    Attributes:
        INCOME: Доход (поступление средств)
        EXPENSE: Расход (трата средств)
    """
    INCOME = "income"
    EXPENSE = "expense"


class InstallmentStatus(str, Enum):
    """
    Статус покупки в рассрочку.

    Attributes:
        ACTIVE: Есть неоплаченные взносы
        COMPLETED: Все взносы оплачены
        CANCELLED: Будущие взносы отменены пользователем
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class GoalStatus(str, Enum):
    """
    Статус финансовой цели.

    Attributes:
        ACTIVE: Накопление продолжается
        COMPLETED: Цель достигнута
    """
    ACTIVE = "active"
    COMPLETED = "completed"
