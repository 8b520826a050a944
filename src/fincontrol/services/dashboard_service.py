"""
Сервис агрегатов для панели управления.

Содержит функции для:
- Итогов месяца (доходы, расходы, разница)
- Расходов месяца по категориям
- Использования кредитных карт и доступного лимита
- Напоминаний о приближающихся фиксированных расходах
- Прогресса финансовых целей

Только чтение: функции не изменяют состояние.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from fincontrol.config import settings
from fincontrol.models import (
    Category,
    CreditCard,
    FinancialGoal,
    RecurringExpense,
    Transaction,
    TransactionType,
)
from fincontrol.utils.dates import get_month_key, is_in_month

logger = logging.getLogger(__name__)


@dataclass
class MonthSummary:
    """Итоги месяца."""
    month_key: str
    income: Decimal
    expense: Decimal

    @property
    def net(self) -> Decimal:
        """Разница доходов и расходов за месяц."""
        return self.income - self.expense


@dataclass
class CardUsage:
    """
    Использование кредитной карты.

    Attributes:
        card: Карта
        usage: Сумма расходов по карте
        invoice: Сумма счёта (ручное значение, если задано, иначе usage)
        available_limit: Лимит за вычетом счёта
    """
    card: CreditCard
    usage: Decimal
    invoice: Decimal
    available_limit: Decimal


@dataclass
class GoalProgress:
    """Прогресс финансовой цели."""
    goal: FinancialGoal
    percent: Decimal
    remaining: Decimal


def get_month_summary(transactions: List[Transaction], month_key: str) -> MonthSummary:
    """
    Суммирует доходы и расходы за месяц.

    Args:
        transactions: Все транзакции
        month_key: Месяц в формате YYYY-MM

    Returns:
        MonthSummary
    """
    income = Decimal('0')
    expense = Decimal('0')
    for transaction in transactions:
        if not is_in_month(transaction.date, month_key):
            continue
        if transaction.type == TransactionType.INCOME:
            income += transaction.amount
        else:
            expense += transaction.amount

    logger.debug(f"Итоги {month_key}: доходы {income}, расходы {expense}")
    return MonthSummary(month_key=month_key, income=income, expense=expense)


def get_expenses_by_category(
    transactions: List[Transaction],
    categories: List[Category],
    month_key: str
) -> List[Tuple[Category, Decimal]]:
    """
    Расходы месяца по категориям.

    Категории без расходов в результат не попадают; порядок - как в списке категорий.
    """
    result = []
    for category in categories:
        total = sum(
            (
                t.amount for t in transactions
                if t.type == TransactionType.EXPENSE
                and t.category_id == category.id
                and is_in_month(t.date, month_key)
            ),
            Decimal('0'),
        )
        if total > 0:
            result.append((category, total))
    return result


def calculate_card_usage(card_id: str, transactions: List[Transaction]) -> Decimal:
    """
    Сумма всех расходов по карте.

    Расчётный период карты (closing_day) не учитывается: считается
    вся неоплаченная сумма.
    """
    return sum(
        (t.amount for t in transactions if t.card_id == card_id and t.type == TransactionType.EXPENSE),
        Decimal('0'),
    )


def get_card_usage(card: CreditCard, transactions: List[Transaction]) -> CardUsage:
    """Использование карты с учётом суммы счёта, введённой вручную."""
    usage = calculate_card_usage(card.id, transactions)
    invoice = card.manual_invoice_value if card.manual_invoice_value is not None else usage
    return CardUsage(
        card=card,
        usage=usage,
        invoice=invoice,
        available_limit=card.limit - invoice,
    )


def get_near_due_recurring(
    expenses: List[RecurringExpense],
    today: date,
    window_days: Optional[int] = None
) -> List[RecurringExpense]:
    """
    Активные фиксированные расходы, срок которых наступает в ближайшие window_days
    дней и которые ещё не учтены в текущем месяце.

    Args:
        expenses: Фиксированные расходы
        today: Текущая дата
        window_days: Окно напоминания (по умолчанию settings.near_due_window_days)
    """
    if window_days is None:
        window_days = settings.near_due_window_days

    month_key = get_month_key(today)
    result = []
    for expense in expenses:
        if not expense.active:
            continue
        diff = expense.due_day - today.day
        if 0 <= diff <= window_days and expense.last_generated_month != month_key:
            result.append(expense)
    return result


def get_goal_progress(goal: FinancialGoal) -> GoalProgress:
    """Прогресс цели: процент (не больше 100) и оставшаяся сумма (не меньше 0)."""
    percent = min(goal.current_amount * 100 / goal.target_amount, Decimal('100'))
    remaining = max(goal.target_amount - goal.current_amount, Decimal('0'))
    return GoalProgress(goal=goal, percent=percent, remaining=remaining)
