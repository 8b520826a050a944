"""
Учётные правила, связывающие сущности между собой.

Содержит функции для:
- Расчёта доходов/расходов за всё время и текущего баланса
- Вычисления смещения баланса по желаемому значению
- Изменения накоплений финансовой цели при добавлении/удалении дохода
- Проверки использования категории перед удалением
- Отвязки транзакций от удаляемой кредитной карты
"""

import logging
from decimal import Decimal
from typing import List, Tuple

from fincontrol.models import (
    FinancialGoal,
    RecurringExpense,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


def get_all_time_totals(transactions: List[Transaction]) -> Tuple[Decimal, Decimal]:
    """
    Суммирует доходы и расходы за всё время.

    Returns:
        (доходы, расходы)
    """
    total_income = sum(
        (t.amount for t in transactions if t.type == TransactionType.INCOME), Decimal('0')
    )
    total_expense = sum(
        (t.amount for t in transactions if t.type == TransactionType.EXPENSE), Decimal('0')
    )
    return total_income, total_expense


def get_net_flow(transactions: List[Transaction]) -> Decimal:
    """Чистый поток за всё время: доходы - расходы."""
    total_income, total_expense = get_all_time_totals(transactions)
    return total_income - total_expense


def compute_balance(balance_offset: Decimal, transactions: List[Transaction]) -> Decimal:
    """
    Отображаемый баланс = смещение + доходы - расходы.

    Баланс никогда не хранится, только вычисляется.
    """
    return balance_offset + get_net_flow(transactions)


def solve_balance_offset(target_balance: Decimal, transactions: List[Transaction]) -> Decimal:
    """
    Вычисляет смещение, при котором отображаемый баланс равен target_balance.

    Позволяет задать абсолютный баланс счёта без изменения истории транзакций:
    offset = target - (доходы - расходы).
    """
    return target_balance - get_net_flow(transactions)


def is_goal_contribution(transaction: Transaction) -> bool:
    """Доходная транзакция, привязанная к цели, считается взносом в цель."""
    return transaction.goal_id is not None and transaction.type == TransactionType.INCOME


def apply_goal_contribution(
    goals: List[FinancialGoal],
    transaction: Transaction,
    sign: int = 1
) -> Tuple[List[FinancialGoal], List[FinancialGoal]]:
    """
    Изменяет накопления цели на сумму транзакции.

    Args:
        goals: Текущие цели
        transaction: Добавляемая (sign=1) или удаляемая (sign=-1) транзакция
        sign: Направление изменения

    Returns:
        (новый список целей, изменённые цели)
    """
    if not is_goal_contribution(transaction):
        return goals, []

    updated_goals = []
    changed = []
    for goal in goals:
        if goal.id == transaction.goal_id:
            goal = goal.model_copy(update={
                "current_amount": goal.current_amount + sign * transaction.amount
            })
            changed.append(goal)
        updated_goals.append(goal)

    if not changed:
        logger.warning(f"Цель ID {transaction.goal_id} для транзакции ID {transaction.id} не найдена")

    return updated_goals, changed


def is_category_in_use(
    category_id: str,
    transactions: List[Transaction],
    recurring_expenses: List[RecurringExpense]
) -> bool:
    """Категория используется, если на неё ссылается транзакция или фиксированный расход."""
    if any(t.category_id == category_id for t in transactions):
        return True
    return any(r.category_id == category_id for r in recurring_expenses)


def unlink_card(
    card_id: str,
    transactions: List[Transaction]
) -> Tuple[List[Transaction], List[Transaction]]:
    """
    Очищает card_id у транзакций удаляемой карты.

    Returns:
        (новый список транзакций, изменённые транзакции)
    """
    updated = []
    changed = []
    for transaction in transactions:
        if transaction.card_id == card_id:
            transaction = transaction.model_copy(update={"card_id": None})
            changed.append(transaction)
        updated.append(transaction)
    return updated, changed
