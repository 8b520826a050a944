"""
Сервис генерации транзакций фиксированных расходов.

Содержит функции для:
- Поиска уже учтённой транзакции фиксированного расхода в текущем месяце
- Формирования транзакции фиксированного расхода
- Сверки списка фиксированных расходов с транзакциями (reconcile_recurring)

Все функции чистые: они не изменяют входные данные и не обращаются к
хранилищу. Результат сверки применяет FinanceStore.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from fincontrol.models import (
    RecurringExpense,
    Transaction,
    TransactionCreate,
    TransactionType,
)
from fincontrol.utils.dates import get_month_key, is_in_month

logger = logging.getLogger(__name__)

RECURRING_DESCRIPTION_PREFIX = "(Fixo) "

# Допуск сравнения сумм при поиске по отпечатку
FINGERPRINT_AMOUNT_TOLERANCE = Decimal('0.01')


@dataclass
class RecurringReconciliation:
    """
    Результат сверки фиксированных расходов.

    Attributes:
        transactions_to_create: Транзакции, которые нужно создать
        expense_updates: Фиксированные расходы с обновлённым last_generated_month
    """
    transactions_to_create: List[TransactionCreate] = field(default_factory=list)
    expense_updates: List[RecurringExpense] = field(default_factory=list)


def find_linked_transaction(
    expense: RecurringExpense,
    transactions: Iterable[Transaction],
    month_key: str
) -> Optional[Transaction]:
    """
    Ищет транзакцию месяца по прямой ссылке recurring_expense_id.

    Это основной (достоверный) способ сопоставления.
    """
    for transaction in transactions:
        if transaction.recurring_expense_id == expense.id and is_in_month(transaction.date, month_key):
            return transaction
    return None


def find_fingerprint_match(
    expense: RecurringExpense,
    transactions: Iterable[Transaction],
    month_key: str
) -> Optional[Transaction]:
    """
    Ищет транзакцию месяца по отпечатку: описание содержит название
    расхода, а сумма отличается меньше чем на 0.01.

    Резервный способ для данных, перенесённых без recurring_expense_id.
    """
    for transaction in transactions:
        if not is_in_month(transaction.date, month_key):
            continue
        if expense.name not in transaction.description:
            continue
        if abs(transaction.amount - expense.amount) < FINGERPRINT_AMOUNT_TOLERANCE:
            return transaction
    return None


def build_recurring_transaction(expense: RecurringExpense, today: date) -> TransactionCreate:
    """Формирует расходную транзакцию фиксированного расхода, датированную today."""
    return TransactionCreate(
        description=f"{RECURRING_DESCRIPTION_PREFIX}{expense.name}",
        amount=expense.amount,
        type=TransactionType.EXPENSE,
        date=today,
        category_id=expense.category_id,
        is_recurring=True,
        recurring_expense_id=expense.id,
    )


def reconcile_recurring(
    expenses: List[RecurringExpense],
    transactions: List[Transaction],
    today: date
) -> RecurringReconciliation:
    """
    Определяет, какие фиксированные расходы нужно провести в текущем месяце.

    Для каждого активного расхода:
    1. Если last_generated_month равен текущему месяцу - пропуск.
    2. Если в текущем месяце уже есть транзакция (по ссылке или по отпечатку):
       только обновляется last_generated_month.
    3. Если совпадения нет и день срока наступил - создаётся транзакция
       "(Fixo) <название>" на сегодня и обновляется last_generated_month.
    4. Если срок ещё не наступил - ничего не происходит.

    День срока не ограничивается длиной месяца: расход с днём 31 в
    30-дневном месяце не генерируется. Пропущенные месяцы не досоздаются.

    Args:
        expenses: Фиксированные расходы пользователя
        transactions: Все существующие транзакции
        today: Текущая дата

    Returns:
        RecurringReconciliation с транзакциями для создания и обновлёнными расходами
    """
    month_key = get_month_key(today)
    result = RecurringReconciliation()

    for expense in expenses:
        if not expense.active:
            continue

        if expense.last_generated_month == month_key:
            continue

        match = find_linked_transaction(expense, transactions, month_key)
        if match is None:
            match = find_fingerprint_match(expense, transactions, month_key)
            if match is not None:
                logger.debug(
                    f"Фиксированный расход '{expense.name}' сопоставлен по отпечатку "
                    f"с транзакцией ID {match.id}"
                )

        if match is not None:
            result.expense_updates.append(
                expense.model_copy(update={"last_generated_month": month_key})
            )
            continue

        if today.day >= expense.due_day:
            result.transactions_to_create.append(build_recurring_transaction(expense, today))
            result.expense_updates.append(
                expense.model_copy(update={"last_generated_month": month_key})
            )
            logger.info(
                f"Фиксированный расход '{expense.name}' ({expense.amount}) "
                f"будет проведён за {month_key}"
            )

    return result
