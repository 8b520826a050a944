"""
Сервис жизненного цикла покупок в рассрочку.

Содержит функции для:
- Подсчёта оплаченных взносов (paid count) и прогресса
- Формирования транзакции очередного взноса
- Планирования ручной оплаты и отмены последнего взноса
- Автоматической сверки рассрочек с транзакциями (reconcile_installments)
- Отвязки или удаления транзакций при удалении рассрочки

Количество оплаченных взносов всегда пересчитывается по транзакциям
(installment_id), поле status - согласованный с ним кэш.

Все функции чистые: они возвращают план изменений, который применяет
FinanceStore.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from fincontrol.models import (
    InstallmentPurchase,
    InstallmentStatus,
    Transaction,
    TransactionCreate,
    TransactionType,
)
from fincontrol.utils.dates import get_month_key

logger = logging.getLogger(__name__)


@dataclass
class InstallmentProgress:
    """
    Прогресс оплаты рассрочки.

    Attributes:
        paid_count: Количество оплаченных взносов
        remaining: Сколько взносов осталось (не меньше 0)
        percent: Процент оплаты (не больше 100)
    """
    paid_count: int
    remaining: int
    percent: Decimal


@dataclass
class InstallmentPayment:
    """Транзакция очередного взноса и рассрочка после её проведения."""
    transaction: TransactionCreate
    installment: InstallmentPurchase


@dataclass
class InstallmentUndo:
    """Транзакция для удаления и рассрочка после отмены взноса."""
    transaction: Transaction
    installment: InstallmentPurchase


@dataclass
class InstallmentReconciliation:
    """
    Результат сверки рассрочек.

    Attributes:
        transactions_to_create: Транзакции взносов, которые нужно создать
        installment_updates: Рассрочки с обновлённым статусом/месяцем генерации
    """
    transactions_to_create: List[TransactionCreate] = field(default_factory=list)
    installment_updates: List[InstallmentPurchase] = field(default_factory=list)


def get_related_transactions(installment_id: str, transactions: List[Transaction]) -> List[Transaction]:
    """Возвращает транзакции, связанные с рассрочкой."""
    return [t for t in transactions if t.installment_id == installment_id]


def get_paid_count(installment_id: str, transactions: List[Transaction]) -> int:
    """Количество оплаченных взносов = количество связанных транзакций."""
    return len(get_related_transactions(installment_id, transactions))


def get_installment_progress(
    installment: InstallmentPurchase,
    transactions: List[Transaction]
) -> InstallmentProgress:
    """
    Вычисляет прогресс оплаты рассрочки.

    Example:
        >>> progress = get_installment_progress(inst, transactions)  # 1 из 4
        >>> progress.paid_count, progress.remaining, progress.percent
        (1, 3, Decimal('25'))
    """
    paid_count = get_paid_count(installment.id, transactions)
    percent = Decimal(paid_count * 100) / Decimal(installment.total_installments)
    return InstallmentProgress(
        paid_count=paid_count,
        remaining=max(0, installment.total_installments - paid_count),
        percent=min(percent, Decimal('100')),
    )


def build_installment_transaction(
    installment: InstallmentPurchase,
    number: int,
    today: date
) -> TransactionCreate:
    """
    Формирует расходную транзакцию взноса номер number.

    Описание: "<описание покупки> (<номер>/<всего>)".
    """
    return TransactionCreate(
        description=f"{installment.description} ({number}/{installment.total_installments})",
        amount=installment.installment_amount,
        type=TransactionType.EXPENSE,
        date=today,
        category_id=installment.category_id,
        card_id=installment.card_id,
        installment_id=installment.id,
    )


def _status_after_payment(number: int, total: int) -> InstallmentStatus:
    if number >= total:
        return InstallmentStatus.COMPLETED
    return InstallmentStatus.ACTIVE


def plan_next_payment(
    installment: InstallmentPurchase,
    transactions: List[Transaction],
    today: date
) -> Optional[InstallmentPayment]:
    """
    Планирует проведение следующего взноса без учёта дня срока и месяца.

    Используется для ручной оплаты (досрочный взнос). Разрешён при любом
    статусе, пока оплачено меньше total взносов; отменённая рассрочка после
    оплаты снова становится активной (или завершённой на последнем взносе).

    Args:
        installment: Рассрочка
        transactions: Все существующие транзакции
        today: Дата проведения взноса

    Returns:
        InstallmentPayment или None
    """
    paid_count = get_paid_count(installment.id, transactions)
    if paid_count >= installment.total_installments:
        logger.info(
            f"Все взносы рассрочки ID {installment.id} уже оплачены "
            f"({paid_count}/{installment.total_installments})"
        )
        return None

    number = paid_count + 1
    return InstallmentPayment(
        transaction=build_installment_transaction(installment, number, today),
        installment=installment.model_copy(update={
            "status": _status_after_payment(number, installment.total_installments),
            "last_generated_month": get_month_key(today),
        }),
    )


def plan_undo_last_payment(
    installment: InstallmentPurchase,
    transactions: List[Transaction]
) -> Optional[InstallmentUndo]:
    """
    Планирует отмену последнего взноса.

    Последним считается взнос с самой поздней датой. Сортировка устойчивая,
    а транзакции хранятся от последней добавленной к первой, поэтому при
    равных датах выбирается последний добавленный взнос.

    Статус принудительно становится ACTIVE независимо от предыдущего
    (единственный путь из COMPLETED обратно в ACTIVE).

    Returns:
        InstallmentUndo или None, если связанных транзакций нет
    """
    related = get_related_transactions(installment.id, transactions)
    if not related:
        logger.info(f"У рассрочки ID {installment.id} нет оплаченных взносов для отмены")
        return None

    last_transaction = sorted(related, key=lambda t: t.date, reverse=True)[0]
    return InstallmentUndo(
        transaction=last_transaction,
        installment=installment.model_copy(update={"status": InstallmentStatus.ACTIVE}),
    )


def reconcile_installments(
    installments: List[InstallmentPurchase],
    transactions: List[Transaction],
    today: date
) -> InstallmentReconciliation:
    """
    Автоматическая сверка рассрочек при загрузке данных.

    Для каждой неотменённой рассрочки:
    - если оплачено не меньше total_installments, а статус не COMPLETED:
      статус исправляется на COMPLETED;
    - если статус COMPLETED - ничего не делается;
    - если в этом месяце взнос ещё не генерировался, день срока наступил и
      взносы остались - создаётся взнос paid_count+1, обновляется
      last_generated_month, статус становится COMPLETED для последнего взноса.

    Повторный запуск в том же месяце не создаёт второй взнос.

    Args:
        installments: Рассрочки пользователя
        transactions: Все существующие транзакции
        today: Текущая дата

    Returns:
        InstallmentReconciliation
    """
    month_key = get_month_key(today)
    result = InstallmentReconciliation()

    for installment in installments:
        if installment.status == InstallmentStatus.CANCELLED:
            continue

        paid_count = get_paid_count(installment.id, transactions)

        if paid_count >= installment.total_installments:
            if installment.status != InstallmentStatus.COMPLETED:
                logger.info(
                    f"Рассрочка ID {installment.id} полностью оплачена "
                    f"({paid_count}/{installment.total_installments}), статус исправлен"
                )
                result.installment_updates.append(
                    installment.model_copy(update={"status": InstallmentStatus.COMPLETED})
                )
            continue

        if installment.status == InstallmentStatus.COMPLETED:
            continue

        if installment.last_generated_month == month_key or today.day < installment.due_day:
            continue

        number = paid_count + 1
        result.transactions_to_create.append(build_installment_transaction(installment, number, today))
        result.installment_updates.append(installment.model_copy(update={
            "status": _status_after_payment(number, installment.total_installments),
            "last_generated_month": month_key,
        }))
        logger.info(
            f"Взнос {number}/{installment.total_installments} рассрочки "
            f"'{installment.description}' будет проведён за {month_key}"
        )

    return result


def split_installment_transactions(
    installment_id: str,
    transactions: List[Transaction]
) -> Tuple[List[Transaction], List[Transaction]]:
    """
    Делит транзакции на связанные с рассрочкой и остальные.

    Returns:
        (связанные, остальные) с сохранением порядка
    """
    related = []
    others = []
    for transaction in transactions:
        if transaction.installment_id == installment_id:
            related.append(transaction)
        else:
            others.append(transaction)
    return related, others


def unlink_installment_transactions(related: List[Transaction]) -> List[Transaction]:
    """Возвращает копии транзакций с очищенным installment_id (история сохраняется)."""
    return [t.model_copy(update={"installment_id": None}) for t in related]
