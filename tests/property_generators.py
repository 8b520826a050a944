"""
Генераторы данных для property-based тестирования с Hypothesis.

Содержит стратегии генерации для:
- Финансовых данных (суммы, даты, описания)
- Фиксированных расходов и рассрочек
- Граничных случаев (день 31, короткие месяцы)
"""
import calendar
from datetime import date
from decimal import Decimal

from hypothesis import strategies as st

from fincontrol.models import TransactionType


# =============================================================================
# Базовые генераторы для финансовых данных
# =============================================================================

def valid_amounts() -> st.SearchStrategy[Decimal]:
    """
    Генерирует валидные суммы для транзакций.

    Returns:
        SearchStrategy[Decimal]: Стратегия для положительных сумм от 0.01 до 999999.99

    Example:
        @given(amount=valid_amounts())
        def test_transaction_amount(amount):
            assert amount > 0
    """
    return st.decimals(
        min_value=Decimal('0.01'),
        max_value=Decimal('999999.99'),
        places=2
    )


def signed_balances() -> st.SearchStrategy[Decimal]:
    """Генерирует желаемый баланс (может быть отрицательным)."""
    return st.decimals(
        min_value=Decimal('-999999.99'),
        max_value=Decimal('999999.99'),
        places=2
    )


def transaction_types() -> st.SearchStrategy[TransactionType]:
    return st.sampled_from(TransactionType)


def due_days() -> st.SearchStrategy[int]:
    """День срока 1-31."""
    return st.integers(min_value=1, max_value=31)


def expense_names() -> st.SearchStrategy[str]:
    """
    Названия фиксированных расходов.

    Только буквы, чтобы название не было подстрокой описаний других тестовых транзакций.
    """
    return st.text(
        alphabet=st.characters(categories=("Lu", "Ll")),
        min_size=3,
        max_size=30
    )


@st.composite
def reconciliation_dates(draw) -> date:
    """
    Генерирует дату сверки в диапазоне 2020-2030.

    Example:
        @given(today=reconciliation_dates())
        def test_reconcile(today):
            ...
    """
    return draw(st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31)))


@st.composite
def due_dates_with_day(draw):
    """
    Генерирует пару (today, due_day), где срок уже наступил: due_day <= today.day.
    """
    today = draw(reconciliation_dates())
    due_day = draw(st.integers(min_value=1, max_value=today.day))
    return today, due_day


@st.composite
def dates_before_due(draw):
    """
    Генерирует пару (today, due_day), где срок ещё не наступил: due_day > today.day.
    """
    today = draw(reconciliation_dates().filter(lambda d: d.day < 31))
    due_day = draw(st.integers(min_value=today.day + 1, max_value=31))
    return today, due_day


@st.composite
def last_days_of_short_months(draw) -> date:
    """Последний день месяца, в котором меньше 31 дня."""
    year = draw(st.integers(min_value=2020, max_value=2030))
    month = draw(st.sampled_from([2, 4, 6, 9, 11]))
    return date(year, month, calendar.monthrange(year, month)[1])


def installment_counts() -> st.SearchStrategy[int]:
    """Количество взносов рассрочки (2-24)."""
    return st.integers(min_value=2, max_value=24)
