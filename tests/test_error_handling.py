"""
Тесты системы обработки ошибок.
Проверяют, что ошибки перехватываются, логируются и не доходят до вызывающего кода
там, где это требуется (сверка, запись в хранилище).
"""

import logging
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

from hypothesis import given, strategies as st
from sqlalchemy.exc import OperationalError

from fincontrol.config import settings
from fincontrol.models import TransactionCreate, TransactionType
from fincontrol.utils.exceptions import (
    ValidationError,
    BusinessLogicError,
    PersistenceError,
)
from fincontrol.utils.error_handler import ErrorHandler, safe_handler
from test_factories import create_test_recurring, create_test_store


@given(st.text())
def test_validation_error_message(message):
    """Ошибка ввода формирует понятное сообщение и передаётся в notify."""
    notify = MagicMock()
    handler = ErrorHandler(notify)

    result = handler.handle(ValidationError(message))

    assert result == f"Ошибка ввода: {message}"
    notify.assert_called_once_with(result)


@given(st.text())
def test_business_logic_error_message(message):
    handler = ErrorHandler()
    assert handler.handle(BusinessLogicError(message)) == f"Невозможно выполнить операцию: {message}"


def test_persistence_error_message():
    message = ErrorHandler.get_user_message(PersistenceError("disk full"))
    assert "ошибка при сохранении" in message


def test_validation_error_is_value_error():
    assert isinstance(ValidationError("x"), ValueError)


def test_user_errors_logged_as_warning(caplog):
    with caplog.at_level(logging.WARNING):
        ErrorHandler().handle(BusinessLogicError("категория используется"))

    assert caplog.records[-1].levelno == logging.WARNING


def test_system_errors_logged_as_error(caplog):
    with caplog.at_level(logging.ERROR):
        ErrorHandler().handle(RuntimeError("boom"), context_message="Сверка")

    assert caplog.records[-1].levelno == logging.ERROR
    assert "Сверка: boom" in caplog.text


def test_safe_handler_returns_default():
    @safe_handler(default=[])
    def failing():
        raise RuntimeError("boom")

    @safe_handler(default=[])
    def working():
        return [1]

    assert failing() == []
    assert working() == [1]
    assert failing.__name__ == "failing"


def test_reconcile_failure_does_not_propagate(caplog):
    """Ошибка внутри сверки логируется, reconcile возвращает пустой отчёт."""
    store = create_test_store(recurring_expenses=[create_test_recurring(due_day=1)])

    with patch(
        "fincontrol.services.finance_store.reconcile_recurring",
        side_effect=RuntimeError("broken plan"),
    ):
        with caplog.at_level(logging.ERROR):
            report = store.reconcile(date(2024, 5, 10))

    assert report.created_transactions == []
    assert "broken plan" in caplog.text


def test_persistence_failure_keeps_state(fast_retries, caplog):
    """
    Ошибка записи не откатывает состояние в памяти и не пробрасывается;
    ошибка логируется.
    """
    store = create_test_store()
    store.repository.save_entity.side_effect = OperationalError("INSERT", {}, Exception("locked"))

    with caplog.at_level(logging.ERROR):
        transaction = store.add_transaction(TransactionCreate(
            amount=Decimal('10.00'), type=TransactionType.EXPENSE, category_id="cat_1",
        ))

    assert store.get_transaction(transaction.id) == transaction
    assert "locked" in caplog.text
    assert store.repository.save_entity.call_count == 1


def test_persistence_retries_then_succeeds(monkeypatch):
    """Временная ошибка записи повторяется согласно настройкам."""
    monkeypatch.setattr(settings, "persistence_retry_attempts", 3)
    monkeypatch.setattr(settings, "persistence_retry_max_wait", 0)
    store = create_test_store()
    store.repository.save_settings.side_effect = [
        OperationalError("UPDATE", {}, Exception("locked")),
        None,
    ]

    store.set_balance_offset(Decimal('5.00'))

    assert store.repository.save_settings.call_count == 2
    assert store.state.balance_offset == Decimal('5.00')
