"""
Тесты SqlAlchemyRepository.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from fincontrol.models import (
    AppState,
    Category,
    CategoryDB,
    InstallmentStatus,
    Transaction,
    TransactionType,
    UserSettingsDB,
)
from fincontrol.repository import SqlAlchemyRepository, get_db_model
from test_factories import (
    create_test_category,
    create_test_installment,
    create_test_recurring,
    create_test_transaction,
)


def test_save_entity_is_idempotent_upsert(repository):
    transaction = create_test_transaction(amount=Decimal('10.00'))

    repository.save_entity("u1", transaction)
    repository.save_entity("u1", transaction.model_copy(update={"amount": Decimal('20.00')}))

    state = repository.load_state("u1")
    assert len(state.transactions) == 1
    assert state.transactions[0].amount == Decimal('20.00')


def test_delete_entity(repository):
    transaction = create_test_transaction()
    repository.save_entity("u1", transaction)

    assert repository.delete_entity("u1", Transaction, transaction.id) is True
    assert repository.delete_entity("u1", Transaction, transaction.id) is False
    assert repository.load_state("u1").transactions == []


def test_same_entity_id_for_different_users(repository):
    """Первичный ключ (user_id, id): встроенные категории повторяются у каждого пользователя."""
    repository.load_state("alice")
    repository.load_state("bob")

    repository.delete_entity("alice", Category, "cat_1")

    assert "cat_1" not in [c.id for c in repository.load_state("alice").categories]
    assert "cat_1" in [c.id for c in repository.load_state("bob").categories]


def test_optional_fields_round_trip(repository):
    expense = create_test_recurring(last_generated_month=None)
    inst = create_test_installment(status=InstallmentStatus.CANCELLED, last_generated_month="2024-03")
    repository.save_entity("u1", expense)
    repository.save_entity("u1", inst)

    state = repository.load_state("u1")

    assert state.recurring_expenses[0].last_generated_month is None
    assert state.installments[0].status == InstallmentStatus.CANCELLED
    assert state.installments[0].last_generated_month == "2024-03"
    assert state.installments[0].card_id is None


def test_save_settings(repository):
    repository.save_settings("u1", Decimal('-42.50'), True)
    repository.save_settings("u1", Decimal('10.00'), True)

    state = repository.load_state("u1")
    assert state.balance_offset == Decimal('10.00')
    assert state.dark_mode is True


def test_replace_state_keeps_transaction_order(repository):
    repository.save_entity("u1", create_test_transaction(description="old"))
    first = create_test_transaction(description="newest", date=date(2024, 5, 1))
    second = create_test_transaction(description="older", date=date(2024, 5, 1))
    state = AppState(
        balance_offset=Decimal('100.00'),
        transactions=[first, second],
        categories=[create_test_category(id="custom", name="Pets")],
    )

    repository.replace_state("u1", state)

    loaded = repository.load_state("u1")
    assert [t.id for t in loaded.transactions] == [first.id, second.id]
    assert [c.id for c in loaded.categories] == ["custom"]
    assert loaded.balance_offset == Decimal('100.00')


def test_get_db_model_unknown_type():
    assert get_db_model(Category) is CategoryDB
    with pytest.raises(ValueError):
        get_db_model(AppState)


def test_database_error_is_rolled_back_and_raised():
    """Ошибка БД: откат транзакции сессии и проброс исключения."""
    session = MagicMock()
    session.get.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    factory = MagicMock()
    factory.return_value.__enter__.return_value = session

    repository = SqlAlchemyRepository(factory)

    with pytest.raises(OperationalError):
        repository.save_settings("u1", Decimal('0'), False)
    session.rollback.assert_called_once()
    session.commit.assert_not_called()


def test_settings_row_created(session_factory, repository):
    repository.save_settings("u1", Decimal('5'), False)

    with session_factory() as session:
        row = session.get(UserSettingsDB, "u1")
        assert row is not None
        assert row.dark_mode is False


def test_transaction_type_stored_as_enum(repository):
    repository.save_entity("u1", create_test_transaction(type=TransactionType.INCOME))
    assert repository.load_state("u1").transactions[0].type == TransactionType.INCOME
