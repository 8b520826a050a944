"""
Property-based тесты для учётных правил.

Тестирует:
- Property 5: Накопления цели при добавлении и удалении дохода с goal_id
- Property 6: Смещение баланса при установке желаемого баланса
- Property 7: Защита используемой категории от удаления
- Отвязка транзакций от удалённой карты
"""

import logging
from decimal import Decimal

from hypothesis import given, strategies as st, settings

from fincontrol.models import (
    CategoryCreate,
    TransactionCreate,
    TransactionType,
)
from fincontrol.services.bookkeeping_service import (
    apply_goal_contribution,
    compute_balance,
    get_all_time_totals,
    is_category_in_use,
    solve_balance_offset,
    unlink_card,
)
from property_generators import signed_balances, valid_amounts
from test_factories import (
    create_test_card,
    create_test_category,
    create_test_goal,
    create_test_recurring,
    create_test_store,
    create_test_transaction,
)


class TestBookkeepingProperties:
    """Property-based тесты для учётных правил."""

    @given(start=valid_amounts(), amount=valid_amounts())
    @settings(max_examples=30, deadline=None)
    def test_property_5_goal_round_trip(self, start, amount):
        """
        Property 5: Добавление дохода с goal_id увеличивает накопления цели на сумму,
        удаление той же транзакции возвращает исходное значение.
        """
        goal = create_test_goal(current_amount=start)
        store = create_test_store(goals=[goal])

        transaction = store.add_transaction(TransactionCreate(
            description="Aporte", amount=amount, type=TransactionType.INCOME,
            category_id="cat_7", goal_id=goal.id,
        ))
        assert store.get_goal(goal.id).current_amount == start + amount

        assert store.delete_transaction(transaction.id) is True
        assert store.get_goal(goal.id).current_amount == start

    @given(start=valid_amounts(), amount=valid_amounts())
    @settings(max_examples=30, deadline=None)
    def test_expense_with_goal_does_not_change_goal(self, start, amount):
        """Расходная транзакция с goal_id не является взносом в цель."""
        goal = create_test_goal(current_amount=start)
        store = create_test_store(goals=[goal])

        store.add_transaction(TransactionCreate(
            amount=amount, type=TransactionType.EXPENSE, category_id="cat_7", goal_id=goal.id,
        ))

        assert store.get_goal(goal.id).current_amount == start

    @given(
        amounts=st.lists(st.tuples(valid_amounts(), st.sampled_from(TransactionType)), max_size=10),
        target=signed_balances(),
    )
    @settings(max_examples=30, deadline=None)
    def test_property_6_balance_offset_round_trip(self, amounts, target):
        """
        Property 6: После установки желаемого баланса отображаемый баланс равен ему,
        а смещение = target - (доходы - расходы).
        """
        transactions = [create_test_transaction(amount=a, type=t) for a, t in amounts]
        store = create_test_store(transactions=transactions)

        offset = store.set_current_balance(target)

        income, expense = get_all_time_totals(transactions)
        assert offset == target - (income - expense)
        assert store.state.balance_offset == offset
        assert store.balance == target
        assert compute_balance(offset, transactions) == target

    @given(use_in_transaction=st.booleans())
    @settings(max_examples=10, deadline=None)
    def test_property_7_category_in_use_is_protected(self, use_in_transaction):
        """
        Property 7: Категорию, на которую ссылается транзакция или фиксированный
        расход, удалить нельзя; состояние не меняется.
        """
        category = create_test_category()
        if use_in_transaction:
            store = create_test_store(
                transactions=[create_test_transaction(category_id=category.id)],
                categories=[category],
            )
        else:
            store = create_test_store(
                recurring_expenses=[create_test_recurring(category_id=category.id)],
                categories=[category],
            )

        assert store.delete_category(category.id) is False
        assert store.state.categories == [category]
        store.repository.delete_entity.assert_not_called()


def test_update_transaction_does_not_adjust_goal():
    """
    Изменение суммы транзакции-взноса не пересчитывает накопления цели:
    цель меняется только при добавлении и удалении.
    """
    goal = create_test_goal(current_amount=Decimal('0'))
    store = create_test_store(goals=[goal])
    transaction = store.add_transaction(TransactionCreate(
        amount=Decimal('100.00'), type=TransactionType.INCOME, category_id="cat_7", goal_id=goal.id,
    ))

    store.update_transaction(transaction.model_copy(update={"amount": Decimal('250.00')}))
    assert store.get_goal(goal.id).current_amount == Decimal('100.00')

    store.delete_transaction(transaction.id)
    assert store.get_goal(goal.id).current_amount == Decimal('-150.00')


def test_goal_contribution_for_missing_goal_logs_warning(caplog):
    transaction = create_test_transaction(type=TransactionType.INCOME, goal_id="missing")

    with caplog.at_level(logging.WARNING):
        goals, changed = apply_goal_contribution([], transaction)

    assert goals == [] and changed == []
    assert "missing" in caplog.text


def test_unused_category_is_deleted():
    category = create_test_category()
    store = create_test_store(categories=[category])

    assert store.delete_category(category.id) is True
    assert store.state.categories == []
    store.repository.delete_entity.assert_called_once()


def test_is_category_in_use():
    assert is_category_in_use("cat_1", [create_test_transaction(category_id="cat_1")], []) is True
    assert is_category_in_use("cat_1", [], [create_test_recurring(category_id="cat_1")]) is True
    assert is_category_in_use("cat_1", [create_test_transaction(category_id="cat_2")], []) is False


def test_add_category_appends():
    store = create_test_store()
    category = store.add_category(CategoryCreate(name="  Pets  ", color="#000000"))
    assert category.name == "Pets"
    assert store.state.categories == [category]


def test_delete_card_unlinks_transactions():
    """Удаление карты очищает card_id у её транзакций и сохраняет каждую из них."""
    card = create_test_card()
    on_card = create_test_transaction(card_id=card.id)
    other_card = create_test_transaction(card_id="other")
    store = create_test_store(transactions=[on_card, other_card], cards=[card])

    assert store.delete_card(card.id) is True

    assert store.state.cards == []
    assert store.get_transaction(on_card.id).card_id is None
    assert store.get_transaction(other_card.id).card_id == "other"
    saved = [c.args[1] for c in store.repository.save_entity.call_args_list]
    assert [t.id for t in saved] == [on_card.id]


def test_unlink_card_returns_changed_only():
    on_card = create_test_transaction(card_id="c1")
    plain = create_test_transaction()

    updated, changed = unlink_card("c1", [on_card, plain])

    assert [t.card_id for t in updated] == [None, None]
    assert [t.id for t in changed] == [on_card.id]


def test_solve_balance_offset_example():
    transactions = [
        create_test_transaction(amount=Decimal('1000.00'), type=TransactionType.INCOME),
        create_test_transaction(amount=Decimal('300.00'), type=TransactionType.EXPENSE),
    ]
    assert solve_balance_offset(Decimal('500.00'), transactions) == Decimal('-200.00')


def test_toggle_dark_mode_persists_settings():
    store = create_test_store()

    assert store.toggle_dark_mode() is True
    assert store.toggle_dark_mode() is False
    assert store.repository.save_settings.call_count == 2


def test_add_transaction_prepends():
    store = create_test_store(transactions=[create_test_transaction()])

    added = store.add_transaction(TransactionCreate(
        amount=Decimal('10.00'), type=TransactionType.EXPENSE, category_id="cat_1",
    ))

    assert store.state.transactions[0].id == added.id
    assert len(store.state.transactions) == 2
