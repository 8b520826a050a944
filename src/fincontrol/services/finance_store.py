"""
Контейнер состояния пользователя и API изменений.

FinanceStore хранит AppState одного пользователя в памяти и предоставляет
операции изменения (транзакции, категории, карты, фиксированные расходы,
рассрочки, цели, инвестиции, настройки). Каждое изменение:
1. Сразу применяется к состоянию в памяти.
2. Записывается в хранилище отдельным вызовом на каждую сущность.

Ошибка записи логируется после исчерпания повторов (tenacity), состояние в
памяти не откатывается, исключение не пробрасывается.

Транзакции, созданные сверкой (reconcile), проходят через тот же
add_transaction, что и транзакции пользователя, поэтому учётные правила
применяются одинаково.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Tuple, TypeVar

from pydantic import BaseModel
from tenacity import Retrying, stop_after_attempt, wait_exponential

from fincontrol.config import settings
from fincontrol.models import (
    AppState,
    Category,
    CategoryCreate,
    CreditCard,
    CreditCardCreate,
    FinancialGoal,
    FinancialGoalCreate,
    InstallmentPurchase,
    InstallmentPurchaseCreate,
    InstallmentStatus,
    Investment,
    InvestmentCreate,
    RecurringExpense,
    RecurringExpenseCreate,
    Transaction,
    TransactionCreate,
)
from fincontrol.repository import FinanceRepository
from fincontrol.services import bookkeeping_service
from fincontrol.services.installment_service import (
    plan_next_payment,
    plan_undo_last_payment,
    reconcile_installments,
    split_installment_transactions,
    unlink_installment_transactions,
)
from fincontrol.services.recurring_service import reconcile_recurring
from fincontrol.utils.error_handler import ErrorHandler, safe_handler
from fincontrol.utils.exceptions import BusinessLogicError, PersistenceError

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)


def generate_id() -> str:
    """Новый идентификатор сущности (UUID4)."""
    return str(uuid.uuid4())


def _find(items: List[EntityT], entity_id: str) -> Optional[EntityT]:
    return next((item for item in items if item.id == entity_id), None)


def _replace(items: List[EntityT], entity: EntityT) -> Tuple[List[EntityT], bool]:
    found = False
    result = []
    for item in items:
        if item.id == entity.id:
            result.append(entity)
            found = True
        else:
            result.append(item)
    return result, found


@dataclass
class ReconciliationReport:
    """
    Итог одного прохода сверки.

    Attributes:
        created_transactions: Транзакции, созданные сверкой
        updated_expenses: Количество фиксированных расходов с обновлённым месяцем
        updated_installments: Количество рассрочек с обновлённым статусом/месяцем
    """
    created_transactions: List[Transaction] = field(default_factory=list)
    updated_expenses: int = 0
    updated_installments: int = 0


class FinanceStore:
    """
    Контейнер состояния одного пользователя.

    Args:
        repository: Хранилище (интерфейс чтения/записи)
        user_id: Владелец состояния
        state: Начальное состояние (по умолчанию пустое)
    """

    def __init__(self, repository: FinanceRepository, user_id: str, state: Optional[AppState] = None):
        self.repository = repository
        self.user_id = user_id
        self._state = state if state is not None else AppState()
        self._error_handler = ErrorHandler()

    @classmethod
    def load(
        cls,
        repository: FinanceRepository,
        user_id: str,
        reconcile: bool = True,
        today: Optional[date] = None
    ) -> "FinanceStore":
        """
        Загружает состояние пользователя и (по умолчанию) выполняет сверку.

        Args:
            repository: Хранилище
            user_id: Пользователь
            reconcile: Выполнить сверку фиксированных расходов и рассрочек
            today: Дата сверки (по умолчанию сегодня)
        """
        store = cls(repository, user_id, repository.load_state(user_id))
        if reconcile:
            store.reconcile(today)
        return store

    @property
    def state(self) -> AppState:
        """Текущее состояние (только для чтения)."""
        return self._state

    @property
    def balance(self) -> Decimal:
        """Отображаемый баланс: смещение + доходы - расходы за всё время."""
        return bookkeeping_service.compute_balance(self._state.balance_offset, self._state.transactions)

    def _update_state(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)

    # -------------------------------------------------------------------------
    # Запись в хранилище
    # -------------------------------------------------------------------------

    def _persist(self, description: str, operation: Callable, *args) -> bool:
        """
        Выполняет запись в хранилище с повторами.

        После последней неудачной попытки ошибка логируется; состояние в
        памяти не откатывается.

        Returns:
            True, если запись прошла успешно
        """
        retrying = Retrying(
            stop=stop_after_attempt(max(1, settings.persistence_retry_attempts)),
            wait=wait_exponential(multiplier=0.1, max=settings.persistence_retry_max_wait),
            reraise=True,
        )
        try:
            retrying(operation, *args)
            return True
        except Exception as e:
            self._error_handler.handle(
                PersistenceError(f"{description}: {e}"),
                context_message=f"Запись в хранилище для пользователя {self.user_id} не удалась, "
                                f"состояние в памяти сохранено",
            )
            return False

    def _save(self, entity: BaseModel) -> bool:
        return self._persist(
            f"{type(entity).__name__} ID {entity.id}",
            self.repository.save_entity, self.user_id, entity,
        )

    def _delete(self, entity_type: type, entity_id: str) -> bool:
        return self._persist(
            f"удаление {entity_type.__name__} ID {entity_id}",
            self.repository.delete_entity, self.user_id, entity_type, entity_id,
        )

    def _save_settings(self) -> bool:
        return self._persist(
            "настройки",
            self.repository.save_settings, self.user_id,
            self._state.balance_offset, self._state.dark_mode,
        )

    # -------------------------------------------------------------------------
    # Транзакции
    # -------------------------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Транзакция по ID или None."""
        return _find(self._state.transactions, transaction_id)

    def add_transaction(self, data: TransactionCreate) -> Transaction:
        """
        Добавляет транзакцию.

        Доходная транзакция с goal_id увеличивает накопления цели на свою сумму.

        Args:
            data: Данные транзакции

        Returns:
            Созданная транзакция с присвоенным ID
        """
        transaction = Transaction(id=generate_id(), **data.model_dump())
        goals, changed_goals = bookkeeping_service.apply_goal_contribution(
            self._state.goals, transaction, sign=1
        )
        self._update_state(transactions=[transaction] + self._state.transactions, goals=goals)

        logger.info(
            f"Транзакция создана с ID: {transaction.id} "
            f"({transaction.type.value}, {transaction.amount}, {transaction.date})"
        )

        self._save(transaction)
        for goal in changed_goals:
            logger.info(f"Накопления цели '{goal.name}' увеличены до {goal.current_amount}")
            self._save(goal)
        return transaction

    def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        """
        Заменяет транзакцию целиком.

        Накопления связанной цели при изменении суммы или goal_id не
        пересчитываются: цель меняется только при добавлении и удалении.

        Returns:
            Обновлённая транзакция или None, если транзакция не найдена
        """
        transactions, found = _replace(self._state.transactions, transaction)
        if not found:
            logger.warning(f"Транзакция с ID {transaction.id} не найдена")
            return None

        self._update_state(transactions=transactions)
        logger.info(f"Транзакция ID {transaction.id} успешно обновлена")
        self._save(transaction)
        return transaction

    def delete_transaction(self, transaction_id: str) -> bool:
        """
        Удаляет транзакцию.

        Удаление доходной транзакции с goal_id уменьшает накопления цели.

        Returns:
            True если транзакция удалена, False если не найдена
        """
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            logger.warning(f"Транзакция с ID {transaction_id} не найдена для удаления")
            return False

        goals, changed_goals = bookkeeping_service.apply_goal_contribution(
            self._state.goals, transaction, sign=-1
        )
        self._update_state(
            transactions=[t for t in self._state.transactions if t.id != transaction_id],
            goals=goals,
        )
        logger.info(f"Транзакция ID {transaction_id} успешно удалена")

        for goal in changed_goals:
            logger.info(f"Накопления цели '{goal.name}' уменьшены до {goal.current_amount}")
            self._save(goal)
        self._delete(Transaction, transaction_id)
        return True

    # -------------------------------------------------------------------------
    # Категории
    # -------------------------------------------------------------------------

    def add_category(self, data: CategoryCreate) -> Category:
        """Создаёт пользовательскую категорию."""
        category = Category(id=generate_id(), **data.model_dump())
        self._update_state(categories=self._state.categories + [category])
        logger.info(f"Создана категория '{category.name}' с ID {category.id}")
        self._save(category)
        return category

    def update_category(self, category: Category) -> Optional[Category]:
        """Обновляет категорию (название, цвет)."""
        categories, found = _replace(self._state.categories, category)
        if not found:
            logger.warning(f"Категория с ID {category.id} не найдена")
            return None
        self._update_state(categories=categories)
        logger.info(f"Категория ID {category.id} обновлена")
        self._save(category)
        return category

    def delete_category(self, category_id: str) -> bool:
        """
        Удаляет категорию, если она не используется.

        Категория, на которую ссылается транзакция или фиксированный расход,
        не удаляется: операция логирует предупреждение и возвращает False.

        Returns:
            True, если категория удалена
        """
        category = _find(self._state.categories, category_id)
        if category is None:
            logger.warning(f"Категория с ID {category_id} не найдена")
            return False

        if bookkeeping_service.is_category_in_use(
            category_id, self._state.transactions, self._state.recurring_expenses
        ):
            self._error_handler.handle(BusinessLogicError(
                f"Невозможно удалить категорию '{category.name}': "
                f"она используется транзакциями или фиксированными расходами"
            ))
            return False

        self._update_state(categories=[c for c in self._state.categories if c.id != category_id])
        logger.info(f"Удалена категория '{category.name}' (ID {category_id})")
        self._delete(Category, category_id)
        return True

    # -------------------------------------------------------------------------
    # Кредитные карты
    # -------------------------------------------------------------------------

    def add_card(self, data: CreditCardCreate) -> CreditCard:
        """Добавляет кредитную карту."""
        card = CreditCard(id=generate_id(), **data.model_dump())
        self._update_state(cards=self._state.cards + [card])
        logger.info(f"Добавлена карта '{card.name}' с ID {card.id}")
        self._save(card)
        return card

    def update_card(self, card: CreditCard) -> Optional[CreditCard]:
        """Обновляет кредитную карту."""
        cards, found = _replace(self._state.cards, card)
        if not found:
            logger.warning(f"Карта с ID {card.id} не найдена")
            return None
        self._update_state(cards=cards)
        logger.info(f"Карта ID {card.id} обновлена")
        self._save(card)
        return card

    def delete_card(self, card_id: str) -> bool:
        """
        Удаляет карту; у транзакций этой карты card_id очищается.

        Returns:
            True, если карта была удалена
        """
        card = _find(self._state.cards, card_id)
        if card is None:
            logger.warning(f"Карта с ID {card_id} не найдена")
            return False

        transactions, unlinked = bookkeeping_service.unlink_card(card_id, self._state.transactions)
        self._update_state(
            cards=[c for c in self._state.cards if c.id != card_id],
            transactions=transactions,
        )
        logger.info(f"Удалена карта '{card.name}', отвязано транзакций: {len(unlinked)}")

        for transaction in unlinked:
            self._save(transaction)
        self._delete(CreditCard, card_id)
        return True

    # -------------------------------------------------------------------------
    # Фиксированные расходы
    # -------------------------------------------------------------------------

    def get_recurring(self, expense_id: str) -> Optional[RecurringExpense]:
        """Фиксированный расход по ID или None."""
        return _find(self._state.recurring_expenses, expense_id)

    def add_recurring(self, data: RecurringExpenseCreate) -> RecurringExpense:
        """Добавляет фиксированный расход (ещё не генерировавшийся)."""
        expense = RecurringExpense(id=generate_id(), last_generated_month=None, **data.model_dump())
        self._update_state(recurring_expenses=self._state.recurring_expenses + [expense])
        logger.info(f"Добавлен фиксированный расход '{expense.name}' ({expense.amount}, день {expense.due_day})")
        self._save(expense)
        return expense

    def update_recurring(self, expense: RecurringExpense) -> Optional[RecurringExpense]:
        """Обновляет фиксированный расход (в том числе включение/выключение)."""
        expenses, found = _replace(self._state.recurring_expenses, expense)
        if not found:
            logger.warning(f"Фиксированный расход с ID {expense.id} не найден")
            return None
        self._update_state(recurring_expenses=expenses)
        logger.info(f"Фиксированный расход ID {expense.id} обновлён")
        self._save(expense)
        return expense

    def delete_recurring(self, expense_id: str) -> bool:
        """
        Удаляет фиксированный расход.

        Сгенерированные транзакции остаются в истории без изменений.
        """
        expense = self.get_recurring(expense_id)
        if expense is None:
            logger.warning(f"Фиксированный расход с ID {expense_id} не найден")
            return False
        self._update_state(
            recurring_expenses=[r for r in self._state.recurring_expenses if r.id != expense_id]
        )
        logger.info(f"Удалён фиксированный расход '{expense.name}'")
        self._delete(RecurringExpense, expense_id)
        return True

    # -------------------------------------------------------------------------
    # Рассрочки
    # -------------------------------------------------------------------------

    def get_installment(self, installment_id: str) -> Optional[InstallmentPurchase]:
        """Рассрочка по ID или None."""
        return _find(self._state.installments, installment_id)

    def add_installment(self, data: InstallmentPurchaseCreate) -> InstallmentPurchase:
        """Добавляет покупку в рассрочку со статусом ACTIVE."""
        installment = InstallmentPurchase(
            id=generate_id(),
            status=InstallmentStatus.ACTIVE,
            last_generated_month=None,
            **data.model_dump(exclude={"total_amount"}),
        )
        self._update_state(installments=self._state.installments + [installment])
        logger.info(
            f"Добавлена рассрочка '{installment.description}': "
            f"{installment.total_installments} x {installment.installment_amount}"
        )
        self._save(installment)
        return installment

    def update_installment(self, installment: InstallmentPurchase) -> Optional[InstallmentPurchase]:
        """
        Обновляет рассрочку целиком (поля, расписание, статус).

        Уже созданные транзакции взносов не изменяются.
        """
        installments, found = _replace(self._state.installments, installment)
        if not found:
            logger.warning(f"Рассрочка с ID {installment.id} не найдена")
            return None
        self._update_state(installments=installments)
        logger.info(f"Рассрочка ID {installment.id} обновлена (статус {installment.status.value})")
        self._save(installment)
        return installment

    def cancel_installment(self, installment_id: str) -> Optional[InstallmentPurchase]:
        """
        Отменяет будущие взносы рассрочки.

        Оплаченные взносы сохраняются; отменённая рассрочка не участвует в сверке.
        """
        installment = self.get_installment(installment_id)
        if installment is None:
            logger.warning(f"Рассрочка с ID {installment_id} не найдена")
            return None
        return self.update_installment(
            installment.model_copy(update={"status": InstallmentStatus.CANCELLED})
        )

    def delete_installment(self, installment_id: str, delete_transactions: bool = False) -> bool:
        """
        Удаляет рассрочку.

        Args:
            installment_id: ID рассрочки
            delete_transactions: True - удалить связанные транзакции,
                                 False - оставить их, очистив installment_id

        Returns:
            True, если рассрочка была удалена
        """
        installment = self.get_installment(installment_id)
        if installment is None:
            logger.warning(f"Рассрочка с ID {installment_id} не найдена")
            return False

        related, others = split_installment_transactions(installment_id, self._state.transactions)
        self._update_state(installments=[i for i in self._state.installments if i.id != installment_id])

        if delete_transactions:
            for transaction in related:
                self.delete_transaction(transaction.id)
        else:
            unlinked = unlink_installment_transactions(related)
            unlinked_by_id = {t.id: t for t in unlinked}
            self._update_state(transactions=[
                unlinked_by_id.get(t.id, t) for t in self._state.transactions
            ])
            for transaction in unlinked:
                self._save(transaction)

        logger.info(
            f"Удалена рассрочка '{installment.description}', связанных транзакций: {len(related)} "
            f"({'удалены' if delete_transactions else 'отвязаны'})"
        )
        self._delete(InstallmentPurchase, installment_id)
        return True

    def pay_next_installment(self, installment_id: str, today: Optional[date] = None) -> Optional[Transaction]:
        """
        Проводит следующий взнос вручную, без учёта дня срока.

        Returns:
            Созданная транзакция или None, если платить нечего
        """
        installment = self.get_installment(installment_id)
        if installment is None:
            logger.warning(f"Рассрочка с ID {installment_id} не найдена")
            return None

        payment = plan_next_payment(installment, self._state.transactions, today or date.today())
        if payment is None:
            return None

        transaction = self.add_transaction(payment.transaction)
        self.update_installment(payment.installment)
        return transaction

    def undo_last_installment(self, installment_id: str) -> Optional[Transaction]:
        """
        Отменяет последний оплаченный взнос и возвращает рассрочку в ACTIVE.

        Returns:
            Удалённая транзакция или None, если отменять нечего
        """
        installment = self.get_installment(installment_id)
        if installment is None:
            logger.warning(f"Рассрочка с ID {installment_id} не найдена")
            return None

        undo = plan_undo_last_payment(installment, self._state.transactions)
        if undo is None:
            return None

        self.delete_transaction(undo.transaction.id)
        self.update_installment(undo.installment)
        return undo.transaction

    # -------------------------------------------------------------------------
    # Финансовые цели
    # -------------------------------------------------------------------------

    def get_goal(self, goal_id: str) -> Optional[FinancialGoal]:
        """Цель по ID или None."""
        return _find(self._state.goals, goal_id)

    def add_goal(self, data: FinancialGoalCreate) -> FinancialGoal:
        """Добавляет финансовую цель."""
        goal = FinancialGoal(id=generate_id(), **data.model_dump())
        self._update_state(goals=self._state.goals + [goal])
        logger.info(f"Добавлена цель '{goal.name}' ({goal.current_amount}/{goal.target_amount})")
        self._save(goal)
        return goal

    def update_goal(self, goal: FinancialGoal) -> Optional[FinancialGoal]:
        """Обновляет цель; накопления можно менять вручную."""
        goals, found = _replace(self._state.goals, goal)
        if not found:
            logger.warning(f"Цель с ID {goal.id} не найдена")
            return None
        self._update_state(goals=goals)
        logger.info(f"Цель ID {goal.id} обновлена")
        self._save(goal)
        return goal

    def delete_goal(self, goal_id: str) -> bool:
        """Удаляет цель; транзакции с этим goal_id не изменяются."""
        goal = self.get_goal(goal_id)
        if goal is None:
            logger.warning(f"Цель с ID {goal_id} не найдена")
            return False
        self._update_state(goals=[g for g in self._state.goals if g.id != goal_id])
        logger.info(f"Удалена цель '{goal.name}'")
        self._delete(FinancialGoal, goal_id)
        return True

    # -------------------------------------------------------------------------
    # Инвестиции
    # -------------------------------------------------------------------------

    def add_investment(self, data: InvestmentCreate) -> Investment:
        """Добавляет инвестицию."""
        investment = Investment(id=generate_id(), **data.model_dump())
        self._update_state(investments=self._state.investments + [investment])
        logger.info(f"Добавлена инвестиция '{investment.name}' ({investment.initial_amount})")
        self._save(investment)
        return investment

    def update_investment(self, investment: Investment) -> Optional[Investment]:
        """Обновляет инвестицию (обычно текущую стоимость)."""
        investments, found = _replace(self._state.investments, investment)
        if not found:
            logger.warning(f"Инвестиция с ID {investment.id} не найдена")
            return None
        self._update_state(investments=investments)
        logger.info(f"Инвестиция ID {investment.id} обновлена: {investment.current_amount}")
        self._save(investment)
        return investment

    def delete_investment(self, investment_id: str) -> bool:
        """Удаляет инвестицию."""
        investment = _find(self._state.investments, investment_id)
        if investment is None:
            logger.warning(f"Инвестиция с ID {investment_id} не найдена")
            return False
        self._update_state(investments=[i for i in self._state.investments if i.id != investment_id])
        logger.info(f"Удалена инвестиция '{investment.name}'")
        self._delete(Investment, investment_id)
        return True

    # -------------------------------------------------------------------------
    # Настройки
    # -------------------------------------------------------------------------

    def set_balance_offset(self, balance_offset: Decimal) -> None:
        """Сохраняет смещение баланса."""
        self._update_state(balance_offset=balance_offset)
        logger.info(f"Смещение баланса установлено: {balance_offset}")
        self._save_settings()

    def set_current_balance(self, target_balance: Decimal) -> Decimal:
        """
        Устанавливает отображаемый баланс, сохраняя только смещение.

        Returns:
            Новое смещение баланса
        """
        offset = bookkeeping_service.solve_balance_offset(target_balance, self._state.transactions)
        self.set_balance_offset(offset)
        return offset

    def toggle_dark_mode(self) -> bool:
        """Переключает тему. Возвращает новое значение dark_mode."""
        self._update_state(dark_mode=not self._state.dark_mode)
        self._save_settings()
        return self._state.dark_mode

    # -------------------------------------------------------------------------
    # Сверка
    # -------------------------------------------------------------------------

    @safe_handler(default=None)
    def reconcile_recurring(self, today: Optional[date] = None) -> Optional[ReconciliationReport]:
        """
        Проводит наступившие фиксированные расходы текущего месяца.

        Ошибки логируются и не пробрасываются (возвращается None).
        """
        today = today or date.today()
        plan = reconcile_recurring(self._state.recurring_expenses, self._state.transactions, today)

        report = ReconciliationReport()
        for data in plan.transactions_to_create:
            report.created_transactions.append(self.add_transaction(data))
        for expense in plan.expense_updates:
            if self.update_recurring(expense) is not None:
                report.updated_expenses += 1
        return report

    @safe_handler(default=None)
    def reconcile_installments(self, today: Optional[date] = None) -> Optional[ReconciliationReport]:
        """
        Проводит наступившие взносы рассрочек и исправляет статусы.

        Ошибки логируются и не пробрасываются (возвращается None).
        """
        today = today or date.today()
        plan = reconcile_installments(self._state.installments, self._state.transactions, today)

        report = ReconciliationReport()
        for data in plan.transactions_to_create:
            report.created_transactions.append(self.add_transaction(data))
        for installment in plan.installment_updates:
            if self.update_installment(installment) is not None:
                report.updated_installments += 1
        return report

    def reconcile(self, today: Optional[date] = None) -> ReconciliationReport:
        """
        Полная сверка: сначала фиксированные расходы, затем рассрочки.

        Повторный вызов в том же месяце не создаёт дубликатов.
        """
        today = today or date.today()
        report = ReconciliationReport()

        for partial in (self.reconcile_recurring(today), self.reconcile_installments(today)):
            if partial is None:
                continue
            report.created_transactions.extend(partial.created_transactions)
            report.updated_expenses += partial.updated_expenses
            report.updated_installments += partial.updated_installments

        logger.info(
            f"Сверка за {today}: создано транзакций {len(report.created_transactions)}, "
            f"обновлено фиксированных расходов {report.updated_expenses}, "
            f"рассрочек {report.updated_installments}"
        )
        return report
