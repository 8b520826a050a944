"""
Хранилище состояния пользователя.

FinanceRepository - интерфейс чтения/записи, которым пользуется FinanceStore:
- load_state: загрузка полного AppState пользователя
- save_entity / delete_entity: идемпотентная запись и удаление одной сущности
- save_settings: запись смещения баланса и темы
- replace_state: полная замена состояния (восстановление из резервной копии)

SqlAlchemyRepository реализует интерфейс поверх SQLAlchemy моделей.
Каждый вызов открывает собственную сессию; при ошибке БД транзакция
откатывается, а исключение пробрасывается дальше.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Type

from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from fincontrol.models import (
    AppState,
    Category,
    CategoryDB,
    CreditCard,
    CreditCardDB,
    FinancialGoal,
    FinancialGoalDB,
    InstallmentPurchase,
    InstallmentPurchaseDB,
    Investment,
    InvestmentDB,
    RecurringExpense,
    RecurringExpenseDB,
    Transaction,
    TransactionDB,
    UserSettingsDB,
)

logger = logging.getLogger(__name__)

# Соответствие моделей предметной области и строк хранилища
ENTITY_MODELS: Dict[Type[BaseModel], type] = {
    Category: CategoryDB,
    CreditCard: CreditCardDB,
    Transaction: TransactionDB,
    RecurringExpense: RecurringExpenseDB,
    InstallmentPurchase: InstallmentPurchaseDB,
    FinancialGoal: FinancialGoalDB,
    Investment: InvestmentDB,
}


def get_db_model(entity_type: Type[BaseModel]) -> type:
    """Возвращает SQLAlchemy модель для типа сущности."""
    for model_type, db_model in ENTITY_MODELS.items():
        if issubclass(entity_type, model_type):
            return db_model
    raise ValueError(f"Неизвестный тип сущности: {entity_type.__name__}")


class FinanceRepository(ABC):
    """
    Интерфейс хранилища состояния пользователя.

    Любая реализация (SQLAlchemy, удалённый сервис и т.д.) должна
    реализовать эти методы.
    """

    @abstractmethod
    def load_state(self, user_id: str) -> AppState:
        """Загружает полное состояние пользователя."""

    @abstractmethod
    def save_entity(self, user_id: str, entity: BaseModel) -> None:
        """Создаёт или обновляет сущность по (user_id, entity.id)."""

    @abstractmethod
    def delete_entity(self, user_id: str, entity_type: Type[BaseModel], entity_id: str) -> bool:
        """Удаляет сущность. Возвращает False, если она не найдена."""

    @abstractmethod
    def save_settings(self, user_id: str, balance_offset: Decimal, dark_mode: bool) -> None:
        """Сохраняет смещение баланса и тему."""

    @abstractmethod
    def replace_state(self, user_id: str, state: AppState) -> None:
        """Полностью заменяет состояние пользователя."""


class SqlAlchemyRepository(FinanceRepository):
    """
    Реализация FinanceRepository поверх SQLAlchemy.

    Args:
        session_factory: Фабрика контекстных менеджеров сессии
                         (например, database.get_db_session)
    """

    def __init__(self, session_factory: Callable[[], AbstractContextManager]):
        self._session_factory = session_factory

    def load_state(self, user_id: str) -> AppState:
        """
        Загружает состояние пользователя.

        Новому пользователю без категорий создаются встроенные категории.
        Транзакции возвращаются от самых новых к самым старым.
        """
        from fincontrol.database import init_default_categories

        with self._session_factory() as session:
            try:
                init_default_categories(session, user_id)

                state = AppState(
                    categories=self._load(session, CategoryDB, Category, user_id,
                                          CategoryDB.created_at, CategoryDB.name),
                    cards=self._load(session, CreditCardDB, CreditCard, user_id, CreditCardDB.name),
                    transactions=self._load(session, TransactionDB, Transaction, user_id,
                                            TransactionDB.date.desc(), TransactionDB.created_at.desc()),
                    recurring_expenses=self._load(session, RecurringExpenseDB, RecurringExpense, user_id,
                                                  RecurringExpenseDB.created_at),
                    installments=self._load(session, InstallmentPurchaseDB, InstallmentPurchase, user_id,
                                            InstallmentPurchaseDB.created_at),
                    goals=self._load(session, FinancialGoalDB, FinancialGoal, user_id,
                                     FinancialGoalDB.created_at),
                    investments=self._load(session, InvestmentDB, Investment, user_id,
                                           InvestmentDB.created_at),
                )

                settings_row = session.get(UserSettingsDB, user_id)
                if settings_row is not None:
                    state.balance_offset = Decimal(settings_row.balance_offset)
                    state.dark_mode = bool(settings_row.dark_mode)

                logger.info(
                    f"Загружено состояние пользователя {user_id}: "
                    f"{len(state.transactions)} транзакций, {len(state.categories)} категорий, "
                    f"{len(state.recurring_expenses)} фиксированных расходов, "
                    f"{len(state.installments)} рассрочек"
                )
                return state

            except SQLAlchemyError as e:
                logger.error(f"Ошибка при загрузке состояния пользователя {user_id}: {e}")
                raise

    @staticmethod
    def _load(session: Session, db_model, model, user_id: str, *order_by) -> list:
        rows = session.query(db_model).filter(db_model.user_id == user_id).order_by(*order_by).all()
        return [model.model_validate(row) for row in rows]

    @staticmethod
    def _upsert(session: Session, user_id: str, entity: BaseModel) -> None:
        db_model = get_db_model(type(entity))
        data = entity.model_dump()
        row = session.get(db_model, {"user_id": user_id, "id": entity.id})
        if row is None:
            session.add(db_model(user_id=user_id, **data))
        else:
            for key, value in data.items():
                setattr(row, key, value)

    def save_entity(self, user_id: str, entity: BaseModel) -> None:
        """Создаёт или обновляет строку сущности."""
        entity_name = type(entity).__name__
        with self._session_factory() as session:
            try:
                self._upsert(session, user_id, entity)
                session.commit()
                logger.debug(f"{entity_name} ID {entity.id} сохранён(а) для пользователя {user_id}")
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Ошибка при сохранении {entity_name} ID {entity.id}: {e}")
                raise

    def delete_entity(self, user_id: str, entity_type: Type[BaseModel], entity_id: str) -> bool:
        """Удаляет строку сущности."""
        db_model = get_db_model(entity_type)
        with self._session_factory() as session:
            try:
                row = session.get(db_model, {"user_id": user_id, "id": entity_id})
                if row is None:
                    logger.warning(f"{entity_type.__name__} ID {entity_id} не найден(а) для удаления")
                    return False
                session.delete(row)
                session.commit()
                logger.debug(f"{entity_type.__name__} ID {entity_id} удалён(а)")
                return True
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Ошибка при удалении {entity_type.__name__} ID {entity_id}: {e}")
                raise

    def save_settings(self, user_id: str, balance_offset: Decimal, dark_mode: bool) -> None:
        """Создаёт или обновляет настройки пользователя."""
        with self._session_factory() as session:
            try:
                row = session.get(UserSettingsDB, user_id)
                if row is None:
                    session.add(UserSettingsDB(
                        user_id=user_id, balance_offset=balance_offset, dark_mode=dark_mode
                    ))
                else:
                    row.balance_offset = balance_offset
                    row.dark_mode = dark_mode
                session.commit()
                logger.debug(f"Настройки пользователя {user_id} сохранены")
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Ошибка при сохранении настроек пользователя {user_id}: {e}")
                raise

    def replace_state(self, user_id: str, state: AppState) -> None:
        """
        Полностью заменяет состояние пользователя в одной транзакции БД.
        """
        with self._session_factory() as session:
            try:
                for db_model in ENTITY_MODELS.values():
                    session.query(db_model).filter(db_model.user_id == user_id).delete()

                # Транзакции вставляются от старых к новым; created_at
                # возрастает, чтобы сохранить порядок добавления
                entities = (
                    state.categories + state.cards + list(reversed(state.transactions))
                    + state.recurring_expenses + state.installments
                    + state.goals + state.investments
                )
                created_at = datetime.now()
                for offset, entity in enumerate(entities):
                    db_model = get_db_model(type(entity))
                    session.add(db_model(
                        user_id=user_id,
                        created_at=created_at + timedelta(microseconds=offset),
                        **entity.model_dump()
                    ))

                row = session.get(UserSettingsDB, user_id)
                if row is None:
                    session.add(UserSettingsDB(
                        user_id=user_id, balance_offset=state.balance_offset, dark_mode=state.dark_mode
                    ))
                else:
                    row.balance_offset = state.balance_offset
                    row.dark_mode = state.dark_mode

                session.commit()
                logger.info(f"Состояние пользователя {user_id} заменено: {len(entities)} записей")
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Ошибка при замене состояния пользователя {user_id}: {e}")
                raise
