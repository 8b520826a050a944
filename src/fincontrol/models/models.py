"""
Модуль моделей данных FinControl.

Содержит:
- SQLAlchemy модели строк хранилища (*DB), каждая строка принадлежит user_id
- Pydantic модели предметной области с валидацией (*Create для ввода,
  модели без суффикса для чтения)
- AppState - агрегат состояния одного пользователя
- DEFAULT_CATEGORIES - встроенные категории для нового пользователя
"""

from datetime import datetime
from datetime import date as date_type
from typing import List, Optional
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, Enum as SQLEnum, Boolean, Index
from sqlalchemy.orm import DeclarativeBase
from pydantic import BaseModel, field_validator, Field, ConfigDict, computed_field

from .enums import TransactionType, InstallmentStatus, GoalStatus
from fincontrol.utils.validation import validate_day_of_month, validate_month_key


# Декларативная база для SQLAlchemy моделей
class Base(DeclarativeBase):
    """Базовый класс для всех SQLAlchemy моделей."""
    pass


# =============================================================================
# SQLAlchemy модели
# =============================================================================
# Первичный ключ каждой таблицы - (user_id, id): встроенные категории
# имеют фиксированные id, одинаковые у всех пользователей.


class CategoryDB(Base):
    """
    Категория для классификации транзакций.

    Attributes:
        user_id: Владелец записи
        id: Идентификатор категории
        name: Название категории
        color: Цвет для отображения (#rrggbb)
        is_default: Признак встроенной категории
    """
    __tablename__ = "categories"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    color = Column(String(16), nullable=False, default="#6366f1")
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class CreditCardDB(Base):
    """
    Кредитная карта.

    Attributes:
        limit: Кредитный лимит
        closing_day: День закрытия счёта (1-31)
        due_day: День оплаты счёта (1-31)
        manual_invoice_value: Сумма счёта, введённая вручную (перекрывает расчётную)
    """
    __tablename__ = "cards"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    limit = Column(Numeric(12, 2), nullable=False)
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    manual_invoice_value = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class TransactionDB(Base):
    """
    Фактическая финансовая транзакция (доход или расход).

    Attributes:
        amount: Сумма транзакции (положительное число)
        type: Тип транзакции
        date: Дата транзакции
        category_id: Ссылка на категорию
        card_id: Ссылка на кредитную карту (если оплачено картой)
        goal_id: Ссылка на финансовую цель (взнос в цель)
        installment_id: Ссылка на покупку в рассрочку (сгенерированный взнос)
        recurring_expense_id: Ссылка на фиксированный расход (сгенерированный платёж)
        is_recurring: Признак транзакции фиксированного расхода
    """
    __tablename__ = "transactions"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    description = Column(String, nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(SQLEnum(TransactionType), nullable=False)
    date = Column(Date, nullable=False)
    category_id = Column(String(36), nullable=False)
    card_id = Column(String(36), nullable=True)
    goal_id = Column(String(36), nullable=True)
    installment_id = Column(String(36), nullable=True)
    recurring_expense_id = Column(String(36), nullable=True)
    is_recurring = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index('ix_transactions_user_id_date', 'user_id', 'date'),
        Index('ix_transactions_user_id_installment_id', 'user_id', 'installment_id'),
    )


class RecurringExpenseDB(Base):
    """
    Фиксированный ежемесячный расход.

    Attributes:
        due_day: День месяца, начиная с которого расход считается наступившим
        active: Неактивные расходы не генерируют транзакции
        last_generated_month: Месяц (YYYY-MM), за который расход уже учтён
    """
    __tablename__ = "recurring_expenses"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category_id = Column(String(36), nullable=False)
    due_day = Column(Integer, nullable=False)
    active = Column(Boolean, default=True)
    last_generated_month = Column(String(7), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class InstallmentPurchaseDB(Base):
    """
    Покупка в рассрочку.

    Количество оплаченных взносов не хранится: оно вычисляется по
    транзакциям с installment_id этой покупки.
    """
    __tablename__ = "installment_purchases"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    description = Column(String, nullable=False)
    category_id = Column(String(36), nullable=False)
    card_id = Column(String(36), nullable=True)
    total_installments = Column(Integer, nullable=False)
    installment_amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False)
    purchase_date = Column(Date, nullable=False)
    due_day = Column(Integer, nullable=False)
    status = Column(SQLEnum(InstallmentStatus), nullable=False, default=InstallmentStatus.ACTIVE)
    last_generated_month = Column(String(7), nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class FinancialGoalDB(Base):
    """Финансовая цель (накопление)."""
    __tablename__ = "goals"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    deadline = Column(Date, nullable=True)
    status = Column(SQLEnum(GoalStatus), nullable=False, default=GoalStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class InvestmentDB(Base):
    """Инвестиция; current_amount обновляется пользователем вручную."""
    __tablename__ = "investments"

    user_id = Column(String(64), primary_key=True)
    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    initial_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    category_id = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class UserSettingsDB(Base):
    """
    Настройки пользователя.

    Attributes:
        balance_offset: Смещение баланса (см. bookkeeping_service.solve_balance_offset)
        dark_mode: Тёмная тема интерфейса
    """
    __tablename__ = "user_settings"

    user_id = Column(String(64), primary_key=True)
    balance_offset = Column(Numeric(14, 2), nullable=False, default=Decimal('0'))
    dark_mode = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


# =============================================================================
# Pydantic модели предметной области
# =============================================================================

class CategoryCreate(BaseModel):
    """
    Pydantic модель для создания категории.

    Attributes:
        name: Название категории (не может быть пустым)
        color: Цвет для отображения
        is_default: Признак встроенной категории
    """
    name: str
    color: str = "#6366f1"
    is_default: bool = False

    @field_validator('name')
    @classmethod
    def name_not_empty_and_trim(cls, v: str) -> str:
        """Проверка, что название не пустое; обрезка пробелов."""
        if not v or not v.strip():
            raise ValueError('Название категории не может быть пустым')
        return v.strip()


class Category(CategoryCreate):
    """Категория, прочитанная из хранилища."""
    id: str

    model_config = ConfigDict(from_attributes=True)


class CreditCardCreate(BaseModel):
    """
    Pydantic модель для создания кредитной карты.
    """
    name: str = Field(min_length=1)
    limit: Decimal = Field(ge=Decimal('0'))
    closing_day: int
    due_day: int
    manual_invoice_value: Optional[Decimal] = Field(None, ge=Decimal('0'))

    @field_validator('closing_day', 'due_day')
    @classmethod
    def validate_day(cls, v: int) -> int:
        """Валидация дня месяца."""
        return validate_day_of_month(v)


class CreditCard(CreditCardCreate):
    """Кредитная карта, прочитанная из хранилища."""
    id: str

    model_config = ConfigDict(from_attributes=True)


class TransactionCreate(BaseModel):
    """
    Pydantic модель для создания транзакции с валидацией.

    Attributes:
        description: Описание транзакции
        amount: Сумма транзакции (должна быть больше 0)
        type: Тип транзакции (доход или расход)
        date: Дата транзакции (по умолчанию текущая дата)
        category_id: ID категории
        card_id: ID кредитной карты (необязательно)
        goal_id: ID финансовой цели (необязательно)
        installment_id: ID покупки в рассрочку (для сгенерированных взносов)
        recurring_expense_id: ID фиксированного расхода (для сгенерированных платежей)
        is_recurring: Признак транзакции фиксированного расхода
    """
    description: str = ""
    amount: Decimal = Field(gt=Decimal('0'), description="Сумма транзакции должна быть положительной")
    type: TransactionType
    date: date_type = Field(default_factory=date_type.today)
    category_id: str
    card_id: Optional[str] = None
    goal_id: Optional[str] = None
    installment_id: Optional[str] = None
    recurring_expense_id: Optional[str] = None
    is_recurring: bool = False


class Transaction(TransactionCreate):
    """
    Транзакция, прочитанная из хранилища (с присвоенным id).
    """
    id: str

    model_config = ConfigDict(from_attributes=True)


class RecurringExpenseCreate(BaseModel):
    """
    Pydantic модель для создания фиксированного расхода.

    Attributes:
        name: Название (используется и для поиска по отпечатку)
        amount: Ежемесячная сумма
        category_id: ID категории
        due_day: День месяца, начиная с которого расход генерируется
        active: Признак активности
    """
    name: str = Field(min_length=1)
    amount: Decimal = Field(gt=Decimal('0'))
    category_id: str
    due_day: int
    active: bool = True

    @field_validator('due_day')
    @classmethod
    def validate_due_day(cls, v: int) -> int:
        """Валидация дня месяца."""
        return validate_day_of_month(v, "due_day")


class RecurringExpense(RecurringExpenseCreate):
    """
    Фиксированный расход, прочитанный из хранилища.

    last_generated_month - месяц (YYYY-MM), за который расход уже учтён;
    None, если ещё не генерировался.
    """
    id: str
    last_generated_month: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator('last_generated_month')
    @classmethod
    def validate_last_month(cls, v: Optional[str]) -> Optional[str]:
        """Пустая строка трактуется как отсутствие значения."""
        if not v:
            return None
        return validate_month_key(v, "last_generated_month")


class InstallmentPurchaseCreate(BaseModel):
    """
    Pydantic модель для создания покупки в рассрочку.

    Attributes:
        description: Описание покупки (основа описаний взносов)
        category_id: ID категории
        card_id: ID кредитной карты (необязательно)
        total_installments: Количество взносов (не меньше 2)
        installment_amount: Сумма одного взноса
        purchase_date: Дата покупки
        due_day: День месяца, начиная с которого взнос генерируется
        notes: Примечания
    """
    description: str = Field(min_length=1)
    category_id: str
    card_id: Optional[str] = None
    total_installments: int = Field(ge=2)
    installment_amount: Decimal = Field(gt=Decimal('0'))
    purchase_date: date_type = Field(default_factory=date_type.today)
    due_day: int
    notes: Optional[str] = None

    @field_validator('due_day')
    @classmethod
    def validate_due_day(cls, v: int) -> int:
        """Валидация дня месяца."""
        return validate_day_of_month(v, "due_day")

    @computed_field
    @property
    def total_amount(self) -> Decimal:
        """Общая сумма покупки: количество взносов × сумма взноса."""
        return self.installment_amount * self.total_installments


class InstallmentPurchase(InstallmentPurchaseCreate):
    """
    Покупка в рассрочку, прочитанная из хранилища.

    status - кэш, согласованный с количеством оплаченных взносов
    каждым путём изменения; сам счётчик не хранится.
    """
    id: str
    status: InstallmentStatus = InstallmentStatus.ACTIVE
    last_generated_month: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator('last_generated_month')
    @classmethod
    def validate_last_month(cls, v: Optional[str]) -> Optional[str]:
        """Пустая строка трактуется как отсутствие значения."""
        if not v:
            return None
        return validate_month_key(v, "last_generated_month")


class FinancialGoalCreate(BaseModel):
    """
    Pydantic модель для создания финансовой цели.
    """
    name: str = Field(min_length=1)
    target_amount: Decimal = Field(gt=Decimal('0'))
    current_amount: Decimal = Field(Decimal('0'), ge=Decimal('0'))
    deadline: Optional[date_type] = None
    status: GoalStatus = GoalStatus.ACTIVE


class FinancialGoal(FinancialGoalCreate):
    """
    Финансовая цель, прочитанная из хранилища.

    current_amount может быть отрицательным: накопления меняются и вручную,
    и при удалении привязанных доходов.
    """
    id: str
    current_amount: Decimal = Decimal('0')

    model_config = ConfigDict(from_attributes=True)


class InvestmentCreate(BaseModel):
    """
    Pydantic модель для создания инвестиции.

    Attributes:
        type: Вид инвестиции (акции, облигации, крипто и т.д.)
        initial_amount: Вложенная сумма
        current_amount: Текущая рыночная стоимость (обновляется вручную)
    """
    name: str = Field(min_length=1)
    type: str
    initial_amount: Decimal = Field(ge=Decimal('0'))
    current_amount: Decimal = Field(ge=Decimal('0'))
    start_date: date_type = Field(default_factory=date_type.today)
    category_id: str


class Investment(InvestmentCreate):
    """Инвестиция, прочитанная из хранилища."""
    id: str

    model_config = ConfigDict(from_attributes=True)


class AppState(BaseModel):
    """
    Агрегат состояния одного пользователя.

    Отображаемый баланс не хранится: он всегда равен
    balance_offset + доходы за всё время - расходы за всё время.
    Транзакции упорядочены от последней добавленной к первой.
    """
    balance_offset: Decimal = Decimal('0')
    transactions: List[Transaction] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    cards: List[CreditCard] = Field(default_factory=list)
    recurring_expenses: List[RecurringExpense] = Field(default_factory=list)
    installments: List[InstallmentPurchase] = Field(default_factory=list)
    goals: List[FinancialGoal] = Field(default_factory=list)
    investments: List[Investment] = Field(default_factory=list)
    dark_mode: bool = False


DEFAULT_CATEGORIES: List[Category] = [
    Category(id="cat_1", name="Alimentação", color="#10b981", is_default=True),
    Category(id="cat_2", name="Moradia", color="#f59e0b", is_default=True),
    Category(id="cat_3", name="Transporte", color="#3b82f6", is_default=True),
    Category(id="cat_4", name="Saúde", color="#ef4444", is_default=True),
    Category(id="cat_5", name="Lazer", color="#8b5cf6", is_default=True),
    Category(id="cat_6", name="Educação", color="#ec4899", is_default=True),
    Category(id="cat_7", name="Investimentos", color="#6366f1", is_default=True),
    Category(id="cat_8", name="Salário", color="#14b8a6", is_default=True),
    Category(id="cat_9", name="Telefonia", color="#0ea5e9", is_default=True),
    Category(id="cat_10", name="Manutenções da casa", color="#f97316", is_default=True),
]
