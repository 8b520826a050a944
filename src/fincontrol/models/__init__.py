"""Модели данных FinControl."""

from .enums import TransactionType, InstallmentStatus, GoalStatus
from .models import (
    Base,
    CategoryDB,
    CreditCardDB,
    TransactionDB,
    RecurringExpenseDB,
    InstallmentPurchaseDB,
    FinancialGoalDB,
    InvestmentDB,
    UserSettingsDB,
    CategoryCreate,
    Category,
    CreditCardCreate,
    CreditCard,
    TransactionCreate,
    Transaction,
    RecurringExpenseCreate,
    RecurringExpense,
    InstallmentPurchaseCreate,
    InstallmentPurchase,
    FinancialGoalCreate,
    FinancialGoal,
    InvestmentCreate,
    Investment,
    AppState,
    DEFAULT_CATEGORIES,
)

__all__ = [
    "TransactionType",
    "InstallmentStatus",
    "GoalStatus",
    "Base",
    "CategoryDB",
    "CreditCardDB",
    "TransactionDB",
    "RecurringExpenseDB",
    "InstallmentPurchaseDB",
    "FinancialGoalDB",
    "InvestmentDB",
    "UserSettingsDB",
    "CategoryCreate",
    "Category",
    "CreditCardCreate",
    "CreditCard",
    "TransactionCreate",
    "Transaction",
    "RecurringExpenseCreate",
    "RecurringExpense",
    "InstallmentPurchaseCreate",
    "InstallmentPurchase",
    "FinancialGoalCreate",
    "FinancialGoal",
    "InvestmentCreate",
    "Investment",
    "AppState",
    "DEFAULT_CATEGORIES",
]
