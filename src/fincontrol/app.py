import sys
from datetime import date
from typing import Optional

from fincontrol.config import settings
from fincontrol.database import init_db, get_db_session
from fincontrol.repository import SqlAlchemyRepository
from fincontrol.services import FinanceStore
from fincontrol.services.dashboard_service import (
    get_card_usage,
    get_month_summary,
    get_near_due_recurring,
)
from fincontrol.utils.dates import get_month_key
from fincontrol.utils.logger import setup_logging, get_logger

logger = get_logger(__name__)

DEFAULT_USER_ID = "local"


def log_dashboard(store: FinanceStore, today: date) -> None:
    """Выводит в лог краткую сводку панели управления."""
    state = store.state
    summary = get_month_summary(state.transactions, get_month_key(today))
    currency = settings.currency_symbol

    logger.info(f"Баланс: {currency} {store.balance}")
    logger.info(
        f"Месяц {summary.month_key}: доходы {currency} {summary.income}, "
        f"расходы {currency} {summary.expense}, итог {currency} {summary.net}"
    )
    for card in state.cards:
        usage = get_card_usage(card, state.transactions)
        logger.info(f"Карта '{card.name}': счёт {currency} {usage.invoice}, доступно {currency} {usage.available_limit}")
    for expense in get_near_due_recurring(state.recurring_expenses, today):
        logger.info(f"Скоро срок: '{expense.name}' ({currency} {expense.amount}) - день {expense.due_day}")


def main(user_id: str = DEFAULT_USER_ID, today: Optional[date] = None) -> Optional[FinanceStore]:
    # 1. Настройка логирования
    setup_logging(user_id)
    logger.info(f"Запуск {settings.APP_NAME} {settings.VERSION} для пользователя {user_id}")

    # 2. Инициализация БД
    try:
        init_db()
    except Exception as e:
        logger.error(f"Ошибка инициализации БД: {e}")
        return None

    # 3. Загрузка состояния и сверка
    today = today or date.today()
    try:
        store = FinanceStore.load(SqlAlchemyRepository(get_db_session), user_id, reconcile=True, today=today)
    except Exception as e:
        logger.error(f"Ошибка загрузки состояния пользователя {user_id}: {e}")
        return None

    log_dashboard(store, today)
    return store


def run() -> None:
    """Точка входа консольного скрипта: fincontrol [user_id]."""
    user_id = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_USER_ID
    if main(user_id) is None:
        sys.exit(1)
