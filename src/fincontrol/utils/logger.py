"""
Настройка логирования FinControl.

Файл сеанса пишется в JSON (одна запись на строку), консоль получает
читаемый текст. Каждая запись помечается пользователем, чьё состояние
обрабатывается, поэтому логи сверки разных пользователей можно разделить.
"""

import json
import logging
import sys
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel

from fincontrol.config import settings

# Атрибуты LogRecord, которые не переносятся в JSON как поля extra
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(user_id)s | %(module)s:%(funcName)s | %(message)s'


class UserContextFilter(logging.Filter):
    """
    Добавляет user_id в записи, где он не передан через extra.

    Args:
        user_id: Пользователь текущего сеанса ("-", если не задан)
    """

    def __init__(self, user_id: Optional[str] = None):
        super().__init__()
        self.user_id = user_id or "-"

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "user_id"):
            record.user_id = self.user_id
        return True


class JsonFormatter(logging.Formatter):
    """Форматтер записи лога в JSON строку."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S'),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        # Поля extra: logger.info("...", extra={"month": "2024-05"})
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_record[key] = self._serialize_value(value)

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False)

    def _serialize_value(self, value: Any) -> Any:
        """
        Приводит значение extra к JSON-совместимому виду.

        Суммы остаются строками, чтобы не терять точность Decimal; сущности
        pydantic записываются словарём полей.
        """
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        return str(value)


def setup_logging(user_id: Optional[str] = None) -> None:
    """
    Настраивает корневой логгер на сеанс.

    Файл сеанса: <logs>/fincontrol_YYYYMMDD_HHMMSS.log. Если директорию или
    файл создать не удалось, логирование продолжается только в консоль.

    Args:
        user_id: Пользователь сеанса, подставляется во все записи
    """
    log_dir = Path(settings.log_file).parent
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.handlers = []

    context_filter = UserContextFilter(user_id)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.addFilter(context_filter)
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    root_logger.addHandler(console_handler)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    session_log_file = log_dir / f"fincontrol_{timestamp}.log"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(session_log_file, encoding='utf-8')
    except OSError as e:
        logging.error(f"Не удалось настроить файл логов {session_log_file}: {e}")
        return

    file_handler.addFilter(context_filter)
    file_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(file_handler)

    logging.info(f"Логи сеанса записываются в: {session_log_file}")


def get_logger(name: str) -> logging.Logger:
    """Логгер модуля (обычно get_logger(__name__))."""
    return logging.getLogger(name)
