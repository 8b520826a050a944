"""
Сервис экспорта состояния пользователя в файл.
"""

import json
from datetime import datetime
from typing import Optional

from fincontrol.config import settings
from fincontrol.models import AppState
from fincontrol.utils.logger import get_logger

logger = get_logger(__name__)

BACKUP_FORMAT_VERSION = "2.0.0"


class ExportService:
    """
    Сервис для экспорта состояния в JSON файлы.

    Экспортирует всё состояние пользователя:
    - Транзакции, категории, карты
    - Фиксированные расходы и рассрочки
    - Цели и инвестиции
    - Смещение баланса и тему
    """

    @staticmethod
    def export_state(state: AppState, filepath: Optional[str] = None) -> str:
        """
        Экспортирует состояние в JSON файл.

        Args:
            state: Состояние пользователя
            filepath: Путь к файлу экспорта. Если None - создаётся автоматически
                     в директории <data_dir>/exports/

        Returns:
            str: Путь к созданному файлу

        Raises:
            OSError: Ошибка записи файла
        """
        if filepath is None:
            export_dir = settings.user_data_dir / "exports"
            export_dir.mkdir(exist_ok=True)

            timestamp = datetime.now().strftime("%Y_%m_%d_%H%M%S")
            filepath = str(export_dir / f"backup_{timestamp}.json")

        logger.info(f"Начало экспорта данных в {filepath}")

        data = {
            "version": BACKUP_FORMAT_VERSION,
            "export_date": datetime.now().isoformat(),
            "state": state.model_dump(mode="json"),
        }

        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            logger.info(
                f"Экспорт завершён: {filepath} "
                f"({len(state.transactions)} транзакций, {len(state.installments)} рассрочек)"
            )
            return filepath

        except OSError as e:
            logger.error(f"Ошибка при записи файла экспорта {filepath}: {e}")
            raise
