"""
Сервис импорта состояния пользователя из файла.
"""

import json

from pydantic import ValidationError as PydanticValidationError

from fincontrol.backup.export_service import BACKUP_FORMAT_VERSION
from fincontrol.models import AppState
from fincontrol.repository import FinanceRepository
from fincontrol.utils.exceptions import ValidationError
from fincontrol.utils.logger import get_logger

logger = get_logger(__name__)


class ImportService:
    """
    Сервис для импорта состояния из JSON файлов.
    """

    @staticmethod
    def import_state(filepath: str) -> AppState:
        """
        Читает состояние из JSON файла резервной копии.

        Args:
            filepath: Путь к файлу импорта

        Returns:
            AppState: Прочитанное состояние

        Raises:
            FileNotFoundError: Файл не найден
            ValidationError: Некорректный формат файла или версия (подкласс ValueError)
        """
        logger.info(f"Начало импорта данных из {filepath}")

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(f"Файл импорта не найден: {filepath}")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Некорректный формат JSON в файле {filepath}: {e}")
            raise ValidationError(f"Некорректный формат файла: {e}")

        if not isinstance(data, dict):
            error_msg = "Некорректный формат файла: ожидается JSON объект"
            logger.error(error_msg)
            raise ValidationError(error_msg)

        # Проверка версии
        file_version = data.get("version")
        if file_version != BACKUP_FORMAT_VERSION:
            error_msg = f"Неподдерживаемая версия файла: {file_version}"
            logger.error(error_msg)
            raise ValidationError(error_msg)

        try:
            state = AppState.model_validate(data.get("state", {}))
        except PydanticValidationError as e:
            logger.error(f"Некорректные данные состояния в файле {filepath}: {e}")
            raise ValidationError(f"Некорректные данные состояния: {e}")

        logger.info(
            f"Импорт завершён: {len(state.transactions)} транзакций, "
            f"{len(state.categories)} категорий, {len(state.installments)} рассрочек"
        )
        return state

    @staticmethod
    def restore(repository: FinanceRepository, user_id: str, filepath: str) -> AppState:
        """
        Полностью заменяет сохранённое состояние пользователя содержимым файла.

        Args:
            repository: Хранилище
            user_id: Пользователь
            filepath: Путь к файлу резервной копии

        Returns:
            AppState: Восстановленное состояние
        """
        state = ImportService.import_state(filepath)
        repository.replace_state(user_id, state)
        logger.info(f"Состояние пользователя {user_id} восстановлено из {filepath}")
        return state
