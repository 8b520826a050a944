"""
Модуль конфигурации FinControl.

Содержит настройки:
- Основные параметры приложения (название, версия)
- Пути к пользовательским данным (БД, логи, экспорты)
- Настройки логирования
- Параметры сверки (окно напоминаний о фиксированных расходах)
- Политику повторов записи в хранилище
- Персистентность настроек (загрузка/сохранение)
"""

import os
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class Config:
    """
    Класс конфигурации приложения.
    Реализует паттерн Singleton для доступа к настройкам из любой части приложения.

    Все пользовательские данные (БД, логи, настройки, экспорты) хранятся в
    директории ~/.fincontrol_data/ (или в FINCONTROL_DATA_DIR, если задана).
    """

    _instance = None

    # Константы приложения
    APP_NAME = "FinControl"
    VERSION = "2.0.0"

    @staticmethod
    def get_user_data_dir() -> Path:
        """
        Возвращает путь к директории пользовательских данных.

        Создаёт директорию и необходимые поддиректории:
        - logs/ - для файлов логов
        - exports/ - для резервных копий

        Returns:
            Path: Путь к директории данных
        """
        env_dir = os.environ.get("FINCONTROL_DATA_DIR")
        data_dir = Path(env_dir) if env_dir else Path.home() / ".fincontrol_data"

        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Директория пользовательских данных: {data_dir}")

        logs_dir = data_dir / "logs"
        logs_dir.mkdir(exist_ok=True)
        logger.debug(f"Директория логов: {logs_dir}")

        exports_dir = data_dir / "exports"
        exports_dir.mkdir(exist_ok=True)
        logger.debug(f"Директория экспортов: {exports_dir}")

        return data_dir

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True

        self.user_data_dir = self.get_user_data_dir()

        # Пути к файлам
        self.db_path: str = str(self.user_data_dir / "fincontrol.db")
        self.config_file: str = str(self.user_data_dir / "config.json")
        self.log_file: str = str(self.user_data_dir / "logs" / "fincontrol.log")

        # Настройки логирования
        self.log_level: str = "INFO"

        # Настройки форматов
        self.date_format: str = "%d/%m/%Y"
        self.currency_symbol: str = "R$"

        # За сколько дней до срока фиксированный расход попадает в напоминания
        self.near_due_window_days: int = 5

        # Повторы записи в хранилище (1 = без повторов)
        self.persistence_retry_attempts: int = 3
        self.persistence_retry_max_wait: float = 2.0

        self.load()

    def load(self) -> None:
        """
        Загружает настройки из файла конфигурации.

        Если файл не существует, используются значения по умолчанию.
        Пути к БД и логам не загружаются из конфигурации.
        """
        if not os.path.exists(self.config_file):
            logger.info(f"Файл конфигурации не найден, используются значения по умолчанию: {self.config_file}")
            return

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            self.log_level = data.get("log_level", "INFO")
            self.date_format = data.get("date_format", "%d/%m/%Y")
            self.currency_symbol = data.get("currency_symbol", "R$")
            self.near_due_window_days = int(data.get("near_due_window_days", 5))
            self.persistence_retry_attempts = max(1, int(data.get("persistence_retry_attempts", 3)))
            self.persistence_retry_max_wait = float(data.get("persistence_retry_max_wait", 2.0))

            logger.info(f"Конфигурация загружена из {self.config_file}")

        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Ошибка при загрузке конфигурации: {e}")

    def save(self) -> None:
        """Сохраняет текущие настройки в файл конфигурации."""
        data = {
            "log_level": self.log_level,
            "date_format": self.date_format,
            "currency_symbol": self.currency_symbol,
            "near_due_window_days": self.near_due_window_days,
            "persistence_retry_attempts": self.persistence_retry_attempts,
            "persistence_retry_max_wait": self.persistence_retry_max_wait,
        }

        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=4, ensure_ascii=False)
            logger.info(f"Конфигурация сохранена в {self.config_file}")
        except OSError as e:
            logger.error(f"Ошибка при сохранении конфигурации: {e}")


# Глобальный экземпляр конфигурации
settings = Config()
