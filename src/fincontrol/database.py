"""
Модуль управления базой данных FinControl.

Содержит функции для:
- Инициализации базы данных и создания таблиц
- Управления сессиями БД через контекстный менеджер
- Создания встроенных категорий для нового пользователя

Путь к базе данных определяется в config.py через settings.db_path
"""

from contextlib import contextmanager
from typing import Generator, Optional
import logging
import atexit
from datetime import datetime, timedelta

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from fincontrol.config import settings

logger = logging.getLogger(__name__)


# Глобальные переменные для engine и session factory
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def init_default_categories(session: Session, user_id: str) -> int:
    """
    Создаёт встроенные категории, если у пользователя нет ни одной категории.

    Функция идемпотентна: при наличии категорий ничего не создаётся.

    Args:
        session: Активная сессия БД
        user_id: Пользователь

    Returns:
        Количество созданных категорий
    """
    from fincontrol.models import CategoryDB, DEFAULT_CATEGORIES

    try:
        existing_count = session.query(CategoryDB).filter(CategoryDB.user_id == user_id).count()

        if existing_count > 0:
            logger.debug(f"Категории пользователя {user_id} уже существуют ({existing_count} шт.)")
            return 0

        logger.info(f"Инициализация встроенных категорий для пользователя {user_id}...")

        # created_at задаёт порядок встроенных категорий при загрузке
        created_at = datetime.now()
        for offset, category in enumerate(DEFAULT_CATEGORIES):
            session.add(CategoryDB(
                user_id=user_id,
                created_at=created_at + timedelta(microseconds=offset),
                **category.model_dump()
            ))
            logger.debug(f"Добавлена категория: {category.name}")

        session.commit()

        logger.info(f"Успешно создано {len(DEFAULT_CATEGORIES)} встроенных категорий")
        return len(DEFAULT_CATEGORIES)

    except SQLAlchemyError as e:
        logger.error(f"Ошибка при инициализации категорий: {e}")
        session.rollback()
        raise


def init_db(database_url: Optional[str] = None) -> Engine:
    """
    Инициализирует подключение к базе данных и создаёт таблицы.

    Args:
        database_url: URL базы данных (по умолчанию SQLite по settings.db_path)
    """
    global _engine, _SessionLocal

    from fincontrol.models import Base

    try:
        if database_url is None:
            database_url = f"sqlite:///{settings.db_path}"

        logger.info(f"Инициализация базы данных: {database_url}")

        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        _engine = create_engine(database_url, connect_args=connect_args, echo=False)

        Base.metadata.create_all(bind=_engine)
        logger.info("Таблицы базы данных успешно созданы/проверены")

        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=_engine
        )

        # Регистрируем автоматическое закрытие при завершении процесса
        atexit.register(close_db)

        logger.info("База данных успешно инициализирована")
        return _engine

    except SQLAlchemyError as e:
        logger.error(f"Ошибка при инициализации базы данных: {e}")
        raise


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Контекстный менеджер для работы с сессией базы данных.
    """
    if _SessionLocal is None:
        error_msg = "База данных не инициализирована. Вызовите init_db() перед использованием."
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    session: Session = _SessionLocal()

    try:
        logger.debug("Создана новая сессия БД")
        yield session

    except SQLAlchemyError as e:
        logger.error(f"Ошибка SQLAlchemy, откат транзакции: {e}")
        session.rollback()
        raise

    except Exception as e:
        logger.error(f"Неожиданная ошибка, откат транзакции: {e}")
        session.rollback()
        raise

    finally:
        session.close()
        logger.debug("Сессия БД закрыта")


def close_db() -> None:
    """
    Закрывает соединение с базой данных и освобождает ресурсы.
    """
    global _engine, _SessionLocal

    if _engine is not None:
        logger.info("Закрытие соединения с базой данных...")
        _engine.dispose()
        _engine = None
        _SessionLocal = None
        logger.info("Соединение с базой данных закрыто")
