"""
Конфигурация pytest для тестов fincontrol.
"""
import os
import tempfile
from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Пользовательские данные тестов не должны попадать в домашнюю директорию
os.environ.setdefault("FINCONTROL_DATA_DIR", tempfile.mkdtemp(prefix="fincontrol_test_"))

from fincontrol.config import settings
from fincontrol.models import Base
from fincontrol.repository import SqlAlchemyRepository
from fincontrol.services.finance_store import FinanceStore

TEST_USER_ID = "user_1"


@pytest.fixture
def db_session():
    """
    Централизованная фикстура для создания временной БД и сессии.
    Автоматически закрывает соединение после теста.
    """
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def session_factory():
    """
    Фабрика сессий над общей БД в памяти.

    Каждый вызов возвращает контекстный менеджер новой сессии, как
    database.get_db_session.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)

    @contextmanager
    def factory():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    yield factory

    engine.dispose()


@pytest.fixture
def repository(session_factory):
    """SqlAlchemyRepository над БД в памяти."""
    return SqlAlchemyRepository(session_factory)


@pytest.fixture
def store(repository):
    """Хранилище состояния пользователя, загруженное без сверки."""
    return FinanceStore.load(repository, TEST_USER_ID, reconcile=False)


@pytest.fixture
def fast_retries(monkeypatch):
    """Одна попытка записи без ожидания между повторами."""
    monkeypatch.setattr(settings, "persistence_retry_attempts", 1)
    monkeypatch.setattr(settings, "persistence_retry_max_wait", 0)
