"""
Модуль пользовательских исключений приложения.
"""

class FinControlError(Exception):
    """Базовый класс для всех исключений приложения."""
    pass

class ValidationError(FinControlError, ValueError):
    """Исключение при ошибке валидации данных (ввод, файл резервной копии)."""
    pass

class BusinessLogicError(FinControlError):
    """Исключение при нарушении бизнес-правил (например, удаление используемой категории)."""
    pass

class PersistenceError(FinControlError):
    """Исключение при ошибках записи или чтения хранилища."""
    pass
