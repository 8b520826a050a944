"""
Модуль резервного копирования.

Содержит:
- Экспорт состояния пользователя в JSON файл
- Импорт и восстановление состояния из JSON файла
"""

from fincontrol.backup.export_service import ExportService, BACKUP_FORMAT_VERSION
from fincontrol.backup.import_service import ImportService

__all__ = [
    "ExportService",
    "ImportService",
    "BACKUP_FORMAT_VERSION",
]
