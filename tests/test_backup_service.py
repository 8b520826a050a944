"""
Тесты резервного копирования (экспорт/импорт состояния).
"""

import json
from datetime import date
from decimal import Decimal

import pytest

from fincontrol.backup import BACKUP_FORMAT_VERSION, ExportService, ImportService
from fincontrol.models import AppState, InstallmentStatus
from test_factories import (
    create_test_category,
    create_test_goal,
    create_test_installment,
    create_test_recurring,
    create_test_transaction,
)


def sample_state() -> AppState:
    return AppState(
        balance_offset=Decimal('-250.75'),
        transactions=[
            create_test_transaction(description="(Fixo) Internet", is_recurring=True, date=date(2024, 5, 10)),
            create_test_transaction(description="Mercado", amount=Decimal('80.50'), date=date(2024, 5, 3)),
        ],
        categories=[create_test_category(id="cat_1", name="Alimentação")],
        recurring_expenses=[create_test_recurring(last_generated_month="2024-05")],
        installments=[create_test_installment(status=InstallmentStatus.COMPLETED)],
        goals=[create_test_goal(current_amount=Decimal('10.00'))],
        dark_mode=True,
    )


def test_export_then_import_preserves_state(tmp_path):
    state = sample_state()
    filepath = str(tmp_path / "backup.json")

    assert ExportService.export_state(state, filepath) == filepath

    assert ImportService.import_state(filepath) == state


def test_import_accepts_goal_below_zero(tmp_path):
    state = AppState(goals=[create_test_goal(current_amount=Decimal('-40.00'))])
    filepath = ExportService.export_state(state, str(tmp_path / "backup.json"))

    assert ImportService.import_state(filepath).goals[0].current_amount == Decimal('-40.00')


def test_export_file_format(tmp_path):
    filepath = ExportService.export_state(sample_state(), str(tmp_path / "backup.json"))

    with open(filepath, encoding="utf-8") as f:
        data = json.load(f)

    assert data["version"] == BACKUP_FORMAT_VERSION
    assert "export_date" in data
    assert data["state"]["categories"][0]["name"] == "Alimentação"


def test_export_default_path_in_exports_dir():
    filepath = ExportService.export_state(AppState())
    assert "exports" in filepath
    assert filepath.endswith(".json")


def test_import_rejects_unknown_version(tmp_path):
    filepath = tmp_path / "old.json"
    filepath.write_text(json.dumps({"version": "1.0.0", "state": {}}), encoding="utf-8")

    with pytest.raises(ValueError, match="версия"):
        ImportService.import_state(str(filepath))


def test_import_rejects_invalid_json(tmp_path):
    filepath = tmp_path / "broken.json"
    filepath.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        ImportService.import_state(str(filepath))


def test_import_rejects_invalid_state(tmp_path):
    filepath = tmp_path / "bad_state.json"
    filepath.write_text(json.dumps({
        "version": BACKUP_FORMAT_VERSION,
        "state": {"transactions": [{"id": "t1", "amount": "-5", "type": "expense", "category_id": "cat_1"}]},
    }), encoding="utf-8")

    with pytest.raises(ValueError):
        ImportService.import_state(str(filepath))


def test_import_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ImportService.import_state(str(tmp_path / "missing.json"))


def test_restore_replaces_stored_state(tmp_path, repository):
    repository.save_entity("u1", create_test_transaction(description="será apagada"))
    state = sample_state()
    filepath = ExportService.export_state(state, str(tmp_path / "backup.json"))

    restored = ImportService.restore(repository, "u1", filepath)

    loaded = repository.load_state("u1")
    assert restored == state
    assert [t.id for t in loaded.transactions] == [t.id for t in state.transactions]
    assert loaded.balance_offset == Decimal('-250.75')
    assert loaded.dark_mode is True
    assert loaded.installments[0].status == InstallmentStatus.COMPLETED
