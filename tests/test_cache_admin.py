"""
Tests for the cache admin script.
"""

import importlib.util
import json
from pathlib import Path

import pytest

from consult_cache.config import Settings
from consult_cache.services.smart_cache import SmartCache
from consult_cache.storage import SQLiteKeyValueStore

SCRIPT_PATH = Path(__file__).resolve().parent.parent / "scripts" / "cache_admin.py"


@pytest.fixture(scope="module")
def cache_admin():
    spec = importlib.util.spec_from_file_location("cache_admin", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def open_cache(db_path: str) -> SmartCache:
    settings = Settings(storage_backend="sqlite", storage_path=db_path)
    return SmartCache(SQLiteKeyValueStore(db_path), settings=settings)


def test_export_then_import_round_trip(cache_admin, tmp_path):
    source_db = str(tmp_path / "source.db")
    target_db = str(tmp_path / "target.db")
    snapshot = tmp_path / "backup" / "cache.json"

    source = open_cache(source_db)
    source.auto_save("p1", {"name": "Ana"}, 2, form_type="adult")
    source.save_template("Diabetes Plan", "adult", {"diet": "low sugar"})

    assert cache_admin.main(["--db", source_db, "export", "--output", str(snapshot)]) is True
    assert len(json.loads(snapshot.read_text(encoding="utf-8"))["entries"]) == 2

    assert cache_admin.main(["--db", target_db, "import", "--input", str(snapshot)]) is True

    target = open_cache(target_db)
    assert target.get_template("diabetes plan", "adult") == {"diet": "low sugar"}
    assert target.get_latest_draft("p1")["formData"] == {"name": "Ana"}


def test_import_of_missing_snapshot_fails(cache_admin, tmp_path):
    assert cache_admin.main(["--db", str(tmp_path / "c.db"), "import", "--input", str(tmp_path / "none.json")]) is False


def test_clear_removes_one_type(cache_admin, tmp_path, capsys):
    db = str(tmp_path / "c.db")
    cache = open_cache(db)
    cache.auto_save("p1", {}, 1)
    cache.save_template("Plan", "adult", {})

    assert cache_admin.main(["--db", db, "clear", "--type", "draft"]) is True

    assert "Removed 1 draft entries" in capsys.readouterr().out
    assert [e.type.value for e in open_cache(db).find()] == ["template"]
