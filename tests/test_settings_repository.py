"""Tests for settings repository helpers."""

from pathlib import Path

from core.persistence import Database
from core.persistence.settings_repository import SettingsRepository


def test_settings_repository_get_set(tmp_path: Path) -> None:
    db = Database(tmp_path / "settings.db")
    repo = SettingsRepository(db)

    assert repo.get("gemini.model") == ""
    assert repo.get("gemini.model", "fallback") == "fallback"
    assert repo.get_setting("gemini.model") is None

    repo.set("gemini.model", "gemini-1.5-pro")
    repo.set("gemini.model", "gemini-2.5-flash")
    assert repo.get("gemini.model") == "gemini-2.5-flash"


def test_settings_repository_categories(tmp_path: Path) -> None:
    db = Database(tmp_path / "settings.db")
    repo = SettingsRepository(db)

    repo.set("gemini.system_prompt", "Be brief.")
    repo.set("plain", "4")
    repo.set("custom.key", "5", "other")

    assert repo.get_setting("gemini.system_prompt").category == "gemini"
    assert repo.get_setting("plain").category == "general"
    assert repo.get_setting("custom.key").category == "other"


def test_settings_survive_reopen(tmp_path: Path) -> None:
    db = Database(tmp_path / "settings.db")
    SettingsRepository(db).set("gemini.system_prompt", "Be brief.")
    db.close()

    reopened = SettingsRepository(Database(tmp_path / "settings.db"))
    assert reopened.get("gemini.system_prompt") == "Be brief."
