"""Settings repository: the SQLite-backed preference store."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import Setting
from .database import Database


class SettingsRepository:
    """Key-value preferences persisted in the ``settings`` table.

    Satisfies ``core.protocols.PreferenceStore``. Keys are dotted
    (``gemini.model``); the first segment is stored as the category.
    """

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _category_for(key: str) -> str:
        return key.split(".", 1)[0] if "." in key else "general"

    @staticmethod
    def _row_to_setting(row) -> Setting:
        return Setting(
            key=row["key"],
            value=row["value"],
            category=row["category"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get_setting(self, key: str) -> Optional[Setting]:
        conn = self._db.get_connection()
        cursor = conn.execute(
            "SELECT key, value, category, updated_at FROM settings WHERE key = ?",
            (key,),
        )
        row = cursor.fetchone()
        return self._row_to_setting(row) if row is not None else None

    def get(self, key: str, default: str = "") -> str:
        setting = self.get_setting(key)
        return setting.value if setting else default

    def set(self, key: str, value: str, category: Optional[str] = None) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO settings (key, value, category, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                category = excluded.category,
                updated_at = excluded.updated_at
            """,
            (key, value, category or self._category_for(key), datetime.now().isoformat()),
        )
        conn.commit()
