"""
Local Cache

Small JSON key-value store on disk. Holds the currently selected user and
an offline snapshot of each user's ledger, so the app still shows data
when the backend can't be reached.

Missing or corrupt files read as empty. Writes go through a .tmp file and
os.replace() so a crash mid-write never leaves a half-written cache.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.models.ledger import Expense, Income

CURRENT_USER_KEY = "current_user_id"
SNAPSHOT_PREFIX = "snapshot:"

logger = structlog.get_logger(__name__)


class LocalCache:
    """JSON-file backed cache."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict:
        """Returns {} on missing or corrupt file."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("cache_read_failed", path=str(self._path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            logger.warning("cache_write_failed", path=str(self._path), error=str(e))

    # Key-value access

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def clear_all(self) -> None:
        """Remove every cached value."""
        self._save({})

    # Current user

    def get_current_user_id(self) -> Optional[UUID]:
        value = self.get(CURRENT_USER_KEY)
        if not value:
            return None
        try:
            return UUID(value)
        except ValueError:
            return None

    def set_current_user_id(self, user_id: UUID) -> None:
        self.set(CURRENT_USER_KEY, str(user_id))

    def clear(self) -> None:
        """Forget the current user."""
        self.delete(CURRENT_USER_KEY)

    # Offline snapshots

    def save_snapshot(
        self,
        user_id: UUID,
        incomes: list[Income],
        expenses: list[Expense],
    ) -> None:
        """Store the user's ledger as last seen by the app."""
        self.set(
            SNAPSHOT_PREFIX + str(user_id),
            {
                "incomes": [i.model_dump(mode="json") for i in incomes],
                "expenses": [e.model_dump(mode="json") for e in expenses],
            },
        )

    def load_snapshot(self, user_id: UUID) -> Optional[tuple[list[Income], list[Expense]]]:
        """
        Read back a snapshot.

        Returns None when there is none or it can't be parsed.
        """
        raw = self.get(SNAPSHOT_PREFIX + str(user_id))
        if not isinstance(raw, dict):
            return None
        try:
            incomes = [Income.model_validate(i) for i in raw.get("incomes", [])]
            expenses = [Expense.model_validate(e) for e in raw.get("expenses", [])]
        except ValueError as e:
            logger.warning("snapshot_invalid", user_id=str(user_id), error=str(e))
            return None
        return incomes, expenses
