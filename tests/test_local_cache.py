"""Tests for the JSON-file cache."""

from decimal import Decimal
from uuid import uuid4

from finance_tracker.models.ledger import Expense, ExpenseItem, Income
from finance_tracker.services.cache import LocalCache


class TestKeyValue:
    """Tests for plain key-value access."""

    def test_missing_file_reads_as_empty(self, tmp_path):
        cache = LocalCache(tmp_path / "nope.json")
        assert cache.get("anything") is None
        assert cache.get("anything", "default") == "default"

    def test_set_get_delete(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        cache.set("theme", "dark")
        assert LocalCache(tmp_path / "cache.json").get("theme") == "dark"
        cache.delete("theme")
        assert cache.get("theme") is None

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding="utf-8")
        cache = LocalCache(path)
        assert cache.get("theme") is None
        cache.set("theme", "light")
        assert cache.get("theme") == "light"

    def test_creates_parent_directory(self, tmp_path):
        cache = LocalCache(tmp_path / "nested" / "dir" / "cache.json")
        cache.set("a", 1)
        assert cache.path.exists()

    def test_clear_all(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        cache.set("a", 1)
        cache.set_current_user_id(uuid4())
        cache.clear_all()
        assert cache.get("a") is None
        assert cache.get_current_user_id() is None


class TestCurrentUser:
    """Tests for the remembered user selection."""

    def test_round_trip(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        user_id = uuid4()
        cache.set_current_user_id(user_id)
        assert cache.get_current_user_id() == user_id
        cache.clear()
        assert cache.get_current_user_id() is None

    def test_garbage_id_is_ignored(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        cache.set("current_user_id", "not-a-uuid")
        assert cache.get_current_user_id() is None


class TestSnapshots:
    """Tests for the offline ledger snapshot."""

    def test_snapshot_reads_back_verbatim(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        user_id = uuid4()
        income = Income(
            user_id=user_id, month="2024-08", month_name="August 2024",
            salary=Decimal("5000000"),
        )
        expense = Expense(
            user_id=user_id, month="2024-08", month_name="August 2024",
            expense_items=[
                ExpenseItem(label="Food", amount=Decimal("1200000.50")),
            ],
        )
        cache.save_snapshot(user_id, [income], [expense])

        incomes, expenses = cache.load_snapshot(user_id)
        assert incomes[0].id == income.id
        assert incomes[0].salary == Decimal("5000000")
        assert expenses[0].total_expenses == Decimal("1200000.50")
        assert expenses[0].expense_items[0].expense_id == expense.id

    def test_snapshots_are_per_user(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        cache.save_snapshot(uuid4(), [], [])
        assert cache.load_snapshot(uuid4()) is None

    def test_invalid_snapshot_is_none(self, tmp_path):
        cache = LocalCache(tmp_path / "cache.json")
        user_id = uuid4()
        cache.set(f"snapshot:{user_id}", {"incomes": [{"month": "bad"}]})
        assert cache.load_snapshot(user_id) is None
