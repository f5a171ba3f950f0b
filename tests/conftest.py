"""Pytest fixtures for stamp card tests."""

from datetime import datetime, timedelta, timezone

import pytest
from postgrest.exceptions import APIError

from app.core.config import Settings
from app.services.stamps import create_stamp_engine
from database.sqlite import SQLiteStorage
from database.supabase_store import SupabaseStorage

QR_SECRET = "PASTA123"


class FakeClock:
    """Controllable replacement for utcnow."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    async def on_wallet_changed(self, customer, wallet):
        self.calls.append((customer.id, wallet.stamps))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        qr_secret=QR_SECRET,
        storage_backend="sqlite",
        database_path=str(tmp_path / "data" / "loyalty.sqlite"),
        supabase_url="",
        supabase_secret_key="",
    )


@pytest.fixture
async def storage(settings):
    store = SQLiteStorage(settings.database_path)
    await store.init_schema()
    yield store
    await store.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(settings, storage, clock, notifier):
    return create_stamp_engine(settings, storage, notifier=notifier, clock=clock)


# ---------------------------------------------------------------------------
# Supabase (PostgREST builder faked in memory)
# ---------------------------------------------------------------------------

class FakeResult:
    def __init__(self, data):
        self.data = data


def unquote_filter_value(value: str) -> str:
    if value.startswith('"') and value.endswith('"'):
        value = value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return value


class FakeQuery:
    def __init__(self, rows: list, unique: tuple = ()):
        self.rows = rows
        self.unique = unique
        self.op = "select"
        self.values = None
        self.conflict_key = None
        self.filters = []
        self.max_rows = None

    def select(self, columns):
        self.op = "select"
        return self

    def update(self, values):
        self.op = "update"
        self.values = values
        return self

    def upsert(self, values, on_conflict, ignore_duplicates=False):
        assert ignore_duplicates
        self.op = "upsert"
        self.values = values
        self.conflict_key = on_conflict
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def or_(self, expression):
        clauses = []
        for clause in expression.split(","):
            column, _, value = clause.split(".", 2)
            clauses.append((column, unquote_filter_value(value)))
        self.filters.append(lambda row: any(row.get(c) == v for c, v in clauses))
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        if self.op == "upsert":
            key = self.values[self.conflict_key]
            if any(row[self.conflict_key] == key for row in self.rows):
                return FakeResult([])
            for column in self.unique:
                value = self.values.get(column)
                if value is not None and any(row.get(column) == value for row in self.rows):
                    raise APIError({
                        "code": "23505",
                        "message": f'duplicate key value violates unique constraint "customers_{column}_key"',
                        "details": None,
                        "hint": None,
                    })
            self.rows.append(dict(self.values))
            return FakeResult([])

        matched = [row for row in self.rows if all(f(row) for f in self.filters)]
        if self.op == "update":
            for row in matched:
                row.update(self.values)
        return FakeResult([dict(row) for row in matched[: self.max_rows]])


class FakeSupabase:
    UNIQUE = {"customers": ("email", "phone"), "wallets": ()}

    def __init__(self):
        self.tables = {"customers": [], "wallets": []}

    def table(self, name):
        return FakeQuery(self.tables[name], self.UNIQUE[name])


@pytest.fixture
def supabase_storage():
    """Supabase backend wired to an in-memory PostgREST fake."""
    fake = FakeSupabase()
    settings = Settings(_env_file=None, supabase_url="https://demo.supabase.co", supabase_secret_key="key")
    return SupabaseStorage(settings, client_factory=lambda url, key: fake), fake
