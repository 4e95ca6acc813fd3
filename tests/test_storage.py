"""Tests for key/value storage and favorites."""
import json
import psycopg2
import pytest

from bookverse import database
from bookverse.database import Database
from bookverse.storage import FAVORITES_KEY, FavoriteStore, JsonFileStorage, StorageError


class MemoryStorage:
    """Dict-backed stand-in for a key/value store."""

    def __init__(self, items=None):
        self.items = dict(items or {})
        self.writes = 0

    def get_item(self, key):
        return self.items.get(key)

    def set_item(self, key, value):
        self.writes += 1
        self.items[key] = value


def test_toggle_adds_then_removes():
    """Test that toggling twice restores the original set."""
    storage = MemoryStorage({FAVORITES_KEY: json.dumps(["OL1W"])})
    favorites = FavoriteStore(storage)
    original = favorites.all()

    assert favorites.toggle("OL2W") is True
    assert favorites.all() == ["OL1W", "OL2W"]
    assert favorites.toggle("OL2W") is False
    assert favorites.all() == original

    assert favorites.toggle("OL1W") is False
    assert favorites.toggle("OL1W") is True
    assert set(favorites.all()) == set(original)


def test_toggle_rewrites_whole_list():
    """Test that every toggle writes the full JSON list under one key."""
    storage = MemoryStorage()
    favorites = FavoriteStore(storage)

    favorites.toggle("a")
    favorites.toggle("b")

    assert storage.writes == 2
    assert json.loads(storage.items[FAVORITES_KEY]) == ["a", "b"]
    assert favorites.contains("a")
    assert not favorites.contains("c")


def test_unreadable_favorites_are_ignored():
    """Test that corrupt stored values read as an empty set."""
    assert FavoriteStore(MemoryStorage({FAVORITES_KEY: "{not json"})).all() == []
    assert FavoriteStore(MemoryStorage({FAVORITES_KEY: '{"a": 1}'})).all() == []
    assert FavoriteStore(MemoryStorage({FAVORITES_KEY: '["a", 2]'})).all() == ["a"]


def test_json_file_storage_survives_reload(tmp_path):
    """Test that favorites persist across store instances."""
    path = tmp_path / "nested" / "storage.json"

    FavoriteStore(JsonFileStorage(str(path))).toggle("OL82565W")

    reloaded = FavoriteStore(JsonFileStorage(str(path)))
    assert reloaded.all() == ["OL82565W"]


def test_json_file_storage_missing_file(tmp_path):
    """Test reading from a file that does not exist yet."""
    storage = JsonFileStorage(str(tmp_path / "absent.json"))

    assert storage.get_item(FAVORITES_KEY) is None


def test_json_file_storage_corrupt_file(tmp_path):
    """Test that an unreadable file raises StorageError."""
    path = tmp_path / "storage.json"
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileStorage(str(path)).get_item(FAVORITES_KEY)


class FakeCursor:
    def __init__(self, table):
        self.table = table
        self.result = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def execute(self, sql, params=None):
        if sql.strip().startswith("SELECT"):
            value = self.table.get(params[0])
            self.result = (value,) if value is not None else None
        elif "INSERT INTO local_storage" in sql:
            self.table[params[0]] = params[1]

    def fetchone(self):
        return self.result


class FakeConnection:
    def __init__(self, table):
        self.table = table
        self.commits = 0

    def cursor(self):
        return FakeCursor(self.table)

    def commit(self):
        self.commits += 1

    def rollback(self):
        pass


class FakePool:
    def __init__(self, min_conn, max_conn, dsn):
        self.dsn = dsn
        self.conn = FakeConnection({})
        self.closed = False

    def getconn(self):
        return self.conn

    def putconn(self, conn):
        pass

    def closeall(self):
        self.closed = True


def test_database_round_trip(monkeypatch):
    """Test the PostgreSQL store against a fake connection pool."""
    monkeypatch.setattr(database.pool, "SimpleConnectionPool", FakePool)

    with Database("postgresql://u:p@localhost:5432/bookverse") as db:
        db.init_schema()
        favorites = FavoriteStore(db)
        favorites.toggle("OL1W")

        assert db.get_item(FAVORITES_KEY) == json.dumps(["OL1W"])
        assert db.get_item("other") is None
        assert db.connection_pool.conn.commits == 2

    assert db.connection_pool.closed


class BrokenCursor(FakeCursor):
    def execute(self, sql, params=None):
        raise psycopg2.OperationalError("server closed the connection unexpectedly")


class BrokenConnection(FakeConnection):
    def __init__(self, table):
        super().__init__(table)
        self.rollbacks = 0

    def cursor(self):
        return BrokenCursor(self.table)

    def rollback(self):
        self.rollbacks += 1


class BrokenPool(FakePool):
    def __init__(self, min_conn, max_conn, dsn):
        super().__init__(min_conn, max_conn, dsn)
        self.conn = BrokenConnection({})
        self.returned = 0

    def putconn(self, conn):
        self.returned += 1


def test_database_errors_become_storage_errors(monkeypatch):
    """Test that driver errors surface as StorageError and release the connection."""
    monkeypatch.setattr(database.pool, "SimpleConnectionPool", BrokenPool)

    db = Database("postgresql://u:p@localhost:5432/bookverse")
    favorites = FavoriteStore(db)

    with pytest.raises(StorageError):
        db.init_schema()
    with pytest.raises(StorageError):
        favorites.all()
    with pytest.raises(StorageError):
        favorites.toggle("OL1W")

    assert db.connection_pool.conn.rollbacks == 3
    assert db.connection_pool.returned == 3


def test_duplicate_stored_ids_toggle_off_cleanly():
    """Test that repeated ids in storage read once and toggle off in one step."""
    storage = MemoryStorage({FAVORITES_KEY: '["a", "a", "b"]'})
    favorites = FavoriteStore(storage)

    assert favorites.all() == ["a", "b"]
    assert favorites.toggle("a") is False
    assert not favorites.contains("a")
    assert json.loads(storage.items[FAVORITES_KEY]) == ["b"]


def test_json_file_storage_failed_write_keeps_old_file(tmp_path, monkeypatch):
    """Test that a write that fails midway leaves the previous file intact."""
    path = tmp_path / "storage.json"
    store = JsonFileStorage(str(path))
    store.set_item(FAVORITES_KEY, '["OL1W"]')
    before = path.read_text(encoding="utf-8")

    def failing_dump(obj, fp, **kwargs):
        fp.write("{")
        raise OSError("No space left on device")

    monkeypatch.setattr("bookverse.storage.json.dump", failing_dump)

    with pytest.raises(StorageError):
        store.set_item(FAVORITES_KEY, '["OL1W", "OL2W"]')

    assert path.read_text(encoding="utf-8") == before
    assert not (tmp_path / "storage.json.tmp").exists()
    monkeypatch.undo()
    assert FavoriteStore(store).all() == ["OL1W"]
