import itertools

import pytest

import tracklog.records
from tracklog.app import create_app
from tracklog.config import Config
from tracklog.geo import CountryLookup
from tracklog.store import MemoryStore, StoreError


class FailingStore(MemoryStore):
    """MemoryStore whose writes and/or deletes blow up."""

    def __init__(self, fail_put=False, fail_delete_key=None, fail_list=False):
        super().__init__()
        self.fail_put = fail_put
        self.fail_delete_key = fail_delete_key
        self.fail_list = fail_list

    def put(self, key, value):
        if self.fail_put:
            raise StoreError("put rejected")
        super().put(key, value)

    def list(self, prefix="", cursor=None, limit=1000):
        if self.fail_list:
            raise StoreError("list unavailable")
        return super().list(prefix=prefix, cursor=cursor, limit=limit)

    def delete(self, key):
        if key == self.fail_delete_key:
            raise StoreError(f"cannot delete {key}")
        super().delete(key)


@pytest.fixture(autouse=True)
def ticking_clock(monkeypatch):
    """Every storage key gets its own millisecond so back-to-back writes don't collide."""
    ticks = itertools.count(1_700_000_000_000)
    monkeypatch.setattr(tracklog.records, "epoch_millis", lambda: next(ticks))


@pytest.fixture
def config():
    # small page size so listings always paginate
    return Config(store_backend="memory", flush_password="s3cret", list_page_size=2, flush_workers=4)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(config, store):
    application = create_app(config, store=store, geo=CountryLookup(None))
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client(config):
    """Build a client around a specific store."""
    def _make(custom_store):
        application = create_app(config, store=custom_store, geo=CountryLookup(None))
        application.config["TESTING"] = True
        return application.test_client()
    return _make
