"""Pytest fixtures for RentEasy unit tests."""

import os
from collections import defaultdict
from copy import deepcopy
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from renteasy.config import reset_renteasy_config


class FakeRentEasyDB:
    """In-memory stand-in for RentEasyDB.

    Supports equality queries, multi-key sorts, ``$set`` updates and unique single-field indexes, which is all
    the stores use.
    """

    def __init__(self, db_name: str = "renteasy_test"):
        self.db_name = db_name
        self.collections: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.indexes: List[tuple] = []
        self._unique: Dict[str, List[str]] = defaultdict(list)
        self.connected = False
        self.fail_with: Optional[Exception] = None

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self):
        self.connected = True
        return self

    async def disconnect(self):
        self.connected = False

    async def ping(self):
        self._maybe_fail()
        self.connected = True
        return True

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches(doc: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
        return all(doc.get(k) == v for k, v in (query or {}).items())

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> Any:
        self._maybe_fail()
        doc = deepcopy(document)
        doc.setdefault("_id", ObjectId())
        for field in self._unique[collection]:
            if any(existing.get(field) == doc.get(field) for existing in self.collections[collection]):
                raise DuplicateKeyError(f"E11000 duplicate key error collection: {collection} index: {field}_1")
        self.collections[collection].append(doc)
        return doc["_id"]

    async def find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._maybe_fail()
        for doc in self.collections[collection]:
            if self._matches(doc, query):
                return deepcopy(doc)
        return None

    async def find_many(self, collection: str, query=None, sort=None, limit: int = 0) -> List[Dict[str, Any]]:
        self._maybe_fail()
        docs = [deepcopy(d) for d in self.collections[collection] if self._matches(d, query)]
        for key, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return docs[:limit] if limit > 0 else docs

    async def find_one_and_update(self, collection: str, query, update) -> Optional[Dict[str, Any]]:
        self._maybe_fail()
        for doc in self.collections[collection]:
            if self._matches(doc, query):
                doc.update(deepcopy(update.get("$set", {})))
                return deepcopy(doc)
        return None

    async def delete_one(self, collection: str, query) -> int:
        self._maybe_fail()
        docs = self.collections[collection]
        for i, doc in enumerate(docs):
            if self._matches(doc, query):
                del docs[i]
                return 1
        return 0

    async def delete_many(self, collection: str, query=None) -> int:
        self._maybe_fail()
        before = len(self.collections[collection])
        self.collections[collection] = [d for d in self.collections[collection] if not self._matches(d, query)]
        return before - len(self.collections[collection])

    async def count(self, collection: str, query=None) -> int:
        return sum(1 for d in self.collections[collection] if self._matches(d, query))

    async def create_index(self, collection: str, keys: Any, **kwargs) -> str:
        self._maybe_fail()
        self.indexes.append((collection, keys, kwargs))
        if kwargs.get("unique") and isinstance(keys, str):
            self._unique[collection].append(keys)
        return f"{keys}_1" if isinstance(keys, str) else "_".join(f"{k}_{d}" for k, d in keys)


@pytest.fixture(autouse=True)
def reset_config():
    """Reset RentEasy config before each test to ensure clean state."""
    reset_renteasy_config()
    yield
    reset_renteasy_config()


@pytest.fixture
def fake_db():
    return FakeRentEasyDB()


@pytest.fixture
def mock_image_store():
    """A MagicMock ImageStore that hands out predictable URLs."""
    store = MagicMock()
    store.bucket_name = "shop-images"
    counter = iter(range(1, 1000))
    store.upload.side_effect = lambda data, filename=None, content_type=None: (
        f"http://minio.test/shop-images/shops/img{next(counter)}.png"
    )
    store.delete.side_effect = lambda urls: [u.rsplit("/shop-images/", 1)[1] for u in urls]
    return store


@pytest.fixture
def static_dir(tmp_path):
    """A static directory with the storefront pages."""
    for page in ("index.html", "delivery.html", "orders.html"):
        (tmp_path / page).write_text(f"<html><body>{page}</body></html>", encoding="utf-8")
    (tmp_path / "manifest.json").write_text('{"name": "Rent Easy"}', encoding="utf-8")
    return tmp_path


@pytest.fixture
def service(fake_db, mock_image_store, static_dir):
    """Create a RentEasyService backed by the in-memory database and a mock image store."""
    from renteasy.renteasy import RentEasyService

    return RentEasyService(
        db=fake_db,
        image_store=mock_image_store,
        config_overrides={
            "RENTEASY": {
                "URL": "http://localhost:5055",
                "STATIC_DIR": str(static_dir),
                "MAX_UPLOAD_MB": 1,
            }
        },
    )


@pytest.fixture
def client(service):
    """HTTP client for the service. The lifespan is not run, so MongoDB is never contacted."""
    return TestClient(service.app)


@pytest.fixture
def mock_motor_client():
    """Create a mock AsyncIOMotorClient."""
    client = MagicMock()
    client.__getitem__ = MagicMock(return_value=MagicMock())
    client.close = MagicMock()
    return client


@pytest.fixture
def mock_renteasy_db(mock_motor_client):
    """Create a RentEasyDB whose motor client is a mock."""
    with patch("renteasy.db.AsyncIOMotorClient", return_value=mock_motor_client):
        from renteasy.db import RentEasyDB

        db = RentEasyDB(uri="mongodb://localhost:27017", db_name="test_db")
        yield db


@pytest.fixture
def env_override():
    """Context manager fixture for temporarily overriding environment variables."""

    class EnvOverride:
        def __init__(self):
            self._original = {}

        def set(self, **kwargs):
            """Set environment variables, storing originals for restoration."""
            for key, value in kwargs.items():
                if key not in self._original:
                    self._original[key] = os.environ.get(key)
                os.environ[key] = str(value)

        def restore(self):
            """Restore original environment variables."""
            for key, original_value in self._original.items():
                if original_value is None:
                    os.environ.pop(key, None)
                else:
                    os.environ[key] = original_value
            self._original.clear()

    override = EnvOverride()
    yield override
    override.restore()
