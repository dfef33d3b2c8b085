"""Async MongoDB wrapper for the RentEasy service.

Provides a clean interface for MongoDB operations with proper resource management.
Uses motor (async pymongo driver) directly.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument

USERS = "users"
OWNERS = "owners"
SHOPS = "shops"
ORDERS = "orders"


def to_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """Parse a document id, returning None for anything that is not a valid ObjectId."""
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def load_documents(model, docs: List[Dict[str, Any]], *, collection: str, logger) -> list:
    """Build ``model`` instances from stored documents, logging and skipping any that fail validation."""
    loaded = []
    for doc in docs:
        try:
            loaded.append(model.from_mongo_dict(doc))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid document", collection=collection, document_id=str(doc.get("_id")), error=str(e)
            )
    return loaded


class RentEasyDB:
    """Async MongoDB wrapper with proper resource management.

    A thin wrapper around motor that handles connection lifecycle.
    No application-specific logic - just generic MongoDB operations.

    Example:
        ```python
        async with RentEasyDB(uri="mongodb://localhost:27017", db_name="renteasy") as db:
            await db.insert_one("users", {"name": "Asha", "phone": "9876543210"})
            user = await db.find_one("users", {"phone": "9876543210"})
        ```
    """

    def __init__(
        self,
        uri: str = "mongodb://127.0.0.1:27017",
        db_name: str = "renteasy",
        server_selection_timeout_ms: int = 5000,
    ):
        """Initialize with connection parameters. No connection made until connect()."""
        self._uri = uri
        self._db_name = db_name
        self._timeout_ms = server_selection_timeout_ms
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    @property
    def client(self) -> Optional[AsyncIOMotorClient]:
        """The MongoDB client (None if not connected)."""
        return self._client

    @property
    def db(self) -> Optional[AsyncIOMotorDatabase]:
        """The database instance (None if not connected)."""
        return self._db

    @property
    def db_name(self) -> str:
        return self._db_name

    @property
    def is_connected(self) -> bool:
        """Whether the database is connected."""
        return self._client is not None

    def collection(self, name: str) -> AsyncIOMotorCollection:
        """Get a collection by name."""
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._db[name]

    async def connect(self) -> "RentEasyDB":
        """Connect to MongoDB. Returns self for chaining."""
        if self._client is not None:
            return self
        self._client = AsyncIOMotorClient(self._uri, serverSelectionTimeoutMS=self._timeout_ms)
        self._db = self._client[self._db_name]
        return self

    async def disconnect(self) -> None:
        """Disconnect and cleanup."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None

    async def close(self) -> None:
        """Alias for disconnect()."""
        await self.disconnect()

    async def __aenter__(self) -> "RentEasyDB":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def ping(self) -> bool:
        """Round-trip to the server. Raises if MongoDB is unreachable."""
        if not self.is_connected:
            await self.connect()
        await self._client.admin.command("ping")
        return True

    # -------------------------------------------------------------------------
    # Generic CRUD
    # -------------------------------------------------------------------------

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> Any:
        """Insert a document. Returns the inserted ``_id``."""
        if not self.is_connected:
            await self.connect()
        result = await self._db[collection].insert_one(document)
        return result.inserted_id

    async def find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Find a single document."""
        if not self.is_connected:
            await self.connect()
        return await self._db[collection].find_one(query)

    async def find_many(
        self,
        collection: str,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """Find multiple documents."""
        if not self.is_connected:
            await self.connect()
        cursor = self._db[collection].find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit > 0:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def find_one_and_update(
        self,
        collection: str,
        query: Dict[str, Any],
        update: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Apply an update to the first matching document and return it as it is after the update."""
        if not self.is_connected:
            await self.connect()
        return await self._db[collection].find_one_and_update(
            query, update, return_document=ReturnDocument.AFTER
        )

    async def delete_one(self, collection: str, query: Dict[str, Any]) -> int:
        """Delete the first matching document. Returns count deleted (0 or 1)."""
        if not self.is_connected:
            await self.connect()
        result = await self._db[collection].delete_one(query)
        return result.deleted_count

    async def delete_many(self, collection: str, query: Optional[Dict[str, Any]] = None) -> int:
        """Delete documents. Returns count deleted."""
        if not self.is_connected:
            await self.connect()
        result = await self._db[collection].delete_many(query or {})
        return result.deleted_count

    async def count(self, collection: str, query: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching query."""
        if not self.is_connected:
            await self.connect()
        return await self._db[collection].count_documents(query or {})

    async def create_index(self, collection: str, keys: Any, **kwargs) -> str:
        """Create an index. Returns the index name."""
        if not self.is_connected:
            await self.connect()
        return await self._db[collection].create_index(keys, **kwargs)


async def ensure_indexes(db: RentEasyDB) -> None:
    """
    Create required indexes on the RentEasy collections.

    Call this during application startup. The unique phone indexes back the signup duplicate check.
    """
    await db.create_index(USERS, "phone", unique=True)
    await db.create_index(OWNERS, "phone", unique=True)

    await db.create_index(SHOPS, [("type", ASCENDING), ("date", DESCENDING)])
    await db.create_index(SHOPS, "mobile")

    await db.create_index(ORDERS, "userId")
    await db.create_index(ORDERS, [("status", ASCENDING), ("date", DESCENDING)])
