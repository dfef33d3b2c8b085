"""Order storage and status transitions."""

from dataclasses import dataclass
from typing import List, Optional

from renteasy.core import get_logger
from renteasy.db import ORDERS, RentEasyDB, load_documents, to_object_id
from renteasy.types import ORDER_PENDING, Order, utcnow


@dataclass
class StatusUpdate:
    """Outcome of `OrderStore.update_status`.

    ``order`` is None when no order has the given id. ``updated`` is False when the order exists but was no longer
    pending, in which case ``order`` holds its current state.
    """

    order: Optional[Order]
    updated: bool

    @property
    def found(self) -> bool:
        return self.order is not None


class OrderStore:
    """Stores orders placed from the storefront.

    Example:
        ```python
        orders = OrderStore(db)
        saved = await orders.create(order)
        pending = await orders.list_by_status("pending")
        await orders.update_status(saved.id, "delivered")
        ```
    """

    DEFAULT_COLLECTION = ORDERS

    def __init__(self, db: RentEasyDB, collection: str = DEFAULT_COLLECTION, logger=None):
        self._db = db
        self._collection = collection
        self.logger = logger or get_logger("orders")

    async def create(self, order: Order) -> Order:
        doc = order.to_mongo_dict()
        user_oid = to_object_id(order.user_id)
        if user_oid is not None:
            doc["userId"] = user_oid
        inserted_id = await self._db.insert_one(self._collection, doc)
        order.id = str(inserted_id)
        return order

    async def get(self, order_id: str) -> Optional[Order]:
        oid = to_object_id(order_id)
        if oid is None:
            return None
        doc = await self._db.find_one(self._collection, {"_id": oid})
        return Order.from_mongo_dict(doc) if doc else None

    async def list_for_user(self, user_id: str) -> List[Order]:
        """Orders placed by one user, newest first. An invalid id yields no orders; invalid documents are skipped."""
        oid = to_object_id(user_id)
        if oid is None:
            return []
        docs = await self._db.find_many(self._collection, query={"userId": oid}, sort=[("date", -1)])
        return load_documents(Order, docs, collection=self._collection, logger=self.logger)

    async def list_by_status(self, status: str = ORDER_PENDING) -> List[Order]:
        docs = await self._db.find_many(self._collection, query={"status": status}, sort=[("date", -1)])
        return load_documents(Order, docs, collection=self._collection, logger=self.logger)

    async def update_status(self, order_id: str, status: str) -> StatusUpdate:
        """Move a pending order to ``status``.

        The pending check is part of the update filter, so two concurrent updates cannot both succeed.
        """
        oid = to_object_id(order_id)
        if oid is None:
            return StatusUpdate(order=None, updated=False)

        doc = await self._db.find_one_and_update(
            self._collection,
            {"_id": oid, "status": ORDER_PENDING},
            {"$set": {"status": status, "updatedAt": utcnow()}},
        )
        if doc is not None:
            return StatusUpdate(order=Order.from_mongo_dict(doc), updated=True)

        return StatusUpdate(order=await self.get(order_id), updated=False)
