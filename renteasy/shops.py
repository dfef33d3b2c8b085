"""Shop listing storage."""

from typing import List, Optional

from renteasy.core import get_logger
from renteasy.db import SHOPS, RentEasyDB, load_documents, to_object_id
from renteasy.types import SHOP_TYPE, Shop


class ShopStore:
    """Stores shop listings.

    Example:
        ```python
        shops = ShopStore(db)
        shop = await shops.create(Shop(ownerName="Ravi", mobile="9000000000", shopName="Ravi Rentals"))
        newest_first = await shops.list()
        ```
    """

    DEFAULT_COLLECTION = SHOPS

    def __init__(self, db: RentEasyDB, collection: str = DEFAULT_COLLECTION, logger=None):
        self._db = db
        self._collection = collection
        self.logger = logger or get_logger("shops")

    async def create(self, shop: Shop) -> Shop:
        inserted_id = await self._db.insert_one(self._collection, shop.to_mongo_dict())
        shop.id = str(inserted_id)
        return shop

    async def get(self, shop_id: str) -> Optional[Shop]:
        oid = to_object_id(shop_id)
        if oid is None:
            return None
        doc = await self._db.find_one(self._collection, {"_id": oid})
        return Shop.from_mongo_dict(doc) if doc else None

    async def list(self, mobile: Optional[str] = None) -> List[Shop]:
        """Shops newest first, optionally only those of one owner's mobile number. Invalid documents are skipped."""
        query = {"type": SHOP_TYPE}
        if mobile:
            query["mobile"] = mobile
        docs = await self._db.find_many(self._collection, query=query, sort=[("date", -1)])
        return load_documents(Shop, docs, collection=self._collection, logger=self.logger)

    async def delete(self, shop_id: str) -> bool:
        oid = to_object_id(shop_id)
        if oid is None:
            return False
        return await self._db.delete_one(self._collection, {"_id": oid}) > 0
