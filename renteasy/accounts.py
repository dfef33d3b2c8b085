"""Account storage for users and shop owners."""

import hmac
from typing import Optional

from pymongo.errors import DuplicateKeyError

from renteasy.db import OWNERS, USERS, RentEasyDB
from renteasy.types import Account


class PhoneAlreadyRegistered(Exception):
    """Raised when an account with the same phone number already exists."""

    def __init__(self, phone: str):
        super().__init__(f"Phone already registered: {phone}")
        self.phone = phone


def passwords_match(given: str, stored: str) -> bool:
    """Plaintext comparison, done in constant time."""
    return hmac.compare_digest(given.encode("utf-8"), stored.encode("utf-8"))


class AccountStore:
    """Stores accounts (users or owners) keyed by phone number.

    Example:
        ```python
        db = RentEasyDB(uri="mongodb://localhost:27017", db_name="renteasy")
        users = AccountStore(db, USERS)

        account = await users.create(name="Asha", phone="9876543210", password="secret")
        same = await users.authenticate("9876543210", "secret")
        ```
    """

    def __init__(self, db: RentEasyDB, collection: str):
        self._db = db
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    async def get_by_phone(self, phone: str) -> Optional[Account]:
        doc = await self._db.find_one(self._collection, {"phone": phone})
        return Account.from_mongo_dict(doc) if doc else None

    async def create(self, *, phone: str, password: str, name: Optional[str] = None) -> Account:
        """Insert a new account.

        Raises:
            PhoneAlreadyRegistered: If the phone is taken, whether found up front or rejected by the unique index.
        """
        if await self.get_by_phone(phone) is not None:
            raise PhoneAlreadyRegistered(phone)

        account = Account(name=name, phone=phone, password=password)
        try:
            inserted_id = await self._db.insert_one(self._collection, account.to_mongo_dict())
        except DuplicateKeyError as e:
            raise PhoneAlreadyRegistered(phone) from e
        account.id = str(inserted_id)
        return account

    async def authenticate(self, phone: str, password: str) -> Optional[Account]:
        """Return the account when the phone exists and the password matches, else None."""
        account = await self.get_by_phone(phone)
        if account is None or not passwords_match(password, account.password):
            return None
        return account


def user_store(db: RentEasyDB) -> AccountStore:
    return AccountStore(db, USERS)


def owner_store(db: RentEasyDB) -> AccountStore:
    return AccountStore(db, OWNERS)
