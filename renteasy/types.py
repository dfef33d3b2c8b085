"""Type definitions for RentEasy documents, requests and responses.

Documents are stored with camelCase keys (``ownerName``, ``totalAmount``...) so existing front-ends keep working;
the models expose snake_case attributes with camelCase aliases.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

ORDER_PENDING = "pending"
ORDER_DELIVERED = "delivered"
ORDER_CANCELLED = "cancelled"
ORDER_FINAL_STATUSES = (ORDER_DELIVERED, ORDER_CANCELLED)

SHOP_TYPE = "shop"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Documents
# =============================================================================


class MongoModel(BaseModel):
    """Base for models persisted as MongoDB documents."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id", description="MongoDB document ID")

    def to_mongo_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for MongoDB insertion (excludes None id)."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data.pop("_id", None)
        return data

    @classmethod
    def from_mongo_dict(cls, data: Dict[str, Any]):
        """Create instance from a MongoDB document, stringifying ObjectIds."""
        data = {k: (str(v) if isinstance(v, ObjectId) else v) for k, v in data.items()}
        return cls.model_validate(data)


class Account(MongoModel):
    """A user or owner account. Passwords are stored and compared as given."""

    name: Optional[str] = None
    phone: str
    password: str

    def public(self) -> "AccountPublic":
        return AccountPublic(_id=self.id, name=self.name, phone=self.phone)


class AccountPublic(MongoModel):
    """Account fields safe to return to clients."""

    name: Optional[str] = None
    phone: str


class ShopItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    name: str = Field(..., min_length=1)
    price: Optional[float] = None
    description: Optional[str] = None
    image_url: List[str] = Field(default_factory=list, alias="imageUrl")


class Shop(MongoModel):
    """A shop listing. Older documents may lack the owner fields, so they default to empty strings."""

    type: str = SHOP_TYPE
    owner_name: str = Field(default="", alias="ownerName")
    mobile: str = ""
    shop_name: str = Field(default="", alias="shopName")
    items: List[ShopItem] = Field(default_factory=list)
    image_url: List[str] = Field(default_factory=list, alias="imageUrl")
    date: datetime = Field(default_factory=utcnow)


class LineItem(BaseModel):
    """One flattened cart entry."""

    name: str
    price: float
    quantity: int


class OrderUser(BaseModel):
    name: str
    phone: str


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class OrderAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    phone: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    location: Optional[GeoPoint] = None
    location_text: Optional[str] = Field(default=None, alias="locationText")


class Order(MongoModel):
    """An order. Fields the storefront never guaranteed (totals, user, address) have read-side defaults."""

    user_id: Optional[str] = Field(default=None, alias="userId")
    user: Optional[OrderUser] = None
    shop: Optional[str] = None
    items: List[LineItem] = Field(default_factory=list)
    items_total: float = Field(default=0.0, alias="itemsTotal")
    total_amount: float = Field(default=0.0, alias="totalAmount")
    delivery_charge: float = Field(default=0.0, alias="deliveryCharge")
    address: Optional[OrderAddress] = None
    payment_method: str = Field(default="cash", alias="paymentMethod")
    status: str = ORDER_PENDING
    date: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")


# =============================================================================
# Requests
# =============================================================================


class RequestModel(BaseModel):
    """Request bodies accept missing fields; handlers report them with their own messages."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class SignupRequest(RequestModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(RequestModel):
    phone: Optional[str] = None
    password: Optional[str] = None


class CartEntry(BaseModel):
    qty: int = 0
    price: float = 0.0


Cart = Dict[str, Dict[str, CartEntry]]


class SaveOrderRequest(RequestModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    name: Optional[str] = None
    phone: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    location: Optional[str] = None
    cart: Optional[Cart] = None
    items_total: Optional[float] = Field(default=None, alias="itemsTotal")
    delivery_charge: Optional[float] = Field(default=None, alias="deliveryCharge")
    grand_total: Optional[float] = Field(default=None, alias="grandTotal")
    payment_mode: Optional[str] = Field(default=None, alias="paymentMode")


class UpdateOrderStatusRequest(RequestModel):
    order_id: Optional[str] = Field(default=None, alias="orderId")
    status: Optional[str] = None


# =============================================================================
# Responses
# =============================================================================


class ResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True


class MessageResponse(ResponseModel):
    message: str


class UserLoginResponse(ResponseModel):
    user: AccountPublic


class OwnerLoginResponse(ResponseModel):
    owner: AccountPublic


class ShopResponse(ResponseModel):
    message: str
    shop: Shop


class ShopListResponse(ResponseModel):
    shops: List[Shop]


class OrderSavedResponse(ResponseModel):
    order_id: str = Field(..., alias="orderId")
    message: str


class OrderListResponse(ResponseModel):
    orders: List[Order]


class OrderResponse(ResponseModel):
    order: Order
