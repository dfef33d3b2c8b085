"""RentEasy Service - storefront backend for the Rent Easy and Chat Point brands."""

import json
from pathlib import Path
from typing import Any, List, Optional

from fastapi import Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response
from pydantic import ValidationError
from starlette.datastructures import UploadFile
from urllib3.util.url import parse_url

from renteasy.accounts import AccountStore, PhoneAlreadyRegistered, owner_store, user_store
from renteasy.cart import flatten_cart
from renteasy.config import PACKAGE_PUBLIC_DIR, get_brand, get_renteasy_config
from renteasy.core.config import SettingsLike
from renteasy.db import RentEasyDB, ensure_indexes, to_object_id
from renteasy.geo import parse_location
from renteasy.orders import OrderStore
from renteasy.services import ApiError, RequestLoggingMiddleware, Service
from renteasy.shops import ShopStore
from renteasy.site import (
    DELIVERY_PAGE,
    INDEX_PAGE,
    is_api_path,
    page_response,
    resolve_static_path,
    service_worker_response,
)
from renteasy.storage import ImageStore
from renteasy.types import (
    ORDER_FINAL_STATUSES,
    LoginRequest,
    MessageResponse,
    Order,
    OrderAddress,
    OrderListResponse,
    OrderResponse,
    OrderSavedResponse,
    OrderUser,
    OwnerLoginResponse,
    SaveOrderRequest,
    Shop,
    ShopItem,
    ShopListResponse,
    ShopResponse,
    SignupRequest,
    UpdateOrderStatusRequest,
    UserLoginResponse,
)

ORDERS_ERROR = "Error loading orders"
SHOPS_ERROR = "Error"
TOTAL_TOLERANCE = 0.005


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class RentEasyService(Service):
    """Storefront backend: accounts, shops, orders, and the static site with its service worker.

    Configuration is accessed via self.config.RENTEASY.

    Example:
        ```python
        # Default settings (reads RENTEASY__* env vars)
        RentEasyService.launch()

        # Chat Point storefront on another port
        RentEasyService.launch(brand="chatpoint", url="http://0.0.0.0:5001")
        ```
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        brand: str | None = None,
        enable_db: bool = True,
        enable_storage: bool = True,
        db: RentEasyDB | None = None,
        image_store: ImageStore | None = None,
        config_overrides: SettingsLike | None = None,
        **kwargs,
    ):
        """Initialize RentEasyService.

        Args:
            url: Service URL override. Defaults to config.RENTEASY.URL.
            brand: Storefront brand override ("renteasy" or "chatpoint"). Defaults to config.RENTEASY.BRAND.
            enable_db: Connect to MongoDB. Ignored when ``db`` is given.
            enable_storage: Store shop images in MinIO. Ignored when ``image_store`` is given.
            db: Database to use instead of one built from config.
            image_store: Image store to use instead of one built from config.
            config_overrides: Config overrides, e.g. ``{"RENTEASY": {"MAX_UPLOAD_MB": 5}}``.
            **kwargs: Passed to Service base class.
        """
        config = get_renteasy_config()
        overrides = [o for o in (config_overrides, {"RENTEASY": {"BRAND": brand}} if brand else None) if o]
        if overrides:
            config = config.clone_with_overrides(*overrides)

        self.brand = get_brand(config.RENTEASY.BRAND)
        kwargs.setdefault("log_level", "DEBUG" if config.RENTEASY.DEBUG else config.RENTEASY.LOG_LEVEL)

        super().__init__(
            url=url,
            summary=f"{self.brand.display_name} Storefront Service",
            description="Accounts, shops and orders for the storefront, plus its static site.",
            config=config,
            **kwargs,
        )

        cfg = self.config.RENTEASY

        # Use URL from config if not explicitly provided
        if url is None:
            self._url = self.build_url(url=cfg.URL)

        self.static_dir = Path(cfg.STATIC_DIR or PACKAGE_PUBLIC_DIR)
        self.cache_name = cfg.CACHE_NAME or self.brand.cache_name
        self.max_upload_bytes = int(cfg.MAX_UPLOAD_MB) * 1024 * 1024
        self.default_delivery_charge = float(cfg.DEFAULT_DELIVERY_CHARGE)

        origins = [o.strip() for o in str(cfg.CORS_ORIGINS).split(",") if o.strip()]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins or ["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Database + stores
        if db is None and enable_db:
            db = RentEasyDB(uri=cfg.MONGO_URI, db_name=cfg.MONGO_DB or self.brand.mongo_db)
        self.db: Optional[RentEasyDB] = db
        self._users: Optional[AccountStore] = None
        self._owners: Optional[AccountStore] = None
        self._shops: Optional[ShopStore] = None
        self._orders: Optional[OrderStore] = None
        if self.db is not None:
            self._users = user_store(self.db)
            self._owners = owner_store(self.db)
            self._shops = ShopStore(self.db, logger=self.logger)
            self._orders = OrderStore(self.db, logger=self.logger)

        # Image storage; the bucket is checked at startup
        if image_store is None and enable_storage:
            image_store = ImageStore(
                cfg.MINIO_BUCKET,
                endpoint=cfg.MINIO_ENDPOINT,
                access_key=cfg.MINIO_ACCESS_KEY,
                secret_key=self.config.get_secret("RENTEASY", "MINIO_SECRET_KEY") or "",
                secure=bool(cfg.MINIO_SECURE),
                public_url=cfg.MINIO_PUBLIC_URL,
                ensure_bucket=False,
            )
        self.images: Optional[ImageStore] = image_store

        # Request logging
        self.app.add_middleware(
            RequestLoggingMiddleware,
            service_name=self.name,
            log_metrics=True,
            add_request_id_header=True,
            logger=self.logger,
        )

        # Accounts
        self.add_endpoint("/api/user/signup", self.user_signup)
        self.add_endpoint("/api/user/login", self.user_login)
        self.add_endpoint("/api/owner/signup", self.owner_signup)
        self.add_endpoint("/api/owner/login", self.owner_login)

        # Shops
        self.add_endpoint("/api/upload-shop", self.upload_shop, error_message=SHOPS_ERROR)
        self.add_endpoint("/api/shops", self.list_shops, methods=["GET"], error_message=SHOPS_ERROR)
        self.add_endpoint("/api/shops/{shop_id}", self.delete_shop, methods=["DELETE"], error_message=SHOPS_ERROR)

        # Orders
        self.add_endpoint("/api/save-order", self.save_order)
        self.add_endpoint("/api/my-orders", self.my_orders, methods=["GET"], error_message=ORDERS_ERROR)
        self.add_endpoint("/api/delivery-orders", self.delivery_orders, methods=["GET"], error_message=ORDERS_ERROR)
        self.add_endpoint("/api/update-order-status", self.update_order_status)

        # Static site, catch-all last
        self.add_endpoint("/delivery", self.delivery_page, methods=["GET"])
        self.add_endpoint("/sw.js", self.service_worker, methods=["GET"])
        self.add_endpoint("/{full_path:path}", self.static_file, methods=["GET"])

    @classmethod
    def default_url(cls) -> Any:
        """Return default URL from config (respects RENTEASY__URL env var)."""
        return parse_url(get_renteasy_config().RENTEASY.URL)

    async def startup_initialize(self):
        """Connect to MongoDB and create indexes. Fails startup when MongoDB is unreachable."""
        await super().startup_initialize()
        if self.db is not None:
            try:
                await self.db.ping()
                await ensure_indexes(self.db)
            except Exception as e:
                self.logger.error("MongoDB unavailable", db=self.db.db_name, error=str(e))
                raise
            self.logger.info("MongoDB connected", db=self.db.db_name)

        if self.images is not None:
            try:
                await run_in_threadpool(self.images.ensure_bucket)
            except Exception as e:
                self.logger.warning("Image bucket check failed", bucket=self.images.bucket_name, error=str(e))

    async def shutdown_cleanup(self):
        """Close database connection on shutdown."""
        await super().shutdown_cleanup()
        if self.db is not None:
            await self.db.disconnect()

    # =========================================================================
    # Store access
    # =========================================================================

    @property
    def users(self) -> AccountStore:
        return self._require(self._users)

    @property
    def owners(self) -> AccountStore:
        return self._require(self._owners)

    @property
    def shops(self) -> ShopStore:
        return self._require(self._shops)

    @property
    def orders(self) -> OrderStore:
        return self._require(self._orders)

    @staticmethod
    def _require(store):
        if store is None:
            raise RuntimeError("Database is disabled for this service")
        return store

    # =========================================================================
    # Accounts
    # =========================================================================

    async def user_signup(self, payload: SignupRequest) -> MessageResponse:
        if _blank(payload.name) or _blank(payload.phone) or _blank(payload.password):
            raise ApiError(400, "All fields required")
        try:
            await self.users.create(name=payload.name, phone=payload.phone, password=payload.password)
        except PhoneAlreadyRegistered:
            raise ApiError(400, "Phone already registered") from None
        return MessageResponse(message="Signup successful")

    async def user_login(self, payload: LoginRequest) -> UserLoginResponse:
        account = None
        if not _blank(payload.phone) and payload.password is not None:
            account = await self.users.authenticate(payload.phone, payload.password)
        if account is None:
            raise ApiError(401, "Invalid credentials")
        return UserLoginResponse(user=account.public())

    async def owner_signup(self, payload: SignupRequest) -> MessageResponse:
        if _blank(payload.phone) or _blank(payload.password):
            raise ApiError(400, "All fields required")
        try:
            await self.owners.create(name=payload.name or None, phone=payload.phone, password=payload.password)
        except PhoneAlreadyRegistered:
            raise ApiError(400, "Phone already registered") from None
        return MessageResponse(message="Signup successful")

    async def owner_login(self, payload: LoginRequest) -> OwnerLoginResponse:
        if _blank(payload.phone) or _blank(payload.password):
            raise ApiError(400, "All fields required")
        owner = await self.owners.get_by_phone(payload.phone)
        if owner is None:
            raise ApiError(404, "Owner not found")
        if await self.owners.authenticate(payload.phone, payload.password) is None:
            raise ApiError(401, "Invalid credentials")
        return OwnerLoginResponse(owner=owner.public())

    # =========================================================================
    # Shops
    # =========================================================================

    async def upload_shop(self, request: Request) -> ShopResponse:
        """Create a shop from a multipart form, storing its images in the object store."""
        form = await request.form()
        owner_name, mobile, shop_name = (str(form.get(k) or "").strip() for k in ("ownerName", "mobile", "shopName"))
        if not owner_name or not mobile or not shop_name:
            raise ApiError(400, "All fields required")

        items = self._parse_items(form)
        files = [f for f in form.getlist("images") if isinstance(f, UploadFile)]
        images = [await self._read_image(f) for f in files if f.filename]

        if images and self.images is None:
            raise RuntimeError("Image storage is disabled for this service")

        urls: List[str] = []
        try:
            for data, upload in images:
                url = await run_in_threadpool(
                    self.images.upload, data, filename=upload.filename, content_type=upload.content_type
                )
                urls.append(url)
            # The single-item form attaches its pictures to that item as well
            if urls and "items" not in form and len(items) == 1:
                items[0].image_url = list(urls)

            shop = Shop(ownerName=owner_name, mobile=mobile, shopName=shop_name, items=items, imageUrl=urls)
            shop = await self.shops.create(shop)
        except Exception:
            if urls:
                await self._discard_images(urls)
            raise
        self.logger.info("Shop uploaded", shop_id=shop.id, images=len(urls), items=len(items))
        return ShopResponse(message="Shop uploaded", shop=shop)

    async def _discard_images(self, urls: List[str]) -> None:
        """Remove images of a shop that was not saved. A cleanup failure is logged, not raised."""
        try:
            await run_in_threadpool(self.images.delete, urls)
        except Exception as e:
            self.logger.warning("Uploaded images left in storage", images=urls, error=str(e))
        else:
            self.logger.info("Discarded uploaded images", images=len(urls))

    def _parse_items(self, form) -> List[ShopItem]:
        try:
            if "items" in form:
                raw = json.loads(str(form.get("items") or "[]"))
                if not isinstance(raw, list):
                    raise ValueError("items must be a JSON array")
                return [ShopItem.model_validate(item) for item in raw]

            name = str(form.get("itemName") or "").strip()
            if not name:
                return []
            price = str(form.get("price") or "").strip()
            description = str(form.get("description") or "").strip()
            return [ShopItem(name=name, price=float(price) if price else None, description=description or None)]
        except (ValueError, TypeError, ValidationError):
            raise ApiError(400, "Invalid items") from None

    async def _read_image(self, upload: UploadFile):
        if not (upload.content_type or "").startswith("image/"):
            raise ApiError(400, "Only image uploads are allowed")
        if upload.size is not None and upload.size > self.max_upload_bytes:
            raise ApiError(400, "Image too large")
        data = await upload.read()
        if len(data) > self.max_upload_bytes:
            raise ApiError(400, "Image too large")
        return data, upload

    async def list_shops(self, mobile: Optional[str] = None) -> ShopListResponse:
        return ShopListResponse(shops=await self.shops.list(mobile=mobile or None))

    async def delete_shop(self, shop_id: str) -> MessageResponse:
        shop = await self.shops.get(shop_id)
        if shop is None or not await self.shops.delete(shop_id):
            raise ApiError(404, "Shop not found")

        urls = list(dict.fromkeys(shop.image_url + [u for item in shop.items for u in item.image_url]))
        if urls:
            if self.images is None:
                self.logger.warning("Shop images left in storage", shop_id=shop_id, images=len(urls))
            else:
                await run_in_threadpool(self.images.delete, urls)
        self.logger.info("Shop deleted", shop_id=shop_id)
        return MessageResponse(message="Shop deleted")

    # =========================================================================
    # Orders
    # =========================================================================

    async def save_order(self, payload: SaveOrderRequest) -> OrderSavedResponse:
        if _blank(payload.name) or _blank(payload.phone) or _blank(payload.address1) or payload.cart is None:
            raise ApiError(400, "Missing data")

        user_id = None if _blank(payload.user_id) else payload.user_id.strip()
        if user_id is not None and to_object_id(user_id) is None:
            raise ApiError(400, "Invalid user id")

        cart = flatten_cart(payload.cart)
        if cart.is_empty:
            raise ApiError(400, "Cart empty")

        delivery_charge = self.default_delivery_charge if payload.delivery_charge is None else payload.delivery_charge
        total_amount = round(cart.total + delivery_charge, 2)
        if payload.grand_total is not None and abs(payload.grand_total - total_amount) > TOTAL_TOLERANCE:
            self.logger.warning(
                "Client total ignored", client_total=payload.grand_total, computed_total=total_amount
            )

        location_text = (payload.location or "").strip() or None
        location = parse_location(location_text)
        address = OrderAddress(
            name=payload.name,
            phone=payload.phone,
            line1=payload.address1,
            line2=payload.address2 or None,
            location=location,
            locationText=location_text if location is None else None,
        )

        order = Order(
            userId=user_id,
            user=OrderUser(name=payload.name, phone=payload.phone),
            shop=cart.primary_shop,
            items=cart.items,
            itemsTotal=cart.total,
            totalAmount=total_amount,
            deliveryCharge=delivery_charge,
            address=address,
            paymentMethod=payload.payment_mode or "cash",
        )
        order = await self.orders.create(order)
        self.logger.info("Order saved", order_id=order.id, shop=order.shop, total=total_amount)
        return OrderSavedResponse(orderId=order.id, message="Order saved!")

    async def my_orders(self, x_user_id: Optional[str] = Header(default=None)) -> OrderListResponse:
        if _blank(x_user_id):
            raise ApiError(400, "Missing x-user-id header")
        if to_object_id(x_user_id.strip()) is None:
            raise ApiError(400, "Invalid x-user-id header")
        return OrderListResponse(orders=await self.orders.list_for_user(x_user_id.strip()))

    async def delivery_orders(self) -> OrderListResponse:
        return OrderListResponse(orders=await self.orders.list_by_status())

    async def update_order_status(self, payload: UpdateOrderStatusRequest) -> OrderResponse:
        if _blank(payload.order_id) or payload.status not in ORDER_FINAL_STATUSES:
            raise ApiError(400, "Invalid data")

        result = await self.orders.update_status(payload.order_id, payload.status)
        if not result.found:
            raise ApiError(404, "Order not found")
        if not result.updated:
            raise ApiError(409, f"Order already {result.order.status}")

        self.logger.info("Order status updated", order_id=payload.order_id, status=payload.status)
        return OrderResponse(order=result.order)

    # =========================================================================
    # Static site
    # =========================================================================

    def delivery_page(self) -> FileResponse:
        return page_response(self.static_dir, DELIVERY_PAGE)

    def service_worker(self) -> Response:
        return service_worker_response(self.cache_name, self.brand.precache)

    def static_file(self, full_path: str) -> Response:
        """Serve a file from the static directory, or the index page for client-side routes."""
        if is_api_path(full_path):
            raise ApiError(404, "Not found")
        path = resolve_static_path(self.static_dir, full_path)
        if path is not None:
            return FileResponse(path)
        return page_response(self.static_dir, INDEX_PAGE)
