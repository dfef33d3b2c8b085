"""RentEasy - storefront backend for the Rent Easy and Chat Point brands.

This package provides RentEasyService, a FastAPI service with:

- User and owner signup/login
- Shop listings with images stored in MinIO
- Order placement, tracking and delivery status updates
- The static storefront with a cache-first service worker

Configuration comes from renteasy.core.Config with RENTEASY__* environment overrides.

Example:
    Launch the service:
    ```python
    from renteasy import RentEasyService

    RentEasyService.launch(brand="chatpoint")
    ```

    Via command line:
    ```bash
    renteasy serve --brand renteasy --url http://0.0.0.0:5000
    python -m renteasy
    ```
"""

from renteasy.accounts import AccountStore, PhoneAlreadyRegistered
from renteasy.cart import FlattenedCart, flatten_cart
from renteasy.config import BRANDS, BrandProfile, RentEasySettings, get_brand, get_renteasy_config
from renteasy.db import RentEasyDB, ensure_indexes
from renteasy.geo import format_location, parse_location
from renteasy.orders import OrderStore, StatusUpdate
from renteasy.renteasy import RentEasyService
from renteasy.shops import ShopStore
from renteasy.site import render_service_worker
from renteasy.storage import ImageStore

__all__ = [
    "AccountStore",
    "BRANDS",
    "BrandProfile",
    "FlattenedCart",
    "ImageStore",
    "OrderStore",
    "PhoneAlreadyRegistered",
    "RentEasyDB",
    "RentEasyService",
    "RentEasySettings",
    "ShopStore",
    "StatusUpdate",
    "ensure_indexes",
    "flatten_cart",
    "format_location",
    "get_brand",
    "get_renteasy_config",
    "parse_location",
    "render_service_worker",
]
