"""Configuration for the RentEasy service.

Uses renteasy.core.Config for environment variable override support.
Environment variables use the RENTEASY__ prefix (e.g., RENTEASY__MONGO_URI=mongodb://mongo:27017).

The Rent Easy and Chat Point storefronts run the same code; ``BRAND`` selects the profile that supplies the
display name, default database, service worker cache name and precached assets.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, SecretStr

from renteasy.core import Config

PACKAGE_PUBLIC_DIR = Path(__file__).parent / "public"


@dataclass(frozen=True)
class BrandProfile:
    """Per-storefront defaults."""

    key: str
    display_name: str
    mongo_db: str
    cache_name: str
    precache: Tuple[str, ...]


BRANDS: Dict[str, BrandProfile] = {
    "renteasy": BrandProfile(
        key="renteasy",
        display_name="Rent Easy",
        mongo_db="renteasy",
        cache_name="renteasy-v1",
        precache=(
            "/",
            "/index.html",
            "/orders.html",
            "/delivery.html",
            "/manifest.json",
            "/icon-192.png",
            "/icon-512.png",
        ),
    ),
    "chatpoint": BrandProfile(
        key="chatpoint",
        display_name="Chat Point",
        mongo_db="chatpoint",
        cache_name="chatpoint-v9",
        precache=(
            "/",
            "/index.html",
            "/items.html",
            "/cart.html",
            "/login.html",
            "/orders.html",
            "/manifest.json",
            "/icon-192.png",
            "/icon-512.png",
        ),
    ),
}


def get_brand(name: str) -> BrandProfile:
    """Look up a brand profile by key (case-insensitive)."""
    try:
        return BRANDS[str(name).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown brand '{name}'. Expected one of: {', '.join(sorted(BRANDS))}") from None


class RentEasySettings(BaseModel):
    """RentEasy service configuration settings."""

    # Storefront profile: "renteasy" or "chatpoint"
    BRAND: str = "renteasy"

    # Service URL (e.g., http://0.0.0.0:5000)
    URL: str = "http://0.0.0.0:5000"

    # MongoDB connection; MONGO_DB defaults to the brand's database
    MONGO_URI: str = "mongodb://127.0.0.1:27017"
    MONGO_DB: Optional[str] = None

    # Static site; STATIC_DIR defaults to the packaged public/ directory
    STATIC_DIR: Optional[str] = None
    CACHE_NAME: Optional[str] = None

    # Orders
    DEFAULT_DELIVERY_CHARGE: float = 30.0

    # Uploads
    MAX_UPLOAD_MB: int = 10

    # Comma-separated list of allowed origins
    CORS_ORIGINS: str = "*"

    # Object store for shop images
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: SecretStr = SecretStr("minioadmin")
    MINIO_BUCKET: str = "shop-images"
    MINIO_SECURE: bool = False
    MINIO_PUBLIC_URL: Optional[str] = None

    # Logging: level of the service logger and the default uvicorn log level. DEBUG forces "DEBUG".
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False


# Module-level config cache
_config: Optional[Config] = None


def get_renteasy_config() -> Config:
    """Get the RentEasy configuration singleton.

    Configuration is loaded once and cached. Supports environment variable overrides using the RENTEASY__ prefix.

    Examples:
        ```bash
        export RENTEASY__BRAND=chatpoint
        export RENTEASY__MONGO_URI=mongodb://mongo:27017
        ```

        ```python
        config = get_renteasy_config()
        print(config.RENTEASY.URL)  # http://0.0.0.0:5000
        ```

    Returns:
        Config instance with a RENTEASY section containing all settings.
    """
    global _config
    if _config is None:
        _config = Config.load(defaults={"RENTEASY": RentEasySettings()})
    return _config


def reset_renteasy_config() -> None:
    """Reset the config cache. Useful for testing."""
    global _config
    _config = None


def build_renteasy_config(**overrides: Any) -> Config:
    """Return a fresh config (defaults, then env, then the given RENTEASY overrides). Does not touch the cache."""
    return Config.load(
        defaults={"RENTEASY": RentEasySettings()},
        overrides={"RENTEASY": overrides} if overrides else None,
    )
