"""Unit tests for RentEasyService construction and lifecycle."""

import logging
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from renteasy.config import PACKAGE_PUBLIC_DIR
from renteasy.db import ORDERS, OWNERS, SHOPS, USERS
from renteasy.renteasy import RentEasyService


class TestRentEasyServiceInit:
    """Tests for configuration applied at construction."""

    def test_defaults_from_config(self, fake_db, mock_image_store):
        service = RentEasyService(db=fake_db, image_store=mock_image_store)

        assert service.brand.key == "renteasy"
        assert service.cache_name == "renteasy-v1"
        assert service.static_dir == PACKAGE_PUBLIC_DIR
        assert service.max_upload_bytes == 10 * 1024 * 1024
        assert service.default_delivery_charge == 30.0
        assert str(service.url).startswith("http://0.0.0.0:5000")

    def test_brand_override(self, fake_db, mock_image_store):
        service = RentEasyService(brand="chatpoint", db=fake_db, image_store=mock_image_store)

        assert service.brand.display_name == "Chat Point"
        assert service.cache_name == "chatpoint-v9"
        assert service.config.RENTEASY.BRAND == "chatpoint"

    def test_unknown_brand(self, fake_db):
        with pytest.raises(ValueError, match="Unknown brand"):
            RentEasyService(brand="nope", db=fake_db, enable_storage=False)

    def test_cache_name_override(self, fake_db):
        service = RentEasyService(
            db=fake_db, enable_storage=False, config_overrides={"RENTEASY": {"CACHE_NAME": "renteasy-v2"}}
        )

        assert service.cache_name == "renteasy-v2"

    def test_env_overrides(self, env_override, fake_db):
        env_override.set(RENTEASY__DEFAULT_DELIVERY_CHARGE="45", RENTEASY__URL="http://127.0.0.1:6001")

        service = RentEasyService(db=fake_db, enable_storage=False)

        assert service.default_delivery_charge == 45.0
        assert service.url.port == 6001

    def test_db_built_from_config(self):
        """Test the database name falls back to the brand's database."""
        with patch("renteasy.renteasy.RentEasyDB") as mock_db_cls:
            RentEasyService(brand="chatpoint", enable_storage=False)

        mock_db_cls.assert_called_once_with(uri="mongodb://127.0.0.1:27017", db_name="chatpoint")

    def test_image_store_built_from_config(self, fake_db):
        with patch("renteasy.renteasy.ImageStore") as mock_store_cls:
            service = RentEasyService(db=fake_db)

        mock_store_cls.assert_called_once_with(
            "shop-images",
            endpoint="localhost:9000",
            access_key="minioadmin",
            secret_key="minioadmin",
            secure=False,
            public_url=None,
            ensure_bucket=False,
        )
        assert service.images is mock_store_cls.return_value

    def test_disabled_backends(self):
        service = RentEasyService(enable_db=False, enable_storage=False)

        assert service.db is None
        assert service.images is None
        with pytest.raises(RuntimeError, match="Database is disabled"):
            service.orders

    def test_disabled_db_requests_fail_cleanly(self):
        client = TestClient(RentEasyService(enable_db=False, enable_storage=False).app)

        response = client.get("/api/delivery-orders")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Error loading orders"}

    def test_endpoints_registered(self, service):
        for path in (
            "/api/user/signup",
            "/api/user/login",
            "/api/owner/signup",
            "/api/owner/login",
            "/api/upload-shop",
            "/api/shops",
            "/api/shops/{shop_id}",
            "/api/save-order",
            "/api/my-orders",
            "/api/delivery-orders",
            "/api/update-order-status",
            "/delivery",
            "/sw.js",
        ):
            assert path in service._endpoints
        assert service._endpoints[-1] == "/{full_path:path}"

    def test_default_url(self, env_override):
        env_override.set(RENTEASY__URL="http://10.0.0.5:7000")

        url = RentEasyService.default_url()

        assert url.host == "10.0.0.5"
        assert url.port == 7000


class TestRentEasyServiceLifecycle:
    """Tests for startup_initialize and shutdown_cleanup."""

    @pytest.mark.asyncio
    async def test_startup_connects_and_creates_indexes(self, service, fake_db, mock_image_store):
        await service.startup_initialize()

        assert fake_db.is_connected
        indexed = {collection for collection, _, _ in fake_db.indexes}
        assert indexed == {USERS, OWNERS, SHOPS, ORDERS}
        mock_image_store.ensure_bucket.assert_called_once()

    @pytest.mark.asyncio
    async def test_startup_fails_without_mongo(self, service, fake_db, caplog):
        fake_db.fail_with = ConnectionError("connection refused")

        with pytest.raises(ConnectionError):
            await service.startup_initialize()

        assert "MongoDB unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_bucket_failure_only_warns(self, service, mock_image_store, caplog):
        """Test an unreachable object store does not stop the service from starting."""
        mock_image_store.ensure_bucket.side_effect = ConnectionError("minio down")

        await service.startup_initialize()

        assert "Image bucket check failed" in caplog.text

    @pytest.mark.asyncio
    async def test_shutdown_disconnects(self, service, fake_db):
        await service.startup_initialize()
        await service.shutdown_cleanup()

        assert fake_db.is_connected is False

    def test_lifespan_runs_with_test_client(self, service, fake_db):
        with TestClient(service.app) as client:
            assert fake_db.is_connected
            assert client.get("/api/shops").status_code == 200

        assert fake_db.is_connected is False

    @pytest.mark.asyncio
    async def test_startup_without_backends(self):
        service = RentEasyService(enable_db=False, enable_storage=False)

        await service.startup_initialize()
        await service.shutdown_cleanup()


class TestLaunch:
    def test_launch_passes_brand(self):
        with patch("renteasy.services.service.uvicorn.run") as mock_run:
            RentEasyService.launch(
                url="http://127.0.0.1:5099", brand="chatpoint", enable_db=False, enable_storage=False
            )

        mock_run.assert_called_once()
        app = mock_run.call_args.args[0]
        assert app.summary == "Chat Point Storefront Service"
        assert mock_run.call_args.kwargs["port"] == 5099


    def test_launch_uses_configured_log_level(self, env_override):
        env_override.set(RENTEASY__LOG_LEVEL="WARNING")

        with patch("renteasy.services.service.uvicorn.run") as mock_run:
            RentEasyService.launch(url="http://127.0.0.1:5099", enable_db=False, enable_storage=False)

        assert mock_run.call_args.kwargs["log_level"] == "warning"

    def test_explicit_log_level_wins(self, env_override):
        env_override.set(RENTEASY__LOG_LEVEL="WARNING")

        with patch("renteasy.services.service.uvicorn.run") as mock_run:
            RentEasyService.launch(log_level="debug", enable_db=False, enable_storage=False)

        assert mock_run.call_args.kwargs["log_level"] == "debug"


class TestLogLevel:
    """Tests for the LOG_LEVEL and DEBUG settings."""

    def test_default_level(self, fake_db):
        service = RentEasyService(db=fake_db, enable_storage=False)

        assert service.log_level == "INFO"
        assert logging.getLogger("renteasy.renteasyservice").level == logging.INFO

    def test_log_level_setting(self, fake_db):
        service = RentEasyService(
            db=fake_db, enable_storage=False, config_overrides={"RENTEASY": {"LOG_LEVEL": "warning"}}
        )

        assert service.log_level == "WARNING"
        assert logging.getLogger("renteasy.renteasyservice").level == logging.WARNING

    def test_debug_forces_debug_level(self, env_override, fake_db):
        env_override.set(RENTEASY__DEBUG="true", RENTEASY__LOG_LEVEL="ERROR")

        service = RentEasyService(db=fake_db, enable_storage=False)

        assert service.log_level == "DEBUG"
        assert logging.getLogger("renteasy.renteasyservice").level == logging.DEBUG

    def test_unknown_level_rejected(self, fake_db):
        with pytest.raises(ValueError, match="Unknown log level"):
            RentEasyService(db=fake_db, enable_storage=False, config_overrides={"RENTEASY": {"LOG_LEVEL": "loud"}})
