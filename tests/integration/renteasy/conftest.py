import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from renteasy.config import reset_renteasy_config
from renteasy.db import RentEasyDB, ensure_indexes
from renteasy.renteasy import RentEasyService


@pytest.fixture(autouse=True)
def reset_config():
    reset_renteasy_config()
    yield
    reset_renteasy_config()


@pytest_asyncio.fixture
async def renteasy_db(mongo_url, clean_db):
    """A connected RentEasyDB on the scratch database, with indexes in place."""
    db = RentEasyDB(uri=mongo_url, db_name=clean_db, server_selection_timeout_ms=2000)
    await db.connect()
    await ensure_indexes(db)
    try:
        yield db
    finally:
        await db.disconnect()


@pytest.fixture
def live_client(mongo_url, clean_db, tmp_path):
    """TestClient for a service on the scratch database. The lifespan runs, so indexes are created."""
    (tmp_path / "index.html").write_text("<html>index</html>", encoding="utf-8")
    (tmp_path / "delivery.html").write_text("<html>delivery</html>", encoding="utf-8")
    service = RentEasyService(
        enable_storage=False,
        config_overrides={
            "RENTEASY": {
                "URL": "http://localhost:5055",
                "MONGO_URI": mongo_url,
                "MONGO_DB": clean_db,
                "STATIC_DIR": str(tmp_path),
            }
        },
    )
    with TestClient(service.app) as client:
        yield client
