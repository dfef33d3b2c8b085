"""Shared fixtures for integration tests."""

import pytest
from pymongo import MongoClient
from pymongo.errors import PyMongoError

MONGO_URL = "mongodb://localhost:27017"
MONGO_DB = "renteasy_integration_test"


def mongo_available(url: str = MONGO_URL) -> bool:
    client = MongoClient(url, serverSelectionTimeoutMS=1000)
    try:
        client.admin.command("ping")
        return True
    except PyMongoError:
        return False
    finally:
        client.close()


@pytest.fixture(scope="session")
def mongo_url():
    """MongoDB URL for integration tests; skips the test when no server is reachable."""
    if not mongo_available():
        pytest.skip(f"MongoDB not reachable at {MONGO_URL}")
    return MONGO_URL


@pytest.fixture
def clean_db(mongo_url):
    """Name of a scratch database, dropped before and after the test."""
    client = MongoClient(mongo_url)
    client.drop_database(MONGO_DB)
    try:
        yield MONGO_DB
    finally:
        client.drop_database(MONGO_DB)
        client.close()
