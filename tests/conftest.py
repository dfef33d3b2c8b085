import logging

import pytest


def by_integration_marker(item):
    # Unit tests first, then integration tests
    return 1 if "integration" in str(item.fspath) else 0


def pytest_addoption(parser):
    parser.addoption("--integration-last", action="store_true", default=False)


def pytest_collection_modifyitems(items, config):
    if config.getoption("--integration-last"):
        items.sort(key=by_integration_marker)


@pytest.fixture(autouse=True)
def configure_logging_for_tests(caplog):
    """Configure logging to work properly with caplog fixture.

    This fixture ensures that all RentEasy loggers propagate their messages to the root logger so that caplog can
    capture them properly.
    """
    caplog.set_level(logging.DEBUG)

    root_logger = logging.getLogger()
    original_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)

    renteasy_logger = logging.getLogger("renteasy")
    original_propagate = renteasy_logger.propagate
    renteasy_logger.propagate = True

    yield

    root_logger.setLevel(original_level)
    renteasy_logger.propagate = original_propagate
