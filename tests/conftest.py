import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before any domain module is imported.

    Each domain is initialized by its own DomainFixture in the per-context conftest.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("EVENT_PUBLISHER", "memory")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def reset_publisher():
    """Drop the publisher singleton so no subscriber leaks between tests."""
    from shared.publisher import reset_publisher

    yield
    reset_publisher()
