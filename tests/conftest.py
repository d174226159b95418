" generic fixtures "
import logging

import pytest
from pytest_asyncio import fixture

from deckcord.config import SETTINGS_SCHEMA, Configuration
from deckcord.session import Session

from .testtools import FakeBackend, RecordingConnection

CONTEXT_A = "ctx-a"
CONTEXT_B = "ctx-b"


def pytest_configure():
    "Runs once before all"
    from deckcord.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def test_logger():
    return logging.getLogger("deckcord-tests")


@pytest.fixture
def make_config(test_logger):
    "Build a Configuration from keyword overrides"

    def _make(**settings):
        return Configuration(settings, logger=test_logger, schema=SETTINGS_SCHEMA)

    return _make


@pytest.fixture
def config(make_config):
    # keep the retry loop fast
    return make_config(focus_delay=0.001, focus_attempts=5, poll_interval=0.05)


@pytest.fixture
def backend(config, test_logger):
    return FakeBackend(config, test_logger)


@pytest.fixture
def connection():
    return RecordingConnection()


@fixture
async def session(connection, backend, config, test_logger):
    return Session(connection, backend, config, test_logger)
