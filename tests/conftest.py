# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/conftest.py

"""
Shared test fixtures for the sharemigrate test suite.
"""

import pytest
from loguru import logger
from sqlalchemy import create_engine, text

from sharemigrate.config.manager import ReconcileConfig
from sharemigrate.store.shares import ShareStore
from tests.fixtures.share_factory import FakeBackend, SHARE_TABLE_DDL


@pytest.fixture(autouse=True)
def reset_loguru():
    """Drop sinks added by setup_logging() so they never outlive a test."""
    yield
    logger.remove()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def share_db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'shares.db'}"


@pytest.fixture
def share_engine(share_db_url):
    engine = create_engine(share_db_url)
    with engine.begin() as conn:
        conn.execute(text(SHARE_TABLE_DDL))
    yield engine
    engine.dispose()


@pytest.fixture
def share_store(share_engine):
    return ShareStore(share_engine)


@pytest.fixture
def reconcile_config():
    """Fast retries so the propagation wait never sleeps in tests."""
    return ReconcileConfig(home_prefix="/eos/scratch/user/", concurrency=4,
                           version_retries=5, retry_delay=0.0)
