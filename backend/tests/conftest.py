"""Shared test fixtures and configuration for backend tests."""
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from remcpy.config import AppSettings, StoreSettings
from remcpy.main import create_app


@pytest.fixture
def store_root(tmp_path):
    """Store directory inside the test's temp dir (created by the lifespan)."""
    return tmp_path / "store"


@pytest.fixture
def settings(store_root) -> AppSettings:
    return AppSettings(store=StoreSettings(root=str(store_root)))


@pytest.fixture
def api_client(settings) -> Generator[TestClient, None, None]:
    """Provide a TestClient with the lifespan running (store, scheduler, worker)."""
    with TestClient(create_app(settings)) as client:
        yield client
