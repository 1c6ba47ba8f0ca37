from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from lms.main import create_app
from lms.services.container import Services
from tests.support import build_test_services, mint_token, seed_course


@pytest.fixture
def services() -> Services:
    """A fresh in-memory container per test, so no state bleeds between tests."""
    return build_test_services()


@pytest.fixture
def client(services: Services) -> TestClient:
    return TestClient(create_app(services))


@pytest.fixture
def course(services: Services):
    return asyncio.run(seed_course(services.store))


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(
        user_id="test-admin",
        roles=["user", "admin"],
        email="admin@example.com",
        name="Site Admin",
    )
