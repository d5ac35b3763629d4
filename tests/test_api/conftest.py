"""
Fixtures for API tests: a TestClient on the real app with auth overridable
"""
import pytest
from fastapi.testclient import TestClient

from storefront.core.auth import TokenUser, create_access_token, get_current_member, require_admin
from storefront.core.rate_limit import rate_limiter
from storefront.main import app


@pytest.fixture
def client():
    rate_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
def as_admin():
    app.dependency_overrides[require_admin] = lambda: TokenUser(
        id="admin-1", email="admin@example.com", name="Admin", role="admin"
    )


@pytest.fixture
def as_member():
    app.dependency_overrides[get_current_member] = lambda: TokenUser(
        id="m-1", email="juan@example.com", name="juan", role="member", user_type="end_user"
    )


@pytest.fixture
def member_token():
    return create_access_token(
        subject="m-1", email="juan@example.com", role="member", name="juan", user_type="end_user"
    )
