"""
Integration Test Fixtures.

The real application with a real (test) database. External channels stay
unconfigured unless a test sets them up.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eshop.backend.core import database
from eshop.backend.core.database import get_db_session
from eshop.backend.models.user import User, UserRole
from eshop.backend.schemas.user import UserCreate
from eshop.backend.services.auth import issue_token
from eshop.backend.services.user import UserService

ADMIN_EMAIL = "admin@2pnet.cz"
ADMIN_PASSWORD = "admin-heslo-123"
CUSTOMER_EMAIL = "nakup@firma.sk"
CUSTOMER_PASSWORD = "zakaznik-123"


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
async def client(
    db_session: AsyncSession,
    db_session_factory: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client bound to the test database.

    Request handlers share the test session, so data created by fixtures is
    visible to the API and the whole test is rolled back afterwards. Code
    that opens its own sessions (health checks) gets the test factory.

    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    monkeypatch.setattr(database, "_async_session_factory", db_session_factory)

    from eshop.backend.main import create_app

    app = create_app()
    app.dependency_overrides[get_db_session] = override_get_db_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert the response is a successful envelope.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert the response is an error envelope, optionally with a given code.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is False, f"Response should be error: {data}"
        assert data.get("error") is not None, f"Missing error details: {data}"

        if expected_code:
            actual_code = data["error"].get("code")
            assert actual_code == expected_code, (
                f"Expected error code {expected_code}, got {actual_code}"
            )

        return data

    @staticmethod
    def assert_validation_error(
        response: Any,
        field: str | None = None,
    ) -> dict[str, Any]:
        """Assert a 422 request validation error, optionally naming a field."""
        data = ApiAssertions.assert_error(response, 422, "VAL_REQUEST_INVALID")

        if field:
            errors = data["error"].get("details", {}).get("validation_errors", [])
            fields = [e.get("field", "") for e in errors]
            assert any(field in f for f in fields), (
                f"Expected validation error for field '{field}', "
                f"got errors for: {fields}"
            )

        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()


# =============================================================================
# Authentication Fixtures
# =============================================================================


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await UserService(db_session).create_user(
        UserCreate(
            email=ADMIN_EMAIL,
            password=ADMIN_PASSWORD,
            company_name="2Pnet",
            role=UserRole.ADMIN,
        )
    )


@pytest.fixture
async def customer_user(db_session: AsyncSession) -> User:
    return await UserService(db_session).create_user(
        UserCreate(
            email=CUSTOMER_EMAIL,
            password=CUSTOMER_PASSWORD,
            company_name="Firma s.r.o.",
            ico="12345678",
            dic="2023456789",
        )
    )


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user).access_token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    """
    Bearer headers for an admin account.

    Usage:
        async def test_list_invoices(client, admin_headers):
            response = await client.get("/api/v1/invoices", headers=admin_headers)
    """
    return bearer(admin_user)


@pytest.fixture
def customer_headers(customer_user: User) -> dict[str, str]:
    """Bearer headers for a B2B customer account."""
    return bearer(customer_user)
