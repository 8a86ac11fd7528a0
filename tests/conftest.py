"""Shared test fixtures."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("AI_ENABLED", "false")

from collections.abc import Callable  # noqa: E402
from unittest.mock import AsyncMock, Mock  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learnhub.auth.permissions import UserRole  # noqa: E402
from learnhub.auth.security import create_access_token  # noqa: E402
from learnhub.main import create_app  # noqa: E402


class FakeResultSet(list):
    """Iterable rows with the ``one()`` accessor of a driver ResultSet."""

    def one(self):
        return self[0] if self else None


@pytest.fixture
def mock_session() -> Mock:
    """Cassandra session whose prepared statements are the CQL text itself."""
    session = Mock()
    session.prepare = Mock(side_effect=lambda cql: " ".join(cql.split()))
    session.aexecute = AsyncMock(return_value=FakeResultSet())
    return session


@pytest.fixture
def app() -> FastAPI:
    """Fresh application without running the lifespan (no database)."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build an Authorization header for a role (and optionally a user id)."""

    def _make(role: UserRole = UserRole.INTERN, user_id: UUID | None = None) -> dict[str, str]:
        token = create_access_token(
            {
                "sub": str(user_id or uuid4()),
                "email": f"{role.value}@learnhub.test",
                "role": role.value,
                "name": f"Test {role.value}",
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _make
