"""Integration test fixtures — in-memory app, async client, bearer tokens."""

import os
import tempfile

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_tmp_root = tempfile.mkdtemp(prefix="healthhub-tests-")

# Force test config BEFORE any app imports
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-integration-tests"
os.environ["BLOB_DIR"] = os.path.join(_tmp_root, "storage")
os.environ["LOG_DIR"] = os.path.join(_tmp_root, "logs")
os.environ["DRIVE_FOLDER_ID"] = "test-folder"

import healthhub.database as db_mod
import healthhub.dependencies as dep_mod
from healthhub.utils.security import create_access_token


def _reset_singletons():
    """Reset all module-level singletons so each test session starts clean."""
    db_mod._engine = None
    db_mod._session_factory = None
    dep_mod.reset_singletons()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_app():
    """Create test app with in-memory database (shared via StaticPool)."""
    _reset_singletons()

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Inject into database module BEFORE app import
    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    dep_mod.get_app_config()

    from healthhub.main import app
    from healthhub.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield app

    await engine.dispose()
    _reset_singletons()


@pytest_asyncio.fixture(loop_scope="session")
async def client(test_app):
    """Async HTTP client for testing."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_headers():
    """Build bearer headers for an arbitrary identity."""
    def _make(user_id: str, role: str = "admin", email: str = ""):
        config = dep_mod.get_app_config()
        token = create_access_token(
            {"sub": user_id, "role": role, "email": email or f"{user_id}@example.com"},
            config.secret_key,
            config.jwt_algorithm,
        )
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def admin_headers(make_headers):
    return make_headers("admin-1", "admin")


@pytest.fixture
def viewer_headers(make_headers):
    return make_headers("viewer-1", "viewer")
