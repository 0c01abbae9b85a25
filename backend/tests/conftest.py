"""
ReadLater Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── encryption_service: Engine with a low PBKDF2 work factor (fast tests)
    ├── master_key / other_key: Two independent user master keys
    ├── temp_storage: Temporary storage root
    ├── storage_service: StorageService over temp_storage
    ├── sample_record: A plaintext ArticleContent
    └── test_client: HTTPX AsyncClient against an app built on temp_storage
"""

import os
import shutil
import tempfile

# Override settings for testing BEFORE any app imports
_SESSION_STORAGE = tempfile.mkdtemp(prefix="readlater_test_")
os.environ["STORAGE_ROOT"] = _SESSION_STORAGE
os.environ["KEY_DERIVATION_ITERATIONS"] = "1000"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from readlater.config import Settings
from readlater.schemas.content import ArticleContent
from readlater.services.encryption_service import EncryptionService
from readlater.services.storage_service import StorageService

TEST_ITERATIONS = 1000


@pytest.fixture(scope="session", autouse=True)
def _session_storage_cleanup():
    """Remove the module-level settings storage root when the session ends."""
    yield
    shutil.rmtree(_SESSION_STORAGE, ignore_errors=True)


@pytest.fixture
def encryption_service():
    return EncryptionService(iterations=TEST_ITERATIONS)


@pytest.fixture
def master_key(encryption_service):
    return encryption_service.generate_user_key()


@pytest.fixture
def other_key(encryption_service):
    return encryption_service.generate_user_key()


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage root per test. Not pre-created: namespaces are lazy."""
    return str(tmp_path / "storage")


@pytest.fixture
def storage_service(temp_storage, encryption_service):
    return StorageService(storage_root=temp_storage, encryption=encryption_service)


@pytest.fixture
def sample_record():
    return ArticleContent(
        title="On Saving Things",
        url="https://example.com/articles/saving",
        content="Hello world",
        summary="A short greeting.",
        tags=["reading", "archive"],
        metadata={"author": "A. Writer", "site_name": "Example"},
    )


@pytest_asyncio.fixture
async def test_client(temp_storage):
    """
    HTTPX AsyncClient talking to an app built on the per-test storage root.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from readlater.main import create_app

    app = create_app(
        Settings(
            storage_root=temp_storage,
            key_derivation_iterations=TEST_ITERATIONS,
            log_level="WARNING",
        )
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
