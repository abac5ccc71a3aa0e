"""
Test configuration and fixtures.

Provides:
- In-memory MongoDB (mongomock-motor) with Beanie initialised per test
- Member factory that writes credential, profile and mirror
- HTTPX AsyncClient over ASGITransport plus bearer headers
"""
import os
import tempfile
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

# Env harus di-set sebelum modul aplikasi diimpor
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["MONGODB_URL"] = "mongodb://localhost:27017/sfa_portal_test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="sfa_portal_uploads_")

from sfa_portal.main import app  # noqa: E402
from sfa_portal.core.auth_provider import auth_provider  # noqa: E402
from sfa_portal.core.blob_store import BlobStore, get_blob_store  # noqa: E402
from sfa_portal.core.security import create_access_token  # noqa: E402
from sfa_portal.core.sfa_id import allocate_sfa_id, initialize_counter  # noqa: E402
from sfa_portal.db.database import init_db  # noqa: E402
from sfa_portal.models.enum import MemberRole  # noqa: E402
from sfa_portal.models.member import Member, MemberByUid  # noqa: E402

DEFAULT_PASSWORD = "Secret#123"


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    client = AsyncMongoMockClient()
    database = client[f"sfa_portal_test_{uuid4().hex}"]
    await init_db(database)
    yield database


@pytest_asyncio.fixture
async def counter(db):
    """Counter initialised at 0 so the first allocation is SFA0001."""
    return await initialize_counter(0, initialized_by="pytest")


@pytest.fixture
def blob_store(tmp_path) -> BlobStore:
    return BlobStore(tmp_path / "blobs", "/files")


# =============================================================================
# Member factory
# =============================================================================

async def create_member(
    role: MemberRole = MemberRole.MEMBER,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    disabled: bool = False,
) -> Member:
    """Writes credential + profile + mirror the way registration does."""
    suffix = uuid4().hex[:8]
    credential = await auth_provider.create_user(email or f"member-{suffix}@example.com", DEFAULT_PASSWORD)
    sfa_id = await allocate_sfa_id()
    member = Member(
        id=sfa_id,
        uid=credential.id,
        email=credential.email,
        full_name=full_name or f"Member {suffix}",
        cms_id=f"CMS{suffix.upper()}",
        lobby_id="Lobby A",
        phone_number="9876543210",
        role=role,
        disabled=disabled,
    )
    await member.insert()
    await MemberByUid.from_member(member).insert()
    return member


@pytest.fixture
def member_factory(counter):
    return create_member


def auth_headers(member: Member) -> dict:
    token = create_access_token({"sub": member.uid})
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# HTTP client
# =============================================================================

@pytest_asyncio.fixture
async def client(db, blob_store) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    return auth_headers
