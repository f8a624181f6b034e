import os
import sys
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from asgi_lifespan import LifespanManager

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
os.environ.setdefault("ANYIO_BACKEND", "asyncio")

from app.main import app  # noqa: E402
from app.api.services.account_service import AccountService, get_account_service  # noqa: E402
from app.core.exceptions import ConflictError  # noqa: E402
from app.core.security import PasswordHasher, TokenIssuer  # noqa: E402
from app.domain.models.account import PRIVATE_FIELDS, AccountModel  # noqa: E402
from app.infrastructure.media import stage_upload  # noqa: E402


class InMemoryAccountRepository:
    """Dict-backed stand-in for AccountRepository with the same unique constraints."""

    def __init__(self):
        self.documents = {}

    def _load(self, document, include_private):
        if document is None:
            return None
        data = dict(document)
        if not include_private:
            for field in PRIVATE_FIELDS:
                data.pop(field, None)
        return AccountModel(**data)

    def _collides(self, field, value, exclude_id=None):
        return any(
            doc.get(field) == value and doc_id != exclude_id
            for doc_id, doc in self.documents.items()
        )

    async def find_by_id(self, account_id, include_private=False):
        return self._load(self.documents.get(account_id), include_private)

    async def find_by_username_or_email(self, username=None, email=None, include_private=True):
        for document in self.documents.values():
            if username and document["username"] == username.strip().lower():
                return self._load(document, include_private)
            if email and document["email"] == email.strip().lower():
                return self._load(document, include_private)
        return None

    async def create(self, account):
        if self._collides("username", account.username) or self._collides("email", account.email):
            raise ConflictError("User with email or username already exists")
        account_id = str(ObjectId())
        now = datetime.now(timezone.utc)
        document = account.model_dump()
        document.update({"_id": account_id, "created_at": now, "updated_at": now})
        self.documents[account_id] = document
        return account_id

    async def update_by_id(self, account_id, update=None, unset_fields=(), extra_fields=None):
        document = self.documents.get(account_id)
        if document is None:
            return None
        set_fields = update.model_dump(exclude_none=True) if update is not None else {}
        set_fields.update(extra_fields or {})
        if "email" in set_fields and self._collides("email", set_fields["email"], account_id):
            raise ConflictError("User with email or username already exists")
        document.update(set_fields)
        for field in unset_fields:
            document.pop(field, None)
        document["updated_at"] = datetime.now(timezone.utc)
        return self._load(document, include_private=False)

    async def set_refresh_token(self, account_id, refresh_token):
        return await self.update_by_id(account_id, extra_fields={"refresh_token": refresh_token}) is not None

    async def clear_refresh_token(self, account_id):
        return await self.update_by_id(account_id, unset_fields=["refresh_token"]) is not None


class FakeMediaUploadService:
    """Stages files like the real service, records uploads and returns predictable URLs."""

    def __init__(self, temp_dir):
        self.temp_dir = temp_dir
        self.uploaded = []
        self.fail = False

    async def upload_file(self, upload):
        local_path = await stage_upload(upload, temp_dir=self.temp_dir)
        if local_path is None:
            return None
        os.remove(local_path)
        if self.fail:
            return None
        self.uploaded.append(upload.filename)
        return {"url": f"https://media.example.com/{upload.filename}", "public_id": upload.filename}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def uploader(tmp_path) -> FakeMediaUploadService:
    return FakeMediaUploadService(temp_dir=str(tmp_path))


@pytest.fixture
def token_issuer() -> TokenIssuer:
    return TokenIssuer(access_secret="test-access-secret", refresh_secret="test-refresh-secret")


@pytest.fixture
def service(repository, uploader, token_issuer) -> AccountService:
    return AccountService(
        repository=repository,
        hasher=PasswordHasher(rounds=4),
        tokens=token_issuer,
        uploader=uploader,
    )


@pytest.fixture(autouse=True)
def override_account_service(service: AccountService):
    """
    Route every request through the in-memory service so tests run
    without MongoDB or the media store.
    """
    app.dependency_overrides[get_account_service] = lambda: service
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    """Shared HTTPX async client with FastAPI lifespan handling."""
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


REGISTRATION_FORM = {
    "fullName": "A B",
    "email": "a@b.com",
    "username": "ab1",
    "password": "pw123456",
}


@pytest.fixture
def registration_form() -> dict:
    return dict(REGISTRATION_FORM)


@pytest.fixture
def avatar_file() -> dict:
    return {"avatar": ("avatar.png", b"\x89PNG fake avatar", "image/png")}


@pytest.fixture
async def registered_account(async_client, registration_form, avatar_file) -> dict:
    """Register the sample account and return the response data."""
    response = await async_client.post(
        "/api/v1/users/register", data=registration_form, files=avatar_file
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
async def logged_in(async_client, registered_account) -> dict:
    """Log the sample account in and return the login response data."""
    response = await async_client.post(
        "/api/v1/users/login",
        json={"username": "ab1", "password": "pw123456"},
    )
    assert response.status_code == 200
    return response.json()["data"]
