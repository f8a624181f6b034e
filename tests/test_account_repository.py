from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from app.core.exceptions import ConflictError, InternalError
from app.domain.models.account import AccountCreateModel, AccountUpdateModel
from app.domain.repositories.account_repository import AccountRepository

pytestmark = pytest.mark.anyio


@pytest.fixture
def collection() -> MagicMock:
    mock = MagicMock()
    mock.insert_one = AsyncMock()
    mock.find_one = AsyncMock()
    mock.find_one_and_update = AsyncMock()
    return mock


@pytest.fixture
def account_repository(collection) -> AccountRepository:
    return AccountRepository(collection=collection)


def _document(object_id: ObjectId, **overrides) -> dict:
    now = datetime.now(timezone.utc)
    document = {
        "_id": object_id,
        "username": "ab1",
        "email": "a@b.com",
        "full_name": "A B",
        "avatar": "https://media.example.com/a.png",
        "cover_image": "",
        "created_at": now,
        "updated_at": now,
    }
    document.update(overrides)
    return document


def _new_account() -> AccountCreateModel:
    return AccountCreateModel(
        username=" AB1 ",
        email="A@B.com",
        full_name="A B",
        password="hash",
        avatar="https://media.example.com/a.png",
    )


@pytest.mark.anyio
async def test_create_normalizes_and_timestamps(account_repository, collection):
    inserted_id = ObjectId()
    collection.insert_one.return_value = MagicMock(inserted_id=inserted_id)

    account_id = await account_repository.create(_new_account())

    assert account_id == str(inserted_id)
    (document,), _ = collection.insert_one.call_args
    assert document["username"] == "ab1"
    assert document["email"] == "a@b.com"
    assert document["created_at"] == document["updated_at"]


@pytest.mark.anyio
async def test_create_translates_duplicate_key_into_conflict(account_repository, collection):
    collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

    with pytest.raises(ConflictError):
        await account_repository.create(_new_account())


@pytest.mark.anyio
async def test_create_translates_driver_failure_into_internal_error(
    account_repository, collection
):
    collection.insert_one.side_effect = ServerSelectionTimeoutError("no servers")

    with pytest.raises(InternalError):
        await account_repository.create(_new_account())


@pytest.mark.anyio
async def test_find_by_id_excludes_private_fields_by_default(account_repository, collection):
    object_id = ObjectId()
    collection.find_one.return_value = _document(object_id)

    account = await account_repository.find_by_id(str(object_id))

    assert account.id == str(object_id)
    assert account.password is None
    query, projection = collection.find_one.call_args.args
    assert query == {"_id": object_id}
    assert projection == {"password": 0, "refresh_token": 0}


@pytest.mark.anyio
async def test_find_by_id_with_invalid_id_skips_query(account_repository, collection):
    assert await account_repository.find_by_id("not-an-object-id") is None
    collection.find_one.assert_not_called()


@pytest.mark.anyio
async def test_find_by_username_or_email_builds_or_query(account_repository, collection):
    object_id = ObjectId()
    collection.find_one.return_value = _document(object_id, password="hash")

    account = await account_repository.find_by_username_or_email(
        username="AB1", email="A@B.com"
    )

    assert account.password == "hash"
    query, projection = collection.find_one.call_args.args
    assert query == {"$or": [{"username": "ab1"}, {"email": "a@b.com"}]}
    assert projection is None


@pytest.mark.anyio
async def test_find_by_username_or_email_without_identifiers(account_repository, collection):
    assert await account_repository.find_by_username_or_email() is None
    collection.find_one.assert_not_called()


@pytest.mark.anyio
async def test_clear_refresh_token_unsets_field(account_repository, collection):
    object_id = ObjectId()
    collection.find_one_and_update.return_value = _document(object_id)

    assert await account_repository.clear_refresh_token(str(object_id))

    query, operation = collection.find_one_and_update.call_args.args
    assert query == {"_id": object_id}
    assert operation["$unset"] == {"refresh_token": ""}
    assert "updated_at" in operation["$set"]


@pytest.mark.anyio
async def test_set_refresh_token_sets_field(account_repository, collection):
    object_id = ObjectId()
    collection.find_one_and_update.return_value = _document(object_id)

    assert await account_repository.set_refresh_token(str(object_id), "token")

    _, operation = collection.find_one_and_update.call_args.args
    assert operation["$set"]["refresh_token"] == "token"
    assert "$unset" not in operation


@pytest.mark.anyio
async def test_update_by_id_translates_duplicate_email(account_repository, collection):
    collection.find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key")

    with pytest.raises(ConflictError):
        await account_repository.update_by_id(
            str(ObjectId()), AccountUpdateModel(email="taken@b.com")
        )


@pytest.mark.anyio
async def test_update_by_id_returns_none_for_missing_account(account_repository, collection):
    collection.find_one_and_update.return_value = None

    assert await account_repository.update_by_id(
        str(ObjectId()), AccountUpdateModel(full_name="X")
    ) is None
