"""
MongoDB repository for user accounts.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.config import get_mongodb_database_name, get_mongodb_url, settings
from app.core.exceptions import ConflictError, InternalError
from app.core.logging import get_logger
from app.domain.models.account import (
    PRIVATE_FIELDS,
    AccountCreateModel,
    AccountModel,
    AccountUpdateModel,
)

logger = get_logger(__name__)

DUPLICATE_ACCOUNT_MESSAGE = "User with email or username already exists"


def _to_object_id(account_id: str) -> Optional[ObjectId]:
    """Parse an account id, returning None when it is not a valid ObjectId."""
    try:
        return ObjectId(account_id)
    except (InvalidId, TypeError):
        return None


def _private_projection(include_private: bool) -> Optional[Dict[str, int]]:
    """Projection that strips password and refresh token unless asked for."""
    if include_private:
        return None
    return {field: 0 for field in PRIVATE_FIELDS}


class AccountRepository:
    """Repository for accounts in MongoDB."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        """
        Initialize the repository.

        Args:
            collection: Optional pre-built collection; when omitted the
                connection is opened lazily on first use.
        """
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = collection
        self._initialized = collection is not None

    async def initialize(self):
        """Initialize MongoDB connection and collection."""
        if self._initialized:
            return

        try:
            mongodb_url = get_mongodb_url()
            database_name = get_mongodb_database_name()

            self.client = AsyncIOMotorClient(mongodb_url)
            self.database = self.client[database_name]
            self.collection = self.database[settings.ACCOUNTS_COLLECTION]

            await self._create_indexes()

            self._initialized = True
            logger.info(
                f"AccountRepository initialized with database: {database_name}"
            )

        except Exception as e:
            logger.error(f"Failed to initialize AccountRepository: {e}")
            raise InternalError("Database connection failed") from e

    async def disconnect(self):
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            self.collection = None
            self._initialized = False
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self):
        """Create the unique indexes that enforce username/email uniqueness."""
        await self.collection.create_index(
            [("username", ASCENDING)], unique=True, name="username_unique"
        )
        await self.collection.create_index(
            [("email", ASCENDING)], unique=True, name="email_unique"
        )
        await self.collection.create_index(
            [("created_at", DESCENDING)], name="created_at_index"
        )
        logger.info("Account indexes created successfully")

    async def find_by_id(
        self, account_id: str, include_private: bool = False
    ) -> Optional[AccountModel]:
        """
        Get an account by ID.

        Args:
            account_id: Account ID (MongoDB ObjectId as string)
            include_private: Whether to load password and refresh token

        Returns:
            AccountModel or None if not found
        """
        await self.initialize()

        object_id = _to_object_id(account_id)
        if object_id is None:
            return None

        try:
            document = await self.collection.find_one(
                {"_id": object_id}, _private_projection(include_private)
            )
        except PyMongoError as e:
            logger.error(f"Error getting account by ID {account_id}: {e}")
            raise InternalError("Database operation failed") from e

        return AccountModel(**document) if document else None

    async def find_by_username_or_email(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        include_private: bool = True,
    ) -> Optional[AccountModel]:
        """
        Get the account matching a username or an email.

        Args:
            username: Username to match (compared lowercase)
            email: Email to match (compared lowercase)
            include_private: Whether to load password and refresh token

        Returns:
            AccountModel or None if nothing matches
        """
        await self.initialize()

        clauses = []
        if username:
            clauses.append({"username": username.strip().lower()})
        if email:
            clauses.append({"email": email.strip().lower()})
        if not clauses:
            return None

        try:
            document = await self.collection.find_one(
                {"$or": clauses}, _private_projection(include_private)
            )
        except PyMongoError as e:
            logger.error(f"Error looking up account: {e}")
            raise InternalError("Database operation failed") from e

        return AccountModel(**document) if document else None

    async def create(self, account: AccountCreateModel) -> str:
        """
        Create a new account.

        Args:
            account: Account data with an already hashed password

        Returns:
            str: ID of the inserted account

        Raises:
            ConflictError: If the username or email is already taken
        """
        await self.initialize()

        now = datetime.now(timezone.utc)
        document = account.model_dump()
        document["created_at"] = now
        document["updated_at"] = now

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            logger.warning(
                "Duplicate account rejected by unique index",
                username=account.username,
            )
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE) from e
        except PyMongoError as e:
            logger.error(f"Error creating account: {e}")
            raise InternalError("Database operation failed") from e

        logger.info(f"Created account with ID: {result.inserted_id}")
        return str(result.inserted_id)

    async def update_by_id(
        self,
        account_id: str,
        update: Optional[AccountUpdateModel] = None,
        unset_fields: Iterable[str] = (),
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Optional[AccountModel]:
        """
        Update an account and return the sanitized result.

        Args:
            account_id: Account ID
            update: Profile fields to set (None values are ignored)
            unset_fields: Field names to remove from the document
            extra_fields: Raw fields to set alongside the update

        Returns:
            Updated AccountModel without private fields, or None if not found

        Raises:
            ConflictError: If the update collides with another account's email
        """
        await self.initialize()

        object_id = _to_object_id(account_id)
        if object_id is None:
            return None

        set_fields: Dict[str, Any] = {}
        if update is not None:
            set_fields.update(update.model_dump(exclude_none=True))
        if extra_fields:
            set_fields.update(extra_fields)
        set_fields["updated_at"] = datetime.now(timezone.utc)

        operation: Dict[str, Any] = {"$set": set_fields}
        unset = {field: "" for field in unset_fields}
        if unset:
            operation["$unset"] = unset

        try:
            document = await self.collection.find_one_and_update(
                {"_id": object_id},
                operation,
                projection=_private_projection(False),
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE) from e
        except PyMongoError as e:
            logger.error(f"Error updating account {account_id}: {e}")
            raise InternalError("Database operation failed") from e

        return AccountModel(**document) if document else None

    async def set_refresh_token(self, account_id: str, refresh_token: str) -> bool:
        """
        Store the active refresh token for an account.

        Returns:
            True if an account was updated
        """
        account = await self.update_by_id(
            account_id, extra_fields={"refresh_token": refresh_token}
        )
        return account is not None

    async def clear_refresh_token(self, account_id: str) -> bool:
        """
        Remove the stored refresh token from an account.

        Returns:
            True if an account was updated
        """
        account = await self.update_by_id(account_id, unset_fields=["refresh_token"])
        return account is not None


# Global repository instance
account_repository = AccountRepository()
