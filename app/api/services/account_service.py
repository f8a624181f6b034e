"""
Account Service Layer.
Contains business logic for registration, login, token rotation and profile updates.
"""

from typing import Optional, Tuple

from fastapi import UploadFile

from app.api.dto.account_dto import TokenPairDTO
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from app.core.logging import get_logger, log_account_operation, log_token_operation
from app.core.security import (
    PasswordHasher,
    TokenIssuer,
    password_hasher,
    token_issuer,
)
from app.domain.models.account import (
    AccountCreateModel,
    AccountModel,
    AccountUpdateModel,
)
from app.domain.repositories.account_repository import (
    DUPLICATE_ACCOUNT_MESSAGE,
    AccountRepository,
    account_repository,
)
from app.infrastructure.media import MediaUploadService, media_upload_service

logger = get_logger(__name__)


def _is_blank(value: Optional[str]) -> bool:
    """A value is blank when it is missing or only whitespace."""
    return value is None or not str(value).strip()


def _has_file(upload: Optional[UploadFile]) -> bool:
    """Multipart forms send an empty part with no filename for an unset file input."""
    return upload is not None and bool(upload.filename)


class AccountService:
    """Service class for account management."""

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        uploader: MediaUploadService,
    ):
        """
        Initialize account service.

        Args:
            repository: Account persistence
            hasher: Credential verifier
            tokens: Token issuer
            uploader: Media upload collaborator
        """
        self.repository = repository
        self.hasher = hasher
        self.tokens = tokens
        self.uploader = uploader

    async def _upload(self, upload: Optional[UploadFile]) -> Optional[str]:
        """Stage and upload a file, returning its URL or None."""
        if not _has_file(upload):
            return None
        result = await self.uploader.upload_file(upload)
        if not result:
            return None
        return result.get("url") or None

    async def generate_access_and_refresh_tokens(
        self, account: AccountModel
    ) -> TokenPairDTO:
        """
        Issue a new token pair and persist the refresh token on the account.

        The stored refresh token is replaced, so only one session is active
        per account.

        Raises:
            InternalError: If the refresh token could not be persisted
        """
        access_token = self.tokens.create_access_token(account.model_dump(by_alias=True))
        refresh_token = self.tokens.create_refresh_token(account.id)

        try:
            stored = await self.repository.set_refresh_token(account.id, refresh_token)
        except InternalError:
            stored = False

        if not stored:
            log_token_operation("issue", account_id=account.id, status="failed")
            raise InternalError(
                "Something went wrong while generating refresh and access token"
            )

        log_token_operation("issue", account_id=account.id)
        return TokenPairDTO(access_token=access_token, refresh_token=refresh_token)

    async def register(
        self,
        full_name: Optional[str],
        email: Optional[str],
        username: Optional[str],
        password: Optional[str],
        avatar: Optional[UploadFile],
        cover_image: Optional[UploadFile] = None,
    ) -> AccountModel:
        """
        Register a new account.

        Steps:
        1. Validate required fields
        2. Reject a taken username or email
        3. Upload avatar (required) and cover image (optional)
        4. Create the account with a hashed password
        5. Re-fetch the sanitized account

        Returns:
            The created account without password or refresh token
        """
        if any(_is_blank(field) for field in (full_name, email, username, password)):
            raise BadRequestError("All fields are required")

        existing = await self.repository.find_by_username_or_email(
            username=username, email=email, include_private=False
        )
        if existing:
            raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)

        if not _has_file(avatar):
            raise BadRequestError("Avatar file is required")

        avatar_url = await self._upload(avatar)
        if not avatar_url:
            raise BadRequestError("Avatar file is required")

        # Cover image is optional; a rejected file registers the account without one
        cover_image_url = ""
        try:
            cover_image_url = await self._upload(cover_image) or ""
        except BadRequestError as e:
            logger.warning("Cover image rejected during registration", reason=e.message)

        account_id = await self.repository.create(
            AccountCreateModel(
                username=username,
                email=email,
                full_name=full_name,
                password=self.hasher.hash(password),
                avatar=avatar_url,
                cover_image=cover_image_url,
            )
        )

        created = await self.repository.find_by_id(account_id)
        if not created:
            raise InternalError("Something went wrong while registering the user")

        log_account_operation("register", account_id=created.id, username=created.username)
        return created

    async def login(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> Tuple[AccountModel, TokenPairDTO]:
        """
        Authenticate by username or email and password.

        Returns:
            Tuple of (sanitized account, token pair)
        """
        if _is_blank(username) and _is_blank(email):
            raise BadRequestError("username or email is required")
        if _is_blank(password):
            raise BadRequestError("Password is required")

        account = await self.repository.find_by_username_or_email(
            username=None if _is_blank(username) else username,
            email=None if _is_blank(email) else email,
        )
        if not account:
            raise NotFoundError("User does not exist")

        if not self.hasher.verify(password, account.password):
            log_account_operation(
                "login", account_id=account.id, username=account.username, status="rejected"
            )
            raise UnauthorizedError("Invalid user credentials")

        token_pair = await self.generate_access_and_refresh_tokens(account)

        logged_in = await self.repository.find_by_id(account.id)
        if not logged_in:
            raise InternalError("Something went wrong while logging in")

        log_account_operation("login", account_id=account.id, username=account.username)
        return logged_in, token_pair

    async def logout(self, account_id: str) -> None:
        """Revoke the stored refresh token."""
        await self.repository.clear_refresh_token(account_id)
        log_token_operation("revoke", account_id=account_id)
        log_account_operation("logout", account_id=account_id)

    async def refresh_access_token(self, incoming_refresh_token: Optional[str]) -> TokenPairDTO:
        """
        Rotate the token pair using the presented refresh token.

        The presented token must be the one currently stored on the account;
        a stale or reused token is rejected without rotating.
        """
        if _is_blank(incoming_refresh_token):
            raise UnauthorizedError("Unauthorized request")

        claims = self.tokens.decode_refresh_token(incoming_refresh_token)

        account = await self.repository.find_by_id(claims["_id"], include_private=True)
        if not account:
            raise UnauthorizedError("Invalid refresh token")

        if incoming_refresh_token != account.refresh_token:
            log_token_operation("rotate", account_id=account.id, status="rejected")
            raise UnauthorizedError("Refresh token is expired or used")

        token_pair = await self.generate_access_and_refresh_tokens(account)
        log_token_operation("rotate", account_id=account.id)
        return token_pair

    async def change_password(
        self, account_id: str, old_password: Optional[str], new_password: Optional[str]
    ) -> None:
        """Verify the old password and store the re-hashed new one."""
        if _is_blank(old_password) or _is_blank(new_password):
            raise BadRequestError("Old and new password are required")

        account = await self.repository.find_by_id(account_id, include_private=True)
        if not account:
            raise NotFoundError("User does not exist")

        if not self.hasher.verify(old_password, account.password):
            raise BadRequestError("Invalid old password")

        await self.repository.update_by_id(
            account_id, AccountUpdateModel(password=self.hasher.hash(new_password))
        )
        log_account_operation("change_password", account_id=account_id)

    async def get_account_by_id(self, account_id: str) -> Optional[AccountModel]:
        """Get the sanitized account, or None if it does not exist."""
        return await self.repository.find_by_id(account_id)

    async def get_current_account(self, account_id: str) -> AccountModel:
        """Get the sanitized account, raising NotFoundError if it is gone."""
        account = await self.repository.find_by_id(account_id)
        if not account:
            raise NotFoundError("User does not exist")
        return account

    async def update_account_details(
        self, account_id: str, full_name: Optional[str], email: Optional[str]
    ) -> AccountModel:
        """Update the full name and email of an account."""
        if _is_blank(full_name) or _is_blank(email):
            raise BadRequestError("All fields are required")

        updated = await self.repository.update_by_id(
            account_id, AccountUpdateModel(full_name=full_name.strip(), email=email)
        )
        if not updated:
            raise NotFoundError("User does not exist")

        log_account_operation("update_details", account_id=account_id)
        return updated

    async def update_avatar(
        self, account_id: str, avatar: Optional[UploadFile]
    ) -> AccountModel:
        """Replace the account's avatar."""
        if not _has_file(avatar):
            raise BadRequestError("Avatar file is missing")

        avatar_url = await self._upload(avatar)
        if not avatar_url:
            raise BadRequestError("Error while uploading avatar")

        updated = await self.repository.update_by_id(
            account_id, AccountUpdateModel(avatar=avatar_url)
        )
        if not updated:
            raise NotFoundError("User does not exist")

        log_account_operation("update_avatar", account_id=account_id)
        return updated

    async def update_cover_image(
        self, account_id: str, cover_image: Optional[UploadFile]
    ) -> AccountModel:
        """Replace the account's cover image."""
        if not _has_file(cover_image):
            raise BadRequestError("Cover image file is missing")

        cover_image_url = await self._upload(cover_image)
        if not cover_image_url:
            raise BadRequestError("Error while uploading cover image")

        updated = await self.repository.update_by_id(
            account_id, AccountUpdateModel(cover_image=cover_image_url)
        )
        if not updated:
            raise NotFoundError("User does not exist")

        log_account_operation("update_cover_image", account_id=account_id)
        return updated


# Global service instance
account_service = AccountService(
    repository=account_repository,
    hasher=password_hasher,
    tokens=token_issuer,
    uploader=media_upload_service,
)


def get_account_service() -> AccountService:
    """FastAPI dependency returning the account service."""
    return account_service
