"""
JWT Authentication Guard for FastAPI.
Resolves the acting account from the accessToken cookie or a Bearer header.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.services.account_service import AccountService, get_account_service
from app.core.exceptions import UnauthorizedError
from app.core.logging import get_logger
from app.domain.models.account import AccountModel

logger = get_logger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"

# Security scheme for the access token
security = HTTPBearer(auto_error=False)


class AuthenticatedAccount:
    """Authenticated account data structure."""

    def __init__(self, account_id: str, username: str, email: str, full_name: str):
        self.account_id = account_id
        self.username = username
        self.email = email
        self.full_name = full_name

    @classmethod
    def from_account(cls, account: AccountModel) -> "AuthenticatedAccount":
        """Build from a sanitized account document."""
        return cls(
            account_id=account.id,
            username=account.username,
            email=account.email,
            full_name=account.full_name,
        )


def extract_access_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    """Extract the access token from the cookie, falling back to the Bearer header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    service: AccountService = Depends(get_account_service),
) -> AuthenticatedAccount:
    """
    FastAPI dependency to get the current authenticated account.

    Args:
        request: FastAPI request object
        credentials: Optional Bearer credentials
        service: Account service

    Returns:
        AuthenticatedAccount: Authenticated account data

    Raises:
        UnauthorizedError: If the token is missing, invalid, or the account is gone
    """
    token = extract_access_token(request, credentials)
    if not token:
        logger.debug(
            f"Access token not found. Available cookies: {list(request.cookies.keys())}"
        )
        raise UnauthorizedError("Unauthorized request")

    claims = service.tokens.decode_access_token(token)

    account = await service.get_account_by_id(claims["_id"])
    if not account:
        raise UnauthorizedError("Invalid access token")

    logger.debug(f"Account {account.id} accessed {request.method} {request.url.path}")
    return AuthenticatedAccount.from_account(account)
