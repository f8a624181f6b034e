"""
Security utilities for the Account Service application.
Handles password hashing and JWT access/refresh token issuance.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import UnauthorizedError
from app.core.logging import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class PasswordHasher:
    """Hashes and verifies account passwords with bcrypt."""

    def __init__(self, rounds: Optional[int] = None):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds or settings.BCRYPT_ROUNDS,
        )

    def hash(self, password: str) -> str:
        """Hash a plaintext password."""
        return self.pwd_context.hash(password)

    def verify(self, password: str, hashed_password: Optional[str]) -> bool:
        """
        Check a plaintext password against a stored hash.

        Returns False for a missing or unrecognised hash instead of raising.
        """
        if not password or not hashed_password:
            return False
        try:
            return self.pwd_context.verify(password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning("Password hash could not be verified", error=str(e))
            return False


class TokenIssuer:
    """Signs and verifies the access/refresh JWT pair."""

    def __init__(
        self,
        access_secret: Optional[str] = None,
        refresh_secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_ttl: Optional[timedelta] = None,
        refresh_ttl: Optional[timedelta] = None,
    ):
        self.access_secret = access_secret or settings.ACCESS_TOKEN_SECRET
        self.refresh_secret = refresh_secret or settings.REFRESH_TOKEN_SECRET
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.access_ttl = access_ttl or timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        self.refresh_ttl = refresh_ttl or timedelta(
            days=settings.REFRESH_TOKEN_EXPIRE_DAYS
        )

    def sign(self, payload: Dict[str, Any], secret: str, ttl: timedelta) -> str:
        """
        Sign a payload with the given secret and lifetime.

        Args:
            payload: Claims to encode
            secret: Signing secret
            ttl: Token lifetime

        Returns:
            str: Encoded JWT
        """
        now = datetime.now(timezone.utc)
        claims = dict(payload)
        claims["iat"] = int(now.timestamp())
        claims["exp"] = int((now + ttl).timestamp())
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> Dict[str, Any]:
        """
        Verify a token's signature and expiry.

        Args:
            token: Encoded JWT
            secret: Signing secret

        Returns:
            Dict[str, Any]: Decoded claims

        Raises:
            ExpiredSignatureError: If the token has expired
            JWTError: If the token is malformed or the signature is invalid
        """
        return jwt.decode(token, secret, algorithms=[self.algorithm])

    def create_access_token(self, account: Dict[str, Any]) -> str:
        """Create a short-lived access token for an account document."""
        payload = {
            "_id": str(account["_id"]),
            "email": account.get("email"),
            "username": account.get("username"),
            "fullName": account.get("full_name"),
            "type": ACCESS_TOKEN_TYPE,
        }
        return self.sign(payload, self.access_secret, self.access_ttl)

    def create_refresh_token(self, account_id: str) -> str:
        """Create a long-lived refresh token for an account."""
        payload = {
            "_id": str(account_id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": secrets.token_hex(16),
        }
        return self.sign(payload, self.refresh_secret, self.refresh_ttl)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """
        Decode an access token.

        Raises:
            UnauthorizedError: If the token is invalid, expired or not an access token
        """
        try:
            claims = self.verify(token, self.access_secret)
        except JWTError:
            raise UnauthorizedError("Invalid access token")

        if claims.get("type") != ACCESS_TOKEN_TYPE or not claims.get("_id"):
            raise UnauthorizedError("Invalid access token")
        return claims

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        """
        Decode a refresh token.

        Raises:
            UnauthorizedError: If the token is expired, invalid or not a refresh token
        """
        try:
            claims = self.verify(token, self.refresh_secret)
        except ExpiredSignatureError:
            raise UnauthorizedError("Refresh token is expired")
        except JWTError:
            raise UnauthorizedError("Invalid refresh token")

        if claims.get("type") != REFRESH_TOKEN_TYPE or not claims.get("_id"):
            raise UnauthorizedError("Invalid refresh token")
        return claims


# Global instances
password_hasher = PasswordHasher()
token_issuer = TokenIssuer()
