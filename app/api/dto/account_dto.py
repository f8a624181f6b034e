"""
DTOs (Data Transfer Objects) for account endpoints.
Contains request and response models for API communication.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.domain.models.account import AccountModel


# Request DTOs
class LoginRequestDTO(BaseModel):
    """Request DTO for credential login. One of username or email is required."""

    username: Optional[str] = Field(None, description="Username")
    email: Optional[str] = Field(None, description="Email address")
    password: Optional[str] = Field(None, description="Plaintext password")


class RefreshTokenRequestDTO(BaseModel):
    """Request DTO for refreshing the token pair when no cookie is sent."""

    refresh_token: Optional[str] = Field(
        None, alias="refreshToken", description="Refresh token"
    )

    class Config:
        populate_by_name = True


class ChangePasswordRequestDTO(BaseModel):
    """Request DTO for changing the current password."""

    old_password: Optional[str] = Field(
        None, alias="oldPassword", description="Current password"
    )
    new_password: Optional[str] = Field(
        None, alias="newPassword", description="New password"
    )

    class Config:
        populate_by_name = True


class UpdateAccountDetailsRequestDTO(BaseModel):
    """Request DTO for updating profile details."""

    full_name: Optional[str] = Field(None, alias="fullName", description="Full name")
    email: Optional[str] = Field(None, description="Email address")

    class Config:
        populate_by_name = True


# Response DTOs
class AccountResponseDTO(BaseModel):
    """Sanitized account: never carries the password or refresh token."""

    id: str = Field(..., alias="_id", description="Account ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    full_name: str = Field(..., alias="fullName", description="Full name")
    avatar: str = Field(..., description="Avatar URL")
    cover_image: str = Field("", alias="coverImage", description="Cover image URL")
    created_at: Optional[datetime] = Field(
        None, alias="createdAt", description="Creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        None, alias="updatedAt", description="Last update timestamp"
    )

    class Config:
        populate_by_name = True

    @classmethod
    def from_account(cls, account: AccountModel) -> "AccountResponseDTO":
        """Build the public representation of an account."""
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            full_name=account.full_name,
            avatar=account.avatar,
            cover_image=account.cover_image or "",
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class TokenPairDTO(BaseModel):
    """Access/refresh token pair."""

    access_token: str = Field(..., alias="accessToken", description="Access token (JWT)")
    refresh_token: str = Field(
        ..., alias="refreshToken", description="Refresh token (JWT)"
    )

    class Config:
        populate_by_name = True


class LoginResponseDataDTO(TokenPairDTO):
    """DTO for the 'data' field in the login response."""

    user: AccountResponseDTO = Field(..., description="Logged-in account")


class ApiResponseDTO(BaseModel):
    """Uniform success envelope."""

    status_code: int = Field(..., alias="statusCode", description="HTTP status code")
    data: Any = Field(None, description="Response payload")
    message: str = Field("Success", description="Response message")
    success: bool = Field(..., description="Operation success status")

    class Config:
        populate_by_name = True


class ApiErrorResponseDTO(BaseModel):
    """Uniform error envelope."""

    status_code: int = Field(..., alias="statusCode", description="HTTP status code")
    message: str = Field(..., description="Error message")
    success: bool = Field(False, description="Always false")
    errors: list = Field(default_factory=list, description="Error details")

    class Config:
        populate_by_name = True


def build_api_response(
    status_code: int, data: Any = None, message: str = "Success"
) -> Dict[str, Any]:
    """
    Build the success envelope as a JSON-ready dict.

    Pydantic payloads are dumped by alias so clients see camelCase fields.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    envelope = ApiResponseDTO(
        status_code=status_code,
        data=data,
        message=message,
        success=status_code < 400,
    )
    return envelope.model_dump(by_alias=True, mode="json")
