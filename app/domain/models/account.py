"""
MongoDB models for user accounts.
"""

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, Field, field_validator

# Fields that never leave the repository unless explicitly requested
PRIVATE_FIELDS = ("password", "refresh_token")


class AccountModel(BaseModel):
    """MongoDB model for an account document."""

    # Primary fields
    username: str = Field(..., description="Unique, lowercase username")
    email: str = Field(..., description="Unique email address")
    full_name: str = Field(..., description="Full name")
    avatar: str = Field(..., description="Avatar URL")
    cover_image: str = Field(default="", description="Cover image URL")

    # Credentials
    password: Optional[str] = Field(None, description="bcrypt password hash")
    refresh_token: Optional[str] = Field(
        None, description="Currently active refresh token"
    )

    # Metadata
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp",
    )

    # MongoDB specific fields
    id: Optional[str] = Field(None, alias="_id", description="MongoDB document ID")

    @field_validator("id", mode="before")
    @classmethod
    def convert_objectid_to_str(cls, v):
        """Convert MongoDB ObjectId to string."""
        if isinstance(v, ObjectId):
            return str(v)
        return v

    class Config:
        populate_by_name = True


class AccountCreateModel(BaseModel):
    """Model for creating a new account."""

    username: str = Field(..., description="Username (normalized to lowercase)")
    email: str = Field(..., description="Email address")
    full_name: str = Field(..., description="Full name")
    password: str = Field(..., description="bcrypt password hash")
    avatar: str = Field(..., description="Avatar URL")
    cover_image: str = Field(default="", description="Cover image URL")

    @field_validator("username", "email", mode="before")
    @classmethod
    def normalize_identifier(cls, v):
        """Usernames and emails are stored trimmed and lowercase."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_full_name(cls, v):
        """Strip surrounding whitespace from the full name."""
        if isinstance(v, str):
            return v.strip()
        return v


class AccountUpdateModel(BaseModel):
    """Model for updating an account's profile fields."""

    full_name: Optional[str] = Field(None, description="Full name")
    email: Optional[str] = Field(None, description="Email address")
    avatar: Optional[str] = Field(None, description="Avatar URL")
    cover_image: Optional[str] = Field(None, description="Cover image URL")
    password: Optional[str] = Field(None, description="bcrypt password hash")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        """Emails are stored trimmed and lowercase."""
        if isinstance(v, str):
            return v.strip().lower()
        return v
