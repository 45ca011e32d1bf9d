"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Response bodies use camelCase keys.
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel

from adminvault.domain.ports import PublicAccount, Role


def _check_role(value: object) -> object:
    if not isinstance(value, str):
        return value
    try:
        return Role(value.strip().upper())
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValueError(f"role must be one of: {allowed}") from None


RoleInput = Annotated[Role | None, BeforeValidator(_check_role)]

# Stripped before the length check, so "   " is rejected
UsernameInput = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdminCreateRequest(_RequestModel):
    """Request model for creating an administrative account."""

    username: UsernameInput = Field(..., description="Username (case-insensitive)")
    password: str = Field(..., min_length=1, description="Plaintext password")
    role: RoleInput = Field(default=None, description="ADMIN or USER (default USER)")


class AdminUpdateRequest(_RequestModel):
    """Request model for updating an account; every field is optional."""

    username: UsernameInput | None = None
    password: str | None = Field(default=None, min_length=1)
    role: RoleInput = None


class LoginRequest(_RequestModel):
    """Request model for credential verification."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(_RequestModel):
    """Request model for self-registration keyed by email."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    role: RoleInput = None


class AccountResponse(_ResponseModel):
    """Public projection of an account. Never carries the password hash."""

    id: int
    username: str
    role: Role
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: PublicAccount) -> "AccountResponse":
        return cls(
            id=account.id,
            username=account.username,
            role=account.role,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class AuthUser(_ResponseModel):
    """Account as presented by the auth endpoints (username shown as email)."""

    id: int
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: PublicAccount) -> "AuthUser":
        return cls(
            id=account.id,
            email=account.username,
            role=account.role,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class AuthResponse(BaseModel):
    """Response model for login and register."""

    message: str
    user: AuthUser


class ErrorResponse(BaseModel):
    """Canonical error response body."""

    statusCode: int
    error: str
    errorCode: str
    message: str
    details: Any = None
    timestamp: str
    path: str
