"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the account record, its public projection, and the
store interface (port) the credential service requires. Adapters
implement these protocols.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """Closed set of account roles."""

    ADMIN = "ADMIN"
    USER = "USER"


@dataclass(frozen=True)
class PublicAccount:
    """Account fields safe to return to a caller (no password hash)."""

    id: int
    username: str
    role: Role
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Account:
    """
    Stored administrative credential record.

    ``username`` is stored case-folded. ``password_hash`` is a bcrypt hash
    and is excluded from repr so it never lands in logs.
    """

    id: int
    username: str
    password_hash: str = field(repr=False)
    role: Role
    created_at: datetime
    updated_at: datetime

    def public(self) -> PublicAccount:
        """Project the record onto its caller-safe fields."""
        return PublicAccount(
            id=self.id,
            username=self.username,
            role=self.role,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class DuplicateUsername(Exception):
    """
    Raised by a store when a write violates the unique username constraint.

    This is the store-level conflict signal; the credential service turns
    it into a CONFLICT domain error.
    """

    def __init__(self, username: str) -> None:
        super().__init__(username)
        self.username = username


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def create(self, username: str, password_hash: str, role: Role) -> Account:
        """
        Insert a new account in a single atomic write.

        Args:
            username: Case-folded username
            password_hash: bcrypt hash of the password
            role: Resolved role

        Returns:
            The stored account with id and timestamps assigned by the store

        Raises:
            DuplicateUsername: If the case-folded username is already taken
        """
        ...

    def find_by_id(self, account_id: int) -> Account | None:
        """Return the account with ``account_id`` or None."""
        ...

    def find_by_username(self, username: str) -> Account | None:
        """Return the account whose username matches case-insensitively, or None."""
        ...

    def list_all(self) -> list[Account]:
        """Return every account ordered by creation (ascending id)."""
        ...

    def update(
        self,
        account_id: int,
        *,
        username: str | None = None,
        password_hash: str | None = None,
        role: Role | None = None,
    ) -> Account | None:
        """
        Update the supplied fields and bump ``updated_at`` atomically.

        Returns:
            The updated account, or None if no account has ``account_id``

        Raises:
            DuplicateUsername: If the new username is already taken
        """
        ...

    def delete(self, account_id: int) -> bool:
        """
        Hard-delete an account.

        Returns:
            True if a row was deleted, False if none matched
        """
        ...
