"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory AccountRepository with an atomic case-insensitive
  unique constraint (stands in for PostgreSQL in unit tests)
- A CredentialService wired to it with a low bcrypt cost
- A FastAPI app with the error boundary and the service override
"""

import itertools
import threading
from collections.abc import Generator
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from adminvault.api.dependencies import get_credential_service
from adminvault.api.errors import ErrorBoundary
from adminvault.api.routes import admin_router, auth_router
from adminvault.domain.credentials import CredentialService
from adminvault.domain.ports import Account, DuplicateUsername, Role

# bcrypt's minimum work factor keeps the suite fast
TEST_BCRYPT_COST = 4


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol with a dict and a lock.

    Writes check the case-folded username under the lock, mirroring the
    unique index on LOWER(username) in PostgreSQL.
    """

    def __init__(self) -> None:
        self._rows: dict[int, Account] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _taken(self, username: str, exclude_id: int | None = None) -> bool:
        return any(
            row.username.lower() == username.lower() and row.id != exclude_id
            for row in self._rows.values()
        )

    def create(self, username: str, password_hash: str, role: Role) -> Account:
        with self._lock:
            if self._taken(username):
                raise DuplicateUsername(username)
            now = self._tick()
            account = Account(
                id=next(self._ids),
                username=username,
                password_hash=password_hash,
                role=role,
                created_at=now,
                updated_at=now,
            )
            self._rows[account.id] = account
            return account

    def find_by_id(self, account_id: int) -> Account | None:
        return self._rows.get(account_id)

    def find_by_username(self, username: str) -> Account | None:
        for row in list(self._rows.values()):
            if row.username.lower() == username.lower():
                return row
        return None

    def list_all(self) -> list[Account]:
        return [self._rows[key] for key in sorted(self._rows)]

    def update(
        self,
        account_id: int,
        *,
        username: str | None = None,
        password_hash: str | None = None,
        role: Role | None = None,
    ) -> Account | None:
        with self._lock:
            current = self._rows.get(account_id)
            if current is None:
                return None
            if username is not None and self._taken(username, exclude_id=account_id):
                raise DuplicateUsername(username)
            changes: dict[str, object] = {"updated_at": self._tick()}
            if username is not None:
                changes["username"] = username
            if password_hash is not None:
                changes["password_hash"] = password_hash
            if role is not None:
                changes["role"] = role
            updated = replace(current, **changes)
            self._rows[account_id] = updated
            return updated

    def delete(self, account_id: int) -> bool:
        with self._lock:
            return self._rows.pop(account_id, None) is not None

    def insert_raw(self, account: Account) -> None:
        """Seed a row directly, bypassing service rules."""
        self._rows[account.id] = account


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def service(repository: InMemoryAccountRepository) -> CredentialService:
    return CredentialService(repository=repository, bcrypt_cost=TEST_BCRYPT_COST)


def build_app(production: bool = False) -> FastAPI:
    """Create a test FastAPI application with routers and error boundary."""
    test_app = FastAPI()
    ErrorBoundary(production=production).install(test_app)
    test_app.include_router(admin_router)
    test_app.include_router(auth_router)

    # Mock the app.state.pool for dependency injection
    test_app.state.pool = MagicMock()
    return test_app


@pytest.fixture
def app(service: CredentialService) -> Generator[FastAPI, None, None]:
    """Test app whose routes use the in-memory credential service."""
    test_app = build_app()
    test_app.dependency_overrides[get_credential_service] = lambda: service
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_app():
    """Factory for apps with a chosen error-detail mode."""
    return build_app
