"""
Credential domain service - Administrative account management.

This module owns the business rules for administrative credentials:
username normalization, password hashing, uniqueness, verification,
update, and removal.

Uniqueness
==========

Usernames are case-folded (strip + lowercase) before any comparison or
storage, so "Alice" and "alice" collide. ``create`` and ``update`` look
the username up first to fail fast with a friendly CONFLICT, but two
concurrent calls can both pass that check. The store's unique index on
the case-folded username is the real guarantee: a DuplicateUsername
raised at write time is mapped to the same CONFLICT error.

Verification
============

``verify`` never raises for an unknown username or a wrong password.
Both return None, and both run exactly one bcrypt comparison (against a
dummy hash when the account does not exist) so callers cannot tell them
apart by result or by timing.
"""

import logging
import re
from dataclasses import dataclass, field

import bcrypt

from .errors import DomainError
from .ports import AccountRepository, DuplicateUsername, PublicAccount, Role

_module_logger = logging.getLogger(__name__)

# bcrypt ignores everything past 72 bytes; newer releases reject it outright.
MAX_PASSWORD_BYTES = 72

_BCRYPT_HASH_RE = re.compile(r"^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$")

# Compared against when the account does not exist, so bcrypt always runs.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))

USERNAME_TAKEN = "Username already in use"


def normalize_username(username: str) -> str:
    """Case-fold a username: strip whitespace + lowercase."""
    return username.strip().lower()


def is_bcrypt_hash(value: str) -> bool:
    """Return True if ``value`` is a well-formed bcrypt hash string."""
    return bool(_BCRYPT_HASH_RE.match(value))


def parse_role(role: str | Role | None, default: Role) -> Role:
    """
    Resolve a role input against the closed role set.

    None falls back to ``default``. Strings are matched case-insensitively.

    Raises:
        DomainError: VALIDATION if the role is not in the closed set
    """
    if role is None:
        return default
    if isinstance(role, Role):
        return role
    try:
        return Role(role.strip().upper())
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise DomainError.validation(
            f"Invalid role. Must be one of: {allowed}",
            details=[{"field": "role", "errors": [f"role must be one of: {allowed}"]}],
        ) from None


@dataclass
class CredentialService:
    """
    Domain service for administrative accounts.

    Methods are synchronous: bcrypt is CPU-bound and the store adapter is
    blocking, so callers on an event loop run these methods in a worker
    thread.
    """

    repository: AccountRepository
    bcrypt_cost: int = 10
    default_role: Role = Role.USER
    logger: logging.Logger = field(default=_module_logger, repr=False)

    def create(
        self,
        username: str,
        password: str,
        role: str | Role | None = None,
        *,
        password_is_hashed: bool = False,
    ) -> PublicAccount:
        """
        Create an account.

        Args:
            username: Username (will be normalized)
            password: Plaintext password, or a bcrypt hash when
                ``password_is_hashed`` is set (data-migration path)
            role: Optional role; defaults to ``default_role``
            password_is_hashed: Store ``password`` verbatim after checking
                it is a bcrypt hash

        Returns:
            Public projection of the created account

        Raises:
            DomainError: VALIDATION for empty/invalid input,
                CONFLICT if the username is already in use
        """
        normalized = self._require_username(username)
        self._require_password(password)
        resolved_role = parse_role(role, self.default_role)

        if self.repository.find_by_username(normalized) is not None:
            self.logger.info("Create rejected, username taken: %s", normalized)
            raise DomainError.conflict(USERNAME_TAKEN)

        if password_is_hashed:
            if not is_bcrypt_hash(password):
                raise DomainError.validation(
                    "Password is flagged as pre-hashed but is not a bcrypt hash",
                    details=[{"field": "password", "errors": ["expected a bcrypt hash"]}],
                )
            password_hash = password
        else:
            password_hash = self._hash_password(password)

        try:
            account = self.repository.create(normalized, password_hash, resolved_role)
        except DuplicateUsername as e:
            # Lost the race against a concurrent create
            self.logger.info("Create rejected by unique constraint: %s", normalized)
            raise DomainError.conflict(USERNAME_TAKEN, cause=e) from e

        self.logger.info("Created account %s (%s)", account.id, normalized)
        return account.public()

    def verify(self, identifier: str, password: str) -> PublicAccount | None:
        """
        Check a username/password pair.

        Args:
            identifier: Username or email (matched case-insensitively)
            password: Plaintext password

        Returns:
            Public projection on match, None for unknown user or wrong
            password (the two cases are indistinguishable)

        Raises:
            DomainError: UNAUTHORIZED if the store fails or the stored hash
                cannot be read
        """
        normalized = normalize_username(identifier or "")
        try:
            account = self.repository.find_by_username(normalized) if normalized else None
        except Exception as e:
            self.logger.error("Error validating user %s", normalized, exc_info=True)
            raise DomainError.unauthorized("Authentication failed", cause=e) from e

        stored_hash = account.password_hash.encode() if account is not None else _DUMMY_BCRYPT_HASH
        try:
            password_valid = self._check_password(password or "", stored_hash)
        except ValueError as e:
            # Stored hash is not a bcrypt hash (legacy or corrupt row)
            self.logger.error("Unreadable password hash for user %s", normalized, exc_info=True)
            raise DomainError.unauthorized("Authentication failed", cause=e) from e

        if account is None:
            self.logger.warning("Login failed, unknown user: %s", normalized)
            return None
        if not password_valid:
            self.logger.warning("Login failed, invalid password for user: %s", normalized)
            return None
        return account.public()

    def get(self, account_id: int) -> PublicAccount:
        """
        Raises:
            DomainError: NOT_FOUND if no account has ``account_id``
        """
        account = self.repository.find_by_id(account_id)
        if account is None:
            raise self._not_found(account_id)
        return account.public()

    def list_all(self) -> list[PublicAccount]:
        """All accounts in creation order."""
        return [account.public() for account in self.repository.list_all()]

    def update(
        self,
        account_id: int,
        username: str | None = None,
        password: str | None = None,
        role: str | Role | None = None,
    ) -> PublicAccount:
        """
        Update any of username, password, role.

        Raises:
            DomainError: NOT_FOUND if the account does not exist,
                VALIDATION if no field is supplied or a field is invalid,
                CONFLICT if the new username is already in use
        """
        current = self.repository.find_by_id(account_id)
        if current is None:
            raise self._not_found(account_id)

        if username is None and password is None and role is None:
            raise DomainError.validation("No valid fields provided")

        new_username = None
        if username is not None:
            normalized = self._require_username(username)
            if normalized != current.username:
                existing = self.repository.find_by_username(normalized)
                if existing is not None and existing.id != account_id:
                    raise DomainError.conflict(USERNAME_TAKEN)
                new_username = normalized

        new_hash = None
        if password is not None:
            self._require_password(password)
            new_hash = self._hash_password(password)

        new_role = parse_role(role, self.default_role) if role is not None else None

        try:
            account = self.repository.update(
                account_id,
                username=new_username,
                password_hash=new_hash,
                role=new_role,
            )
        except DuplicateUsername as e:
            raise DomainError.conflict(USERNAME_TAKEN, cause=e) from e

        if account is None:
            # Deleted between the lookup and the write
            raise self._not_found(account_id)

        self.logger.info("Updated account %s", account_id)
        return account.public()

    def remove(self, account_id: int) -> None:
        """
        Hard-delete an account.

        Raises:
            DomainError: NOT_FOUND if the account does not exist
        """
        if self.repository.find_by_id(account_id) is None:
            raise self._not_found(account_id)
        if not self.repository.delete(account_id):
            raise self._not_found(account_id)
        self.logger.info("Removed account %s", account_id)

    def _require_username(self, username: str) -> str:
        normalized = normalize_username(username or "")
        if not normalized:
            raise DomainError.validation(
                "Username is required",
                details=[{"field": "username", "errors": ["username should not be empty"]}],
            )
        return normalized

    def _require_password(self, password: str) -> None:
        errors = []
        if not password:
            errors.append("password should not be empty")
        elif len(password.encode()) > MAX_PASSWORD_BYTES:
            errors.append(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        if errors:
            raise DomainError.validation(
                "Invalid password", details=[{"field": "password", "errors": errors}]
            )

    def _hash_password(self, password: str) -> str:
        """Hash with bcrypt; the per-call salt is embedded in the result."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()

    def _check_password(self, password: str, stored_hash: bytes) -> bool:
        encoded = password.encode()
        if len(encoded) > MAX_PASSWORD_BYTES:
            # One bcrypt comparison per call, whatever the input
            bcrypt.checkpw(b"", _DUMMY_BCRYPT_HASH)
            return False
        return bcrypt.checkpw(encoded, stored_hash)

    @staticmethod
    def _not_found(account_id: int) -> DomainError:
        return DomainError.not_found(f"Account {account_id} not found", details={"id": account_id})
