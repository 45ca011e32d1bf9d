"""
Domain layer - Pure business logic with zero framework imports.

This package contains the credential management rules and the error
taxonomy every request path funnels through. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .credentials import CredentialService, normalize_username
from .errors import DomainError, ErrorKind
from .ports import Account, AccountRepository, DuplicateUsername, PublicAccount, Role

__all__ = [
    "Account",
    "AccountRepository",
    "CredentialService",
    "DomainError",
    "DuplicateUsername",
    "ErrorKind",
    "PublicAccount",
    "Role",
    "normalize_username",
]
