"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

import logging

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from adminvault.adapters.repository.postgres import PostgresAccountRepository
from adminvault.config.settings import Settings, get_settings
from adminvault.domain.credentials import CredentialService

_service_logger = logging.getLogger("adminvault.credentials")


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(
    request: Request, settings: Settings = Depends(get_settings)
) -> PostgresAccountRepository:
    """Create repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresAccountRepository(pool, default_role=settings.default_role)


def get_credential_service(
    repository: PostgresAccountRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> CredentialService:
    """
    Create credential service with injected dependencies.

    Wires together the repository, hashing cost, default role, and logger.
    """
    return CredentialService(
        repository=repository,
        bcrypt_cost=settings.bcrypt_cost,
        default_role=settings.default_role,
        logger=_service_logger,
    )
