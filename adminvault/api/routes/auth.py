"""
Authentication routes.

Credential verification and self-registration keyed by email. No tokens
or sessions are issued; login only reports whether the credentials match.
"""

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from adminvault.api.dependencies import get_credential_service
from adminvault.api.models import (
    AuthResponse,
    AuthUser,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
)
from adminvault.domain.credentials import CredentialService
from adminvault.domain.errors import DomainError

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
    },
    summary="Verify credentials",
)
async def login(
    request_data: LoginRequest,
    service: CredentialService = Depends(get_credential_service),
) -> AuthResponse:
    """
    Verify an email/password pair.

    Unknown email and wrong password produce the same 401 response.
    """
    account = await run_in_threadpool(service.verify, request_data.email, request_data.password)
    if account is None:
        raise DomainError.unauthorized(INVALID_CREDENTIALS)
    return AuthResponse(message="Login successful", user=AuthUser.from_account(account))


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        409: {"model": ErrorResponse, "description": "Email already in use"},
    },
    summary="Register an account keyed by email",
)
async def register(
    request_data: RegisterRequest,
    service: CredentialService = Depends(get_credential_service),
) -> AuthResponse:
    account = await run_in_threadpool(
        service.create, request_data.email, request_data.password, request_data.role
    )
    return AuthResponse(message="User created successfully", user=AuthUser.from_account(account))
