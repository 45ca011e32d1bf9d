"""
Admin account routes.

CRUD over administrative accounts. Password hashing and store I/O block,
so every service call runs in the threadpool.
"""

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from adminvault.api.dependencies import get_credential_service
from adminvault.api.models import (
    AccountResponse,
    AdminCreateRequest,
    AdminUpdateRequest,
    ErrorResponse,
)
from adminvault.domain.credentials import CredentialService

router = APIRouter(prefix="/admin", tags=["admin"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Account not found"}}
_VALIDATION = {400: {"model": ErrorResponse, "description": "Validation error"}}
_CONFLICT = {409: {"model": ErrorResponse, "description": "Username already in use"}}


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_VALIDATION, **_CONFLICT},
    summary="Create an administrative account",
)
async def create_account(
    request_data: AdminCreateRequest,
    service: CredentialService = Depends(get_credential_service),
) -> AccountResponse:
    """
    Create an account.

    - **username**: Unique, case-insensitive
    - **password**: Stored as a bcrypt hash, never returned
    - **role**: ADMIN or USER (optional)
    """
    account = await run_in_threadpool(
        service.create, request_data.username, request_data.password, request_data.role
    )
    return AccountResponse.from_account(account)


@router.get("", response_model=list[AccountResponse], summary="List accounts")
async def list_accounts(
    service: CredentialService = Depends(get_credential_service),
) -> list[AccountResponse]:
    """All accounts in creation order."""
    accounts = await run_in_threadpool(service.list_all)
    return [AccountResponse.from_account(account) for account in accounts]


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    responses={**_NOT_FOUND, **_VALIDATION},
    summary="Get an account",
)
async def get_account(
    account_id: int,
    service: CredentialService = Depends(get_credential_service),
) -> AccountResponse:
    account = await run_in_threadpool(service.get, account_id)
    return AccountResponse.from_account(account)


@router.put(
    "/{account_id}",
    response_model=AccountResponse,
    responses={**_NOT_FOUND, **_VALIDATION, **_CONFLICT},
    summary="Update an account",
)
@router.patch(
    "/{account_id}",
    response_model=AccountResponse,
    responses={**_NOT_FOUND, **_VALIDATION, **_CONFLICT},
    summary="Update an account",
)
async def update_account(
    account_id: int,
    request_data: AdminUpdateRequest,
    service: CredentialService = Depends(get_credential_service),
) -> AccountResponse:
    """
    Update any of username, password, role.

    Supplying none of them is rejected with a validation error.
    """
    account = await run_in_threadpool(
        service.update,
        account_id,
        username=request_data.username,
        password=request_data.password,
        role=request_data.role,
    )
    return AccountResponse.from_account(account)


@router.delete(
    "/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_NOT_FOUND, **_VALIDATION},
    summary="Delete an account",
)
async def delete_account(
    account_id: int,
    service: CredentialService = Depends(get_credential_service),
) -> None:
    await run_in_threadpool(service.remove, account_id)
