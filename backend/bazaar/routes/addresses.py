"""
Bazaar Backend — User Address Routes
=====================================

What:  The authenticated caller's address book under /api/addresses.
How:   Every route depends on authenticate_user and passes the caller's id to
       AddressService; responses use the {success, message, data} envelope.

Route order matters: /addresses/default and /addresses/count are declared
before /addresses/{address_id} so they are not read as ids.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.database import get_db_session
from bazaar.middleware.auth import AuthenticatedUser, authenticate_user
from bazaar.schemas.address import AddressCreate, AddressOut, AddressUpdate, AddressUpsert
from bazaar.schemas.common import ApiResponse, CountOut, ErrorEnvelope
from bazaar.services.address_service import address_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(
    prefix="/api",
    tags=["Addresses"],
    responses={
        400: {"description": "Validation error", "model": ErrorEnvelope},
        401: {"description": "Unauthorized", "model": ErrorEnvelope},
        404: {"description": "Not found", "model": ErrorEnvelope},
    },
)


@router.post(
    "/addresses",
    response_model=ApiResponse[AddressOut],
    status_code=201,
    summary="Create an address",
)
async def create_address(
    payload: AddressCreate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.create_address(db, user.id, payload)
    return ApiResponse(
        message="Address created successfully",
        data=AddressOut.model_validate(address),
    )


@router.post(
    "/addresses/upsert",
    response_model=ApiResponse[AddressOut],
    summary="Create an address, or update it when `id` is given",
)
async def upsert_address(
    payload: AddressUpsert,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.upsert_address(db, user.id, payload)
    return ApiResponse(
        message="Address updated successfully" if payload.id else "Address created successfully",
        data=AddressOut.model_validate(address),
    )


@router.get(
    "/addresses",
    response_model=ApiResponse[List[AddressOut]],
    summary="List the caller's addresses (default first, then newest)",
)
async def list_addresses(
    is_default: Optional[bool] = Query(default=None, alias="isDefault"),
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[AddressOut]]:
    addresses = await address_service.list_addresses(db, user.id, is_default=is_default)
    return ApiResponse(
        message="Addresses retrieved successfully",
        data=[AddressOut.model_validate(a) for a in addresses],
    )


@router.get(
    "/addresses/default",
    response_model=ApiResponse[AddressOut],
    summary="Get the caller's default address",
)
async def get_default_address(
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.get_default_address(db, user.id)
    return ApiResponse(
        message="Default address retrieved successfully",
        data=AddressOut.model_validate(address),
    )


@router.get(
    "/addresses/count",
    response_model=ApiResponse[CountOut],
    summary="Count the caller's addresses",
)
async def count_addresses(
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CountOut]:
    count = await address_service.count_addresses(db, user.id)
    return ApiResponse(message="Address count retrieved successfully", data=CountOut(count=count))


@router.get(
    "/addresses/{address_id}",
    response_model=ApiResponse[AddressOut],
    summary="Get one of the caller's addresses",
)
async def get_address(
    address_id: str,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.get_address(db, address_id, user.id)
    return ApiResponse(
        message="Address retrieved successfully",
        data=AddressOut.model_validate(address),
    )


@router.patch(
    "/addresses/{address_id}",
    response_model=ApiResponse[AddressOut],
    summary="Update fields of an address",
)
async def update_address(
    address_id: str,
    payload: AddressUpdate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.update_address(db, address_id, user.id, payload)
    return ApiResponse(
        message="Address updated successfully",
        data=AddressOut.model_validate(address),
    )


@router.patch(
    "/addresses/{address_id}/set-default",
    response_model=ApiResponse[AddressOut],
    summary="Make an address the default",
)
async def set_default_address(
    address_id: str,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.set_default_address(db, address_id, user.id)
    return ApiResponse(
        message="Default address updated successfully",
        data=AddressOut.model_validate(address),
    )


@router.patch(
    "/addresses/{address_id}/toggle-default",
    response_model=ApiResponse[AddressOut],
    summary="Make a non-default address the default",
)
async def toggle_default_address(
    address_id: str,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AddressOut]:
    address = await address_service.toggle_default_address(db, address_id, user.id)
    return ApiResponse(
        message="Default address updated successfully",
        data=AddressOut.model_validate(address),
    )


@router.delete(
    "/addresses/{address_id}",
    response_model=ApiResponse[None],
    summary="Delete an address",
)
async def delete_address(
    address_id: str,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await address_service.delete_address(db, address_id, user.id)
    return ApiResponse(message="Address deleted successfully")
