"""
Bazaar Backend — User Address Service
======================================

What:  CRUD for a user's saved delivery addresses, including the single
       default address per user.
How:   Stateless; every method receives the request's AsyncSession and the
       authenticated user's id. The surrounding session scope commits.

Rules:
    - At most MAX_ADDRESSES addresses per user.
    - The first address a user creates becomes the default.
    - Making an address default clears the flag on the user's others.
    - Deleting the default promotes the newest remaining address.
    - The default cannot be toggled off; another address must be made default.
    - Touching another user's address raises UnauthorizedError.

Errors:
    NotFoundError      user / location / address missing (404)
    ValidationError    address limit, toggling the default off (400)
    UnauthorizedError  foreign address (401)
    PersistenceError   store failure
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.database import translate_db_errors
from bazaar.exceptions import NotFoundError, UnauthorizedError, ValidationError
from bazaar.models.address import Location, UserAddress
from bazaar.models.customer import User
from bazaar.schemas.address import AddressCreate, AddressUpdate, AddressUpsert

logger = logging.getLogger(__name__)


class AddressService:
    MAX_ADDRESSES = 5

    # ── Lookups ───────────────────────────────────────────────────────────

    async def _require_location(self, db: AsyncSession, location_id: str) -> None:
        location = await db.get(Location, location_id)
        if location is None:
            raise NotFoundError(resource="Location", resource_id=location_id)

    async def _owned_address(self, db: AsyncSession, address_id: str, user_id: str) -> UserAddress:
        address = await db.get(UserAddress, address_id)
        if address is None:
            raise NotFoundError(resource="Address", resource_id=address_id)
        if address.user_id != user_id:
            raise UnauthorizedError("Unauthorized access to this address")
        return address

    async def _clear_default(
        self, db: AsyncSession, user_id: str, keep_id: Optional[str] = None
    ) -> None:
        stmt = (
            update(UserAddress)
            .where(UserAddress.user_id == user_id, UserAddress.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        if keep_id is not None:
            stmt = stmt.where(UserAddress.id != keep_id)
        await db.execute(stmt)

    async def _refresh(self, db: AsyncSession, address: UserAddress) -> UserAddress:
        await db.flush()
        await db.refresh(address, attribute_names=["location", "updated_at"])
        return address

    # ── Operations ────────────────────────────────────────────────────────

    async def count_addresses(self, db: AsyncSession, user_id: str) -> int:
        async with translate_db_errors():
            result = await db.execute(
                select(func.count()).select_from(UserAddress).where(UserAddress.user_id == user_id)
            )
            return int(result.scalar() or 0)

    async def create_address(
        self, db: AsyncSession, user_id: str, data: AddressCreate
    ) -> UserAddress:
        async with translate_db_errors():
            if await db.get(User, user_id) is None:
                raise NotFoundError(resource="User", resource_id=user_id)
            await self._require_location(db, data.location_id)

            count = await self.count_addresses(db, user_id)
            if count >= self.MAX_ADDRESSES:
                raise ValidationError(
                    message=f"Maximum {self.MAX_ADDRESSES} addresses allowed per user"
                )

            should_be_default = count == 0 or data.is_default is True
            if should_be_default:
                await self._clear_default(db, user_id)

            address = UserAddress(
                user_id=user_id,
                location_id=data.location_id,
                full_name=data.full_name,
                phone=data.phone,
                address_line1=data.address_line1,
                address_line2=data.address_line2,
                landmark=data.landmark,
                is_default=should_be_default,
                address_type=data.address_type,
            )
            db.add(address)
            await self._refresh(db, address)

        logger.info("Created address %s for user %s (default=%s)", address.id, user_id, should_be_default)
        return address

    async def list_addresses(
        self, db: AsyncSession, user_id: str, is_default: Optional[bool] = None
    ) -> List[UserAddress]:
        stmt = select(UserAddress).where(UserAddress.user_id == user_id)
        if is_default is not None:
            stmt = stmt.where(UserAddress.is_default.is_(is_default))
        stmt = stmt.order_by(UserAddress.is_default.desc(), UserAddress.created_at.desc())
        async with translate_db_errors():
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def get_address(self, db: AsyncSession, address_id: str, user_id: str) -> UserAddress:
        async with translate_db_errors():
            return await self._owned_address(db, address_id, user_id)

    async def update_address(
        self, db: AsyncSession, address_id: str, user_id: str, data: AddressUpdate
    ) -> UserAddress:
        changes = data.model_dump(exclude_unset=True)
        async with translate_db_errors():
            address = await self._owned_address(db, address_id, user_id)
            if "location_id" in changes:
                await self._require_location(db, changes["location_id"])

            if changes.get("is_default") is True:
                await self._clear_default(db, user_id, keep_id=address_id)
            elif changes.get("is_default") is False and address.is_default:
                # The default can only move, never disappear
                changes.pop("is_default")
            elif changes.get("is_default") is None:
                changes.pop("is_default", None)

            for field, value in changes.items():
                setattr(address, field, value)
            return await self._refresh(db, address)

    async def upsert_address(
        self, db: AsyncSession, user_id: str, data: AddressUpsert
    ) -> UserAddress:
        if data.id:
            update_data = AddressUpdate(**data.model_dump(exclude={"id"}, exclude_unset=True))
            return await self.update_address(db, data.id, user_id, update_data)
        return await self.create_address(db, user_id, AddressCreate(**data.model_dump(exclude={"id"})))

    async def delete_address(self, db: AsyncSession, address_id: str, user_id: str) -> None:
        async with translate_db_errors():
            address = await self._owned_address(db, address_id, user_id)
            was_default = address.is_default
            await db.delete(address)
            await db.flush()

            if was_default:
                result = await db.execute(
                    select(UserAddress)
                    .where(UserAddress.user_id == user_id)
                    .order_by(UserAddress.created_at.desc())
                    .limit(1)
                )
                successor = result.scalars().first()
                if successor is not None:
                    successor.is_default = True
                    await db.flush()
                    logger.info("Promoted address %s to default for user %s", successor.id, user_id)

    async def set_default_address(
        self, db: AsyncSession, address_id: str, user_id: str
    ) -> UserAddress:
        async with translate_db_errors():
            address = await self._owned_address(db, address_id, user_id)
            await self._clear_default(db, user_id, keep_id=address_id)
            address.is_default = True
            return await self._refresh(db, address)

    async def toggle_default_address(
        self, db: AsyncSession, address_id: str, user_id: str
    ) -> UserAddress:
        async with translate_db_errors():
            address = await self._owned_address(db, address_id, user_id)
        if address.is_default:
            raise ValidationError(
                message="Cannot unset default address. Set another address as default instead."
            )
        return await self.set_default_address(db, address_id, user_id)

    async def get_default_address(self, db: AsyncSession, user_id: str) -> UserAddress:
        async with translate_db_errors():
            result = await db.execute(
                select(UserAddress).where(
                    UserAddress.user_id == user_id,
                    UserAddress.is_default.is_(True),
                )
            )
            address = result.scalars().first()
        if address is None:
            raise NotFoundError(resource="Default address")
        return address


address_service = AddressService()
