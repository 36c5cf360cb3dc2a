"""
Bazaar Backend — Courier Lookups
=================================

What:  Read-only queries behind the courier guards and the provider listing.
How:   Stateless; each call receives the request's AsyncSession. Absent
       records come back as None (the guards decide how to answer); store
       failures are raised as PersistenceError.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.database import translate_db_errors
from bazaar.models.courier import CourierCredentials, CourierEnvironment, CourierProvider

logger = logging.getLogger(__name__)


class CourierService:
    async def find_active_provider(
        self, db: AsyncSession, provider_id: str
    ) -> Optional[CourierProvider]:
        async with translate_db_errors():
            result = await db.execute(
                select(CourierProvider).where(
                    CourierProvider.id == provider_id,
                    CourierProvider.is_active.is_(True),
                )
            )
            return result.scalars().first()

    async def find_active_credentials(
        self,
        db: AsyncSession,
        provider_id: str,
        vendor_id: Optional[str],
        environment: CourierEnvironment,
    ) -> Optional[CourierCredentials]:
        """
        Credentials for one provider, vendor and environment.

        vendor_id None matches only the platform-wide row (vendor_id IS NULL).
        """
        vendor_clause = (
            CourierCredentials.vendor_id.is_(None)
            if vendor_id is None
            else CourierCredentials.vendor_id == vendor_id
        )
        async with translate_db_errors():
            result = await db.execute(
                select(CourierCredentials).where(
                    CourierCredentials.courier_provider_id == provider_id,
                    vendor_clause,
                    CourierCredentials.environment == environment,
                    CourierCredentials.is_active.is_(True),
                )
            )
            return result.scalars().first()

    async def list_active_providers(self, db: AsyncSession) -> List[CourierProvider]:
        async with translate_db_errors():
            result = await db.execute(
                select(CourierProvider)
                .where(CourierProvider.is_active.is_(True))
                .order_by(CourierProvider.name)
            )
            return list(result.scalars().all())


courier_service = CourierService()
