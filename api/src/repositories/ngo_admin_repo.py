"""NGO admin repository."""

import structlog
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.src.models.entities import NgoAdmin

logger = structlog.get_logger(__name__)


class NgoAdminRepository:
    """Repository for NGO admin database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_account(self, account: str) -> Optional[NgoAdmin]:
        """
        Get NGO admin by account name.

        Args:
            account: Account name

        Returns:
            NGO admin or None if not found
        """
        try:
            admin = await self.session.scalar(
                select(NgoAdmin).where(NgoAdmin.account == account)
            )

            if admin is None:
                logger.debug("ngo_admin_not_found", account=account)

            return admin

        except Exception as e:
            logger.error("ngo_admin_get_by_account_failed", error=str(e), account=account)
            raise
