"""
Observer repository for database operations.

Provides async lookups and device registration for observers using a
SQLAlchemy AsyncSession.
"""

import structlog
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.src.models.entities import Observer

logger = structlog.get_logger(__name__)


class ObserverRepository:
    """Repository for observer database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize observer repository.

        Args:
            session: Database session bound to the current request
        """
        self.session = session

    async def get_by_phone(self, phone: str) -> Optional[Observer]:
        """
        Get observer by phone number.

        Args:
            phone: Phone number as typed in the mobile app

        Returns:
            Observer or None if not found
        """
        try:
            observer = await self.session.scalar(
                select(Observer).where(Observer.phone == phone)
            )

            if observer is None:
                logger.debug("observer_not_found", phone=phone)

            return observer

        except Exception as e:
            logger.error("observer_get_by_phone_failed", error=str(e), phone=phone)
            raise

    async def register_device(self, observer: Observer, device_id: str) -> Observer:
        """
        Bind an observer to a mobile device.

        Args:
            observer: Observer loaded in this session
            device_id: Device identifier sent by the mobile app

        Returns:
            Updated observer
        """
        try:
            observer.mobile_device_id = device_id
            observer.device_register_date = datetime.now(timezone.utc)
            await self.session.commit()

            logger.info("observer_device_registered", observer_id=observer.id)
            return observer

        except Exception as e:
            await self.session.rollback()
            logger.error("observer_device_register_failed", error=str(e), observer_id=observer.id)
            raise
