"""Driver availability window updates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from tripbroker.domain.entities import Actor
from tripbroker.domain.errors import ValidationError
from tripbroker.infrastructure.models import DriverModel
from tripbroker.services.base import EngineService
from tripbroker.services.parties import resolve_driver

logger = logging.getLogger(__name__)


class DriverService(EngineService):
    async def update_availability(
        self,
        actor: Actor,
        location: Optional[str],
        available_from: Optional[datetime],
        available_to: Optional[datetime],
    ) -> DriverModel:
        """Overwrite the driver's window; leaving any part empty makes them unsearchable."""
        if (
            available_from is not None
            and available_to is not None
            and available_from > available_to
        ):
            raise ValidationError("Available from must not be after available to")

        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            driver.current_location = location
            driver.available_from = available_from
            driver.available_to = available_to
            await session.flush()

        logger.info(
            "Driver %s available at %r from %s to %s",
            driver.id, location, available_from, available_to,
        )
        return driver

    async def get_profile(self, actor: Actor) -> DriverModel:
        async with self.transaction() as session:
            return await resolve_driver(session, actor)
