"""
Broker facade: one object wiring every engine service to the same
session factory, dispatcher and settings.  The API layer depends on this
and nothing below it.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tripbroker.infrastructure.notifications import NotificationDispatcher
from tripbroker.services.assignment import AssignmentService
from tripbroker.services.drivers import DriverService
from tripbroker.services.inbox import InboxService
from tripbroker.services.matcher import AvailabilityMatcher
from tripbroker.services.requests import RequestService
from tripbroker.services.trips import TripService


class Broker:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: Optional[NotificationDispatcher] = None,
        *,
        conflict_buffer: Optional[timedelta] = None,
        operations_user_id: Optional[int] = None,
    ):
        options = dict(
            conflict_buffer=conflict_buffer, operations_user_id=operations_user_id
        )
        self.matcher = AvailabilityMatcher(session_factory, dispatcher, **options)
        # share the dispatcher the first service defaulted to
        dispatcher = self.matcher.dispatcher
        self.requests = RequestService(session_factory, dispatcher, **options)
        self.assignment = AssignmentService(session_factory, dispatcher, **options)
        self.trips = TripService(session_factory, dispatcher, **options)
        self.drivers = DriverService(session_factory, dispatcher, **options)
        self.inbox = InboxService(session_factory, dispatcher, **options)
        self.dispatcher = dispatcher
