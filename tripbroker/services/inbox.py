"""Reading persisted notifications (database sink only)."""

from __future__ import annotations

import logging

from tripbroker.domain.entities import Actor
from tripbroker.domain.errors import NotFound
from tripbroker.infrastructure.models import NotificationModel
from tripbroker.infrastructure.repositories import NotificationRepository
from tripbroker.services.base import EngineService

logger = logging.getLogger(__name__)


class InboxService(EngineService):
    async def list_notifications(
        self, actor: Actor, unread_only: bool = False
    ) -> list[NotificationModel]:
        async with self.transaction() as session:
            return await NotificationRepository(session).list_for_user(
                actor.user_id, unread_only
            )

    async def mark_notification_read(
        self, actor: Actor, notification_id: int
    ) -> NotificationModel:
        async with self.transaction() as session:
            notification = await NotificationRepository(session).get_for_user(
                notification_id, actor.user_id
            )
            if notification is None:
                raise NotFound(
                    "Notification not found", {"notification_id": notification_id}
                )
            notification.is_read = True
        return notification

    async def unread_count(self, actor: Actor) -> int:
        async with self.transaction() as session:
            return await NotificationRepository(session).count_unread(actor.user_id)

    async def mark_all_read(self, actor: Actor) -> int:
        async with self.transaction() as session:
            changed = await NotificationRepository(session).mark_all_read(actor.user_id)
        logger.info("Marked %d notification(s) read for user %s", changed, actor.user_id)
        return changed
