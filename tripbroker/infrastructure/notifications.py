"""
Notification dispatch.

The engine only ever calls ``enqueue(user_id, title, message)``.  Two sinks
are provided:

* ``DatabaseNotificationSink`` -- writes ``notifications`` rows in its own
  session, so a failed insert can never touch the caller's transaction.
* ``RedisNotificationSink``    -- ``RPUSH`` a JSON payload onto
  ``notifications:<user_id>`` for an external delivery worker.

``NotificationDispatcher`` is what services use: it runs after commit,
logs every failed enqueue and never raises.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import NotificationModel
from .repositories import NotificationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    user_id: int
    title: str
    message: str


class NotificationSink(ABC):
    @abstractmethod
    async def enqueue(self, user_id: int, title: str, message: str) -> None: ...


class DatabaseNotificationSink(NotificationSink):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def enqueue(self, user_id: int, title: str, message: str) -> None:
        async with self.session_factory() as session:
            await NotificationRepository(session).add_many(
                [NotificationModel(user_id=user_id, title=title, message=message)]
            )
            await session.commit()


class RedisNotificationSink(NotificationSink):
    def __init__(self, client: aioredis.Redis, key_prefix: str = "notifications"):
        self.redis = client
        self.key_prefix = key_prefix

    def key_for(self, user_id: int) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def enqueue(self, user_id: int, title: str, message: str) -> None:
        payload = json.dumps({"user_id": user_id, "title": title, "message": message})
        await self.redis.rpush(self.key_for(user_id), payload)


class NotificationDispatcher:
    """Fire-and-forget fan-out of collected notices to a sink."""

    def __init__(self, sink: NotificationSink):
        self.sink = sink

    async def dispatch(self, notices: Iterable[Notice]) -> int:
        """Enqueue every notice; return how many were accepted by the sink."""
        delivered = 0
        for notice in notices:
            try:
                await self.sink.enqueue(notice.user_id, notice.title, notice.message)
            except Exception:
                logger.exception(
                    "Failed to enqueue notification %r for user %s",
                    notice.title,
                    notice.user_id,
                )
                continue
            delivered += 1
        return delivered


def build_notification_sink(
    backend: str,
    session_factory: async_sessionmaker[AsyncSession],
    redis_url: str,
) -> NotificationSink:
    if backend == "redis":
        return RedisNotificationSink(aioredis.from_url(redis_url, decode_responses=True))
    return DatabaseNotificationSink(session_factory)
