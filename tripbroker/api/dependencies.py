"""FastAPI dependency injection helpers."""

from fastapi import Header, Request

from tripbroker.domain.entities import Actor
from tripbroker.domain.enums import Role
from tripbroker.services.broker import Broker


def get_broker(request: Request) -> Broker:
    """The engine built by the app lifespan; tests override this."""
    return request.app.state.broker


async def get_actor(
    x_user_id: int = Header(..., description="Caller's user id"),
    x_user_role: Role = Header(..., description="company or driver"),
) -> Actor:
    """Resolve the caller from headers set by the upstream auth gateway."""
    return Actor(user_id=x_user_id, role=x_user_role)
