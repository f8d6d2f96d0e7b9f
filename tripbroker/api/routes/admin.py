"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus a database round trip
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from tripbroker.api.dependencies import get_broker
from tripbroker.api.schemas import HealthResponse
from tripbroker.services.broker import Broker

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(broker: Broker = Depends(get_broker)):
    async with broker.matcher.session_factory() as session:
        await session.execute(text("SELECT 1"))
    return HealthResponse()
