# fastapi dependency injection
# provides the reflection store and the analysis gateway to the routers

import logging
from fastapi import Depends, HTTPException, Request, status

from mindmirror.services.db import Database, get_db
from mindmirror.services.gateway import AnalysisGateway
from mindmirror.services.reflection_store import ReflectionStore

logger = logging.getLogger(__name__)


async def get_store(db: Database = Depends(get_db)) -> ReflectionStore:
    """reflection store bound to the current database"""
    return ReflectionStore(db.reflections)


async def get_gateway(request: Request) -> AnalysisGateway:
    """the gateway built at startup (see main.lifespan)"""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        logger.error("Analysis gateway requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analysis service is not available",
        )
    return gateway
