from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from partstock.db.database import get_db
from partstock.core.config import settings
from partstock.core.redis import redis_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get('/healthz')
def healthz():
    return {"status": "ok"}


@router.get('/readyz')
async def readyz(db: AsyncSession = Depends(get_db)):
    # Check DB connectivity
    try:
        await db.execute(text('SELECT 1'))
    except Exception:
        logger.exception('Readiness DB check failed')
        raise HTTPException(status_code=503, detail='Not ready')

    # Redis is only a dependency when events are broadcast
    if settings.EVENT_BROADCAST_ENABLED:
        if not redis_client.health_check():
            logger.error('Redis health check failed')
            raise HTTPException(status_code=503, detail='Not ready')

    return {"status": "ready"}


@router.get('/api/health')
def api_health():
    return {
        "success": True,
        "message": "Inventory API is healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.APP_VERSION,
    }
