# clinic/routers/health.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from clinic.core.config import settings
from clinic.db.sql import get_sessionmaker, ping_db

router = APIRouter()


@router.get("/health")
async def health_root():
    return {"status": "ok", "service": settings.APP_NAME, "version": settings.VERSION}


@router.get("/health/db")
async def health_db(session_factory=Depends(get_sessionmaker)):
    """
    Validates database connectivity with SELECT 1.
    Returns 503 if no connectivity (useful for readiness checks).
    """
    try:
        await ping_db(session_factory)
    except SQLAlchemyError as exc:
        # Don't expose internal details
        raise HTTPException(status_code=503, detail="database_unavailable") from exc
    return {"status": "ok", "database": session_factory.kw["bind"].dialect.name}
