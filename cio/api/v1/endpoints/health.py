"""
Health check endpoints.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from cio.core.config import settings
from cio.core.database import get_session

router = APIRouter(tags=["health"])


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=Dict[str, Any])
async def health_check(session: Annotated[Session, Depends(get_session)]):
    """
    Health check with database status.

    Returns degraded status if database is unreachable but service is running.
    """
    db_status = "connected"
    try:
        session.exec(text("SELECT 1")).first()
    except SQLAlchemyError as e:
        db_status = f"disconnected: {str(e)}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "timestamp": _utc_now_iso(),
        "service": settings.app_name,
        "version": settings.app_version,
        "database": db_status,
    }


@router.get("/ping")
async def ping() -> str:
    return "pong"
