"""Health check endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Basic health check with the number of open documents."""
    sessions = getattr(request.app.state, "sessions", None)
    return {"status": "ok", "open_sessions": len(sessions) if sessions is not None else 0}


@router.get("/health/ready")
async def readiness_check(session: AsyncSession = Depends(get_session)) -> dict:
    """Check comment store connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected"}
    except Exception as e:
        return {"status": "not ready", "database": str(e)}
