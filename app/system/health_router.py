import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth_utils import Principal, Role
from app.core.common_audit import get_audit_trail
from app.core.database import utcnow
from app.core.dependencies import get_db, require_roles
from app.core.errors import success, fail_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Liveness plus a round trip to the document store
    """
    try:
        await db.command("ping")
    except Exception as e:
        logger.error("Database ping failed: %s", e)
        return fail_response(503, "Database unavailable", "ServiceUnavailable")

    return success({"database": "UP", "timestamp": utcnow()})


@router.get("/audit")
async def audit_trail(
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.ADMIN))
):
    logs = await get_audit_trail(db, target_type, target_id, limit)
    return success({"logs": logs}, results=len(logs))
