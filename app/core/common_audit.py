from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field

from app.core.auth_utils import Principal
from app.core.database import serialize_many, utcnow


class AuditLog(BaseModel):
    actor_user_id: str
    role: str  # student, instructor, admin
    action: str  # create_course, delete_lesson, grade_submission, etc.
    target_type: str  # course, lesson, assignment, submission
    target_id: str
    metadata: dict = {}
    timestamp: datetime = Field(default_factory=utcnow)


async def log_audit(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    action: str,
    target_type: str,
    target_id: str,
    metadata: dict = None
):
    """
    Append one entry to the audit trail. Entries are never updated.

    Args:
        principal: Who acted; role is recorded as it was at the time
        action: Verb of the change ('enroll', 'reorder_lessons', ...)
        target_type: course, lesson, assignment or submission
        target_id: Prefixed id of the touched record
        metadata: Extra fields worth keeping with the entry
    """
    audit_log = AuditLog(
        actor_user_id=principal.user_id,
        role=principal.role.value,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
    )

    await db.audit_logs.insert_one(audit_log.model_dump())


async def get_audit_trail(
    db: AsyncIOMotorDatabase,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = 100
):
    """Retrieve audit logs, newest first"""
    query = {}

    if target_type:
        query["target_type"] = target_type

    if target_id:
        query["target_id"] = target_id

    cursor = db.audit_logs.find(query).sort("timestamp", -1).limit(limit)
    return serialize_many(await cursor.to_list(length=limit))
