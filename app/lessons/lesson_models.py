from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from app.core.database import utcnow
from app.courses.course_models import Attachment

# ==================== DATABASE MODELS ====================

class Lesson(BaseModel):
    lesson_id: str  # LSN_XXXXXX
    course_id: str  # owning course, never reassigned
    title: str
    content: str
    order: int  # 1..N, dense within the course
    duration: float = 0  # minutes
    video_url: Optional[str] = None
    attachments: List[Attachment] = []
    is_published: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
