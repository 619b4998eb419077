from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from app.core.database import utcnow
from app.courses.course_models import Attachment

# ==================== DATABASE MODELS ====================

class Submission(BaseModel):
    """
    A student's work on an assignment, embedded in the assignment.
    At most one per student; resubmitting overwrites it in place.
    """
    submission_id: str  # SUB_XXXXXX
    student_id: str
    content: str
    attachments: List[Attachment] = []
    submission_date: datetime = Field(default_factory=utcnow)
    grade: Optional[float] = None
    feedback: Optional[str] = None
    is_graded: bool = False
    graded_at: Optional[datetime] = None
    graded_by: Optional[str] = None

class Assignment(BaseModel):
    assignment_id: str  # ASG_XXXXXX
    course_id: str
    lesson_id: Optional[str] = None
    title: str
    description: str
    due_date: Optional[datetime] = None  # naive UTC
    total_points: float = 100
    attachments: List[Attachment] = []
    is_published: bool = False
    submissions: List[Submission] = []
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
