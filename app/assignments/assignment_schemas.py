from pydantic import BaseModel, ConfigDict, Field
from typing import ClassVar, FrozenSet, Optional, List
from datetime import datetime

from app.courses.course_models import Attachment
from app.courses.course_schemas import PatchBody

# ==================== REQUEST SCHEMAS ====================

class AssignmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    lesson_id: Optional[str] = None
    due_date: Optional[datetime] = None
    total_points: float = Field(100, gt=0)
    attachments: List[Attachment] = []
    is_published: bool = False

class AssignmentUpdate(PatchBody):
    model_config = ConfigDict(extra="forbid")
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"lesson_id", "due_date"})

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    lesson_id: Optional[str] = None
    due_date: Optional[datetime] = None
    total_points: Optional[float] = Field(None, gt=0)
    attachments: Optional[List[Attachment]] = None
    is_published: Optional[bool] = None

class SubmissionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(..., min_length=1)
    attachments: List[Attachment] = []

class GradePayload(BaseModel):
    """Bounds against total_points are checked by the grading flow"""
    model_config = ConfigDict(extra="forbid")

    grade: float
    feedback: Optional[str] = None
