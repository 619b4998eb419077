from pydantic import BaseModel, ConfigDict, Field
from typing import ClassVar, FrozenSet, Optional, List

from app.courses.course_models import Attachment
from app.courses.course_schemas import PatchBody

# ==================== REQUEST SCHEMAS ====================

class LessonCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    order: Optional[int] = Field(None, ge=1)  # omitted = append
    duration: float = Field(0, ge=0)
    video_url: Optional[str] = None
    attachments: List[Attachment] = []
    is_published: bool = False

class LessonUpdate(PatchBody):
    model_config = ConfigDict(extra="forbid")
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"video_url"})

    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = Field(None, ge=1)  # moves the lesson
    duration: Optional[float] = Field(None, ge=0)
    video_url: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    is_published: Optional[bool] = None

class ReorderPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order: List[str]  # every lesson id of the course, in the new order
