from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import ClassVar, FrozenSet, Optional

from app.courses.course_models import CourseCategory, CourseLevel

# ==================== REQUEST SCHEMAS ====================

class PatchBody(BaseModel):
    """
    Base of PATCH bodies. Only the fields sent are applied; an explicit
    null clears a field listed in nullable_fields and is rejected elsewhere.
    """
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_required(self):
        nulled = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable_fields
        )
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self

class CourseCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True, validate_default=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    category: CourseCategory
    level: CourseLevel = CourseLevel.BEGINNER
    price: float = Field(0, ge=0)
    cover_image: Optional[str] = None
    duration: Optional[float] = Field(None, ge=0)
    published: bool = False

class CourseUpdate(PatchBody):
    """Mutable course fields; instructor and enrollments are not among them"""
    model_config = ConfigDict(extra="forbid", use_enum_values=True, validate_default=True)
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"cover_image", "duration"})

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[CourseCategory] = None
    level: Optional[CourseLevel] = None
    price: Optional[float] = Field(None, ge=0)
    cover_image: Optional[str] = None
    duration: Optional[float] = Field(None, ge=0)
    published: Optional[bool] = None

class ProgressUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True, validate_default=True)

    progress: float = Field(..., ge=0, le=100)
