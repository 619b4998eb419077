from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum

from app.core.database import utcnow

# ==================== ENUMS ====================

class CourseCategory(str, Enum):
    PROGRAMMING = "programming"
    DESIGN = "design"
    BUSINESS = "business"
    MARKETING = "marketing"
    SCIENCE = "science"
    LANGUAGE = "language"
    OTHER = "other"

class CourseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

# ==================== DATABASE MODELS ====================

class Attachment(BaseModel):
    name: str
    file_url: str
    file_type: Optional[str] = None

class Enrollment(BaseModel):
    """
    One student bound to one course.
    Only built by the enrollment flow, never from client input.
    """
    user_id: str
    enrollment_date: datetime = Field(default_factory=utcnow)
    progress: float = 0
    completed: bool = False

class Course(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    course_id: str  # CRS_XXXXXX
    title: str
    slug: str
    description: str
    instructor_id: str  # set once at creation
    category: CourseCategory
    level: CourseLevel = CourseLevel.BEGINNER
    price: float = 0
    cover_image: Optional[str] = None
    duration: Optional[float] = None  # hours
    published: bool = False
    lesson_ids: List[str] = []  # order = array order
    enrollments: List[Enrollment] = []
    rating: float = 0
    ratings_quantity: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


def slugify(title: str) -> str:
    return "-".join(title.lower().split())
