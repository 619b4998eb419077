import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import CORS_ORIGINS
from app.core.database import close_client, create_indexes, get_database
from app.core.errors import register_exception_handlers
from app.core.logger import setup_logging
from app.courses.course_router import router as course_router
from app.lessons.lesson_router import router as lesson_router
from app.assignments.assignment_router import router as assignment_router
from app.system.health_router import router as system_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="LMS API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    await create_indexes(get_database())
    logger.info("LMS API started")


@app.on_event("shutdown")
async def shutdown_event():
    close_client()


# ==================== ROUTER REGISTRATION ====================
app.include_router(course_router, prefix="/api")
app.include_router(lesson_router, prefix="/api")
app.include_router(assignment_router, prefix="/api")
app.include_router(system_router, prefix="/api")
# ============================================================


@app.get("/")
async def root():
    return {"status": "success", "message": "LMS API is running..."}
