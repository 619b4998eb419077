import logging

from app.core.config import LOG_LEVEL

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL):
    """Attach a single stream handler to the app logger hierarchy"""
    app_logger = logging.getLogger("app")
    app_logger.setLevel(level.upper())

    # Avoid duplicate handlers if reloaded
    if not any(getattr(h, "_lms_handler", False) for h in app_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._lms_handler = True
        app_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error", "fastapi"]:
        logging.getLogger(logger_name).setLevel(level.upper())
