"""Progress service entry point: logging setup, app factory, uvicorn runner."""

import logging
import os
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lesson_progress.api.dependencies import get_database
from lesson_progress.api.routes import register_exception_handlers, router
from lesson_progress.config import get_settings


def configure_logging(production: bool) -> None:
    """Configure structlog: JSON in production, console output otherwise."""
    renderer = (
        structlog.processors.JSONRenderer() if production else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if production else logging.DEBUG
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(os.getenv("ENV", "development").lower() == "production")
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = get_database()
    db.create_all()
    logger.info("progress_service_started", database=db.dialect)
    yield
    db.dispose()


def create_app() -> FastAPI:
    """Progress API with CORS for the browser client (ALLOWED_ORIGINS, comma separated)."""
    application = FastAPI(title="Lesson Progress", version="0.1.0", lifespan=lifespan)
    origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.include_router(router)
    register_exception_handlers(application)
    return application


app = create_app()


def main() -> None:
    settings = get_settings()
    logger.info("progress_service_starting", host=settings.host, port=settings.port)
    uvicorn.run("lesson_progress.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
