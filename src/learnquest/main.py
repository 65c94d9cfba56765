"""FastAPI application entry point."""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnquest.api.routes import get_registry, router
from learnquest.config import Settings, get_settings
from learnquest.models.events import ProgressEvent

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """JSON logs in production (or when asked for), console logs otherwise."""
    is_production = os.getenv("ENV", "development").lower() == "production"

    if is_production or settings.log_format == "json":
        # Production: JSON format for machine parsing
        renderer = structlog.processors.JSONRenderer()
        level = logging.INFO
    else:
        # Development: console format for human readability
        renderer = structlog.dev.ConsoleRenderer()
        level = logging.DEBUG

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _log_event(event: ProgressEvent) -> None:
    logger.info("progress_event", event_type=event.type, session_id=event.session_id)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(title="LearnQuest", version="0.1.0")
    _allowed_origins_env = os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000"
    )
    allowed_origins = [o.strip() for o in _allowed_origins_env.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)

    # Fails fast on a missing or invalid catalog
    get_registry().bus.subscribe(_log_event)
    logger.info("app_started", data_dir=str(settings.store_dir), timezone=settings.timezone)
    return app


def main() -> None:
    """Run the application."""
    settings = get_settings()
    uvicorn.run(
        "learnquest.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
