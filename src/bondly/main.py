"""Bondly API server."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bondly.advice import AdviceGenerator
from bondly.api import router
from bondly.config import PROJECT_ROOT, get_settings
from bondly.db import create_engine, create_sessionmaker
from bondly.errors import BondlyError, InvalidInput
from bondly.logging_config import setup_logging
from bondly.stream import EventStream

# Load .env from the project root before settings are read
load_dotenv(PROJECT_ROOT / ".env")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the database, notification and generation clients; close them on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level)

    engine = create_engine(settings.database_url)
    app.state.sessionmaker = create_sessionmaker(engine)
    app.state.event_stream = EventStream(settings.redis_url)
    app.state.advice_generator = AdviceGenerator.from_settings(settings)
    logger.info("Bondly API started (%s)", settings.environment)

    yield

    await app.state.advice_generator.close()
    await app.state.event_stream.close()
    await engine.dispose()
    logger.info("Bondly API stopped")


async def bondly_error_handler(request: Request, exc: BondlyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for detail in exc.errors():
        field = ".".join(str(part) for part in detail.get("loc", ()) if part not in ("body", "query"))
        messages.append(f"{field}: {detail.get('msg')}" if field else str(detail.get("msg")))
    error = InvalidInput("; ".join(messages) or "Invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    error = BondlyError("Internal server error")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title="Bondly", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BondlyError, bondly_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app


app = create_app()
