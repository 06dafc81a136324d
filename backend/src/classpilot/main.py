import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classpilot.config import settings
from classpilot.db.session import init_db
from classpilot.errors import (
    GenerationFailure,
    GradingFailure,
    InvalidTransitionError,
    RosterError,
    ValidationError,
)
from classpilot.routers import activities, catalog, health, wizard
from classpilot.services.catalog import load_catalog
from classpilot.services.wizard_sessions import clear_sessions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_catalog()
    if settings.auto_create_tables:
        await init_db()
    yield
    clear_sessions()


app = FastAPI(title="Classpilot", version="0.1.0", lifespan=lifespan)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse({"detail": str(exc), "fields": exc.fields}, status_code=422)


@app.exception_handler(InvalidTransitionError)
async def transition_error_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse({"detail": str(exc)}, status_code=409)


@app.exception_handler(RosterError)
async def roster_error_handler(request: Request, exc: RosterError):
    return JSONResponse({"detail": str(exc)}, status_code=404)


@app.exception_handler(GenerationFailure)
@app.exception_handler(GradingFailure)
async def gateway_error_handler(request: Request, exc: GenerationFailure | GradingFailure):
    logger.warning("Gateway failure on %s: %s", request.url.path, exc)
    return JSONResponse({"detail": str(exc), "retryable": True}, status_code=502)


app.include_router(health.router)
app.include_router(catalog.router)
app.include_router(wizard.router)
app.include_router(activities.router)
