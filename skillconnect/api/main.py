"""
FastAPI app assembly: logging, middleware, error mapping and router wiring.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from skillconnect import __version__
from skillconnect.api.audits import router as audits_router
from skillconnect.api.bulk_operations import router as bulk_operations_router
from skillconnect.api.users import router as users_router
from skillconnect.errors import InvalidStateError, NotFoundError, ValidationError

# Database schema is managed by Alembic migrations.


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    engine = getattr(app.state, "bulk_engine", None)
    if engine is not None:
        await engine.shutdown()


app = FastAPI(
    title="SkillConnect Service",
    description="User management and bulk user operations for the SkillConnect platform.",
    version=__version__,
    lifespan=lifespan,
)


def _cors_origins() -> list:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
    return [o.strip() for o in raw.split(",") if o.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        {"detail": exc.message, "errors": exc.errors},
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_409_CONFLICT)


app.include_router(bulk_operations_router)
app.include_router(users_router)
app.include_router(audits_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "skillconnect", "version": __version__}
