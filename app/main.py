"""
Voice Transcription SaaS Backend API
Free tier: 2 uploads. Unlimited after a one-off Stripe payment.
"""
from dotenv import load_dotenv
load_dotenv()

import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True  # Override any existing configuration
)

logger = logging.getLogger(__name__)

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api.routes import payment, users, voice, webhooks
from app.core.config import settings
from app.core.errors import AppError, InfrastructureError
from app.db.base import Base
from app.db.session import engine, normalize_database_url
# Import all models to ensure they're registered with Base
from app.models import User, Upload, Payment  # noqa: F401


def run_migrations() -> None:
    """Run Alembic migrations on startup. Uses alembic.ini and DATABASE_URL.
    Fails startup if migrations fail, so the DB is never left out of sync."""
    if not settings.RUN_MIGRATIONS:
        logger.info("RUN_MIGRATIONS is off, skipping Alembic migrations")
        return
    project_root = Path(__file__).resolve().parent.parent
    alembic_ini = project_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found, skipping Alembic migrations")
        return
    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False
    alembic_cfg.set_main_option("sqlalchemy.url", normalize_database_url(settings.DATABASE_URL))
    try:
        command.upgrade(alembic_cfg, "head")
        logger.info("Alembic migrations completed successfully")
    except Exception as e:
        logger.exception("Alembic migration failed: %s", e)
        raise


app = FastAPI(title="Voice Transcription SaaS")


@app.on_event("startup")
def startup_event():
    """Verify the database, create tables, then run Alembic migrations.
    A database that cannot be reached stops the server from starting."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Connected to database")
    except Exception as e:
        logger.critical("Database connection error: %s", e)
        raise

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

    run_migrations()

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required configuration: %s", ", ".join(missing))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, InfrastructureError):
        logger.error(
            "Infrastructure error on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc.__cause__ or exc,
        )
        # Detail stays in the log; callers get the generic text and the reason
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": InfrastructureError.message, "reason": exc.reason},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Malformed request", "reason": "BadRequest"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error", "reason": "InternalError"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz", tags=["Health"])
def healthz():
    return {"ok": True}


# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(voice.router, prefix="/api/voice", tags=["Voice"])
app.include_router(payment.router, prefix="/api/payment", tags=["Payment"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
