"""FastAPI application entry point."""
import os

# Force UTC before anything caches timezone information
os.environ['TZ'] = 'UTC'

import asyncio
import time

if hasattr(time, "tzset"):
    time.tzset()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from backoffice.config import get_settings
from backoffice.version import APP_VERSION
from backoffice.routers import auth, games, health, payment_tags, players, reports, staff, transactions
from backoffice.utils.exceptions import BackofficeError
from backoffice.utils.passwords import PasswordValidationError

# Create logs directory if it doesn't exist
logs_dir = Path("logs")
logs_dir.mkdir(exist_ok=True)

log_file = logs_dir / "backoffice.log"
sql_log_file = logs_dir / "backoffice_sql.log"
api_log_file = logs_dir / "backoffice_api.log"

# General logs: 1MB per file, 5 backups
rotating_handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=5, encoding='utf-8')
rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

sql_rotating_handler = RotatingFileHandler(sql_log_file, maxBytes=1024 * 1024, backupCount=5, encoding='utf-8')
sql_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

# API request logs: 2MB per file, 15 backups
api_rotating_handler = RotatingFileHandler(api_log_file, maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8')
api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

# force=True overrides any configuration uvicorn installed first
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        rotating_handler,
    ],
    force=True,
)

logger = logging.getLogger(__name__)

api_logger = logging.getLogger("backoffice.api")
api_logger.handlers.clear()
api_logger.addHandler(api_rotating_handler)
api_logger.setLevel(logging.INFO)
api_logger.propagate = False

uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
if rotating_handler not in uvicorn_access_logger.handlers:
    uvicorn_access_logger.addHandler(rotating_handler)

# SQL statements go to their own file and only at WARNING unless asked for
sqlalchemy_logger = logging.getLogger("sqlalchemy.engine.Engine")
sqlalchemy_logger.handlers.clear()
sqlalchemy_logger.addHandler(sql_rotating_handler)
sqlalchemy_logger.setLevel(logging.INFO if os.getenv("SQL_ECHO") else logging.WARNING)
sqlalchemy_logger.propagate = False


class SQLTransactionFilter(logging.Filter):
    def filter(self, record):
        if record.levelno == logging.INFO and hasattr(record, 'getMessage'):
            message = record.getMessage()

            if any(keyword in message for keyword in ['ROLLBACK', 'BEGIN', 'COMMIT', 'generated in']):
                return False

            # Collapse multi-line statements onto one line
            if any(kw in message for kw in ['SELECT', 'UPDATE', 'DELETE', 'INSERT']):
                record.msg = ' '.join(message.split())
                record.args = ()

        return True


sqlalchemy_logger.addFilter(SQLTransactionFilter())

settings = get_settings()


async def inactivity_sweep_cycle():
    """
    Background task that marks quiet players Inactive.

    Each pass runs in its own session; a failed pass is logged and the loop
    carries on.
    """
    from backoffice.database import AsyncSessionLocal
    from backoffice.services.activity_service import ActivityService

    if not settings.inactivity_sweep_enabled:
        logger.info("Inactivity sweep is disabled, not starting cycle")
        return

    startup_delay = 10
    logger.info(f"Inactivity sweep cycle starting in {startup_delay}s")
    await asyncio.sleep(startup_delay)

    logger.info("Inactivity sweep cycle starting main loop")

    while True:
        try:
            async with AsyncSessionLocal() as db:
                await ActivityService(db).run_inactivity_sweep()
        except Exception as e:
            logger.error(f"Inactivity sweep cycle error: {e}")

        await asyncio.sleep(settings.inactivity_sweep_interval_seconds)


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Manage application startup and shutdown tasks."""
    logger.info("=" * 60)
    logger.info("LA777 Back-office API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'SQLite'}")
    logger.info(f"Redis: {'Enabled' if settings.redis_url else 'In-Memory Fallback'}")
    logger.info("=" * 60)

    sweep_task = None
    try:
        sweep_task = asyncio.create_task(inactivity_sweep_cycle())
        logger.info(
            f"Inactivity sweep task started (runs every {settings.inactivity_sweep_interval_seconds}s, "
            f"window {settings.inactivity_window_minutes} minutes)"
        )
    except Exception as e:
        logger.error(f"Failed to start inactivity sweep cycle: {e}")

    try:
        yield
    finally:
        logger.info("Shutting down background tasks...")
        if sweep_task:
            sweep_task.cancel()
            try:
                await asyncio.wait_for(sweep_task, timeout=2.0)
            except asyncio.CancelledError:
                logger.info("Inactivity sweep task cancelled")
            except asyncio.TimeoutError:
                logger.warning("Inactivity sweep task did not cancel within timeout, forcing shutdown")

        logger.info("LA777 Back-office API Shutting Down... Goodbye!")


app = FastAPI(
    title="LA777 Back-office API",
    description="Casino back-office: players, game accounts and the transaction ledger",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with user-friendly messages."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": error.get("msg", "Validation error"),
            "type": error.get("type", "unknown"),
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": errors
        }
    )


@app.exception_handler(BackofficeError)
async def backoffice_exception_handler(request: Request, exc: BackofficeError):
    """Render service-layer failures as ``{"success": false, "error": ...}``."""
    logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(PasswordValidationError)
async def password_validation_exception_handler(request: Request, exc: PasswordValidationError):
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing, status code and client address to the API log."""
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    method = request.method
    path = request.url.path
    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"

    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip}")
    if request.query_params:
        api_logger.info(f">> {request_id} | QUERY | {request.query_params}")

    try:
        response = await call_next(request)
    except Exception as e:
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | "
            f"Time: {time.time() - start_time:.3f}s | "
            f"IP: {client_ip}"
        )
        raise

    api_logger.info(
        f"<< {request_id} | COMPLETE | {method} {path} | "
        f"Status: {response.status_code} | "
        f"Time: {time.time() - start_time:.3f}s | "
        f"IP: {client_ip}"
    )
    return response


allowed_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
if not allowed_origins or allowed_origins == [""]:
    allowed_origins = [
        settings.frontend_url,
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(auth.password_router)
app.include_router(players.router)
app.include_router(games.router)
app.include_router(transactions.router)
app.include_router(payment_tags.router)
app.include_router(staff.router)
app.include_router(reports.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "LA777 Back-office API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }
