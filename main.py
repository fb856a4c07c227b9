import logging
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import click
import uvicorn
from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from minibook.core.config import Settings
from minibook.core.config import settings as default_settings
from minibook.core.database import Database
from minibook.core.exceptions import AppException
from minibook.core.hasher import PasswordHelper
from minibook.core.limiter import (
    custom_rate_limit_exceeded_handler,
    health_rate_limit,
    limiter,
    rate_limit_disabled,
)
from minibook.core.security import JWTManager
from minibook.routers import routes
from minibook.utils.file_upload import MediaStorage

BASE_DIR = Path(__file__).parent

logger = logging.getLogger(__name__)


# ============================================================================
# Logging Configuration
# ============================================================================
def setup_logging(settings: Settings):
    """Configure logging for the application."""
    if settings.debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    log_format = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s"

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # Suppress verbose third-party logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("python_multipart").setLevel(logging.WARNING)


# ============================================================================
# Application Lifespan
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup and release it on shutdown."""
    database: Database = app.state.database

    logger.info(f"Starting {app.title} v{app.version}")
    try:
        database.create_all()
        logger.info("Database tables ready")
        logger.info(f"Media directory: {app.state.media_storage.base_path.absolute()}")
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)
        raise

    yield  # Application is running

    database.dispose()
    logger.info("Application shutdown completed")


# ============================================================================
# Exception Handlers
# ============================================================================
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc.errors()}")
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:])
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation error",
            "message": "; ".join(messages),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "Route not found",
                "path": request.url.path,
                "method": request.method,
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _internal_error() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": "An unexpected error occurred",
        },
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"SQLAlchemy error: {type(exc).__name__}", exc_info=exc)
    return _internal_error()


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}", exc_info=exc
    )
    return _internal_error()


# ============================================================================
# Health Check
# ============================================================================
@limiter.limit(health_rate_limit, exempt_when=rate_limit_disabled)
def health_check(request: Request):
    """Health check with a database round trip."""
    db_ok = request.app.state.database.ping()
    media_ok = request.app.state.media_storage.base_path.is_dir()
    return {
        "success": db_ok,
        "status": "healthy" if db_ok and media_ok else "degraded",
        "timestamp": time.time(),
        "database": "healthy" if db_ok else "unhealthy",
        "storage": "healthy" if media_ok else "unhealthy",
    }


# ============================================================================
# FastAPI Application
# ============================================================================
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # App-scoped collaborators
    app.state.settings = settings
    app.state.database = Database(
        settings.sqlalchemy_database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    app.state.jwt_manager = JWTManager.from_settings(settings)
    app.state.password_helper = PasswordHelper(rounds=settings.password_hash_rounds)
    app.state.media_storage = MediaStorage(
        base_path=settings.upload_dir,
        url_prefix=settings.media_url_prefix,
        max_size_bytes=settings.max_upload_size_bytes,
    )

    app.state.limiter = limiter

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.time() - start_time:.4f}"
        return response

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # ------------------------------------------------------------------
    # Exception handlers
    # ------------------------------------------------------------------
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ------------------------------------------------------------------
    # Health check endpoints
    # ------------------------------------------------------------------
    @app.get("/")
    async def root():
        """Root endpoint with basic application info."""
        return {
            "success": True,
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": "production" if settings.production else "development",
        }

    app.add_api_route("/health", health_check, methods=["GET"])

    # ------------------------------------------------------------------
    # Static media & routes
    # ------------------------------------------------------------------
    app.mount(
        app.state.media_storage.url_prefix,
        StaticFiles(directory=str(app.state.media_storage.base_path.absolute())),
        name="uploads",
    )

    for router in routes:
        app.include_router(router, prefix=settings.api_prefix)

    logger.info(f"Registered {len(routes)} routers under {settings.api_prefix}")
    return app


app = create_app()


# ============================================================================
# CLI Commands
# ============================================================================
@click.group()
def cli():
    """MiniBook management CLI."""


def run_migrations():
    alembic_cfg = Config(str(BASE_DIR / "alembic.ini"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Migrations completed successfully")


@cli.command()
def migrate():
    """Apply database migrations up to head."""
    try:
        run_migrations()
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        raise click.ClickException(str(e))


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--reload", is_flag=True, help="Enable auto-reload (development only)")
def dev(host: str, port: int, reload: bool):
    """Run development server with Uvicorn."""
    logger.info(f"Starting development server on {host}:{port} (reload={reload})")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug",
        access_log=True,
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--workers", default=4, help="Number of worker processes")
def prod(host: str, port: int, workers: int):
    """Run migrations, then the production server with Gunicorn."""
    logger.info("Running database migrations...")
    try:
        run_migrations()
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    logger.info(f"Starting Gunicorn on {host}:{port} with {workers} workers")

    cmd = [
        "gunicorn",
        "main:app",
        "--worker-class",
        "uvicorn.workers.UvicornWorker",
        "--workers",
        str(workers),
        "--bind",
        f"{host}:{port}",
        "--access-logfile",
        "-",
        "--error-logfile",
        "-",
        "--timeout",
        "120",
    ]

    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        logger.error(f"Gunicorn failed to start: {e}")
        raise click.ClickException(str(e))
    except FileNotFoundError:
        logger.error("Gunicorn not found. Install it with: pip install gunicorn")
        raise click.ClickException("Gunicorn not installed")


@cli.command()
def info():
    """Display application information."""
    settings = default_settings
    click.echo(f"Application: {settings.app_name}")
    click.echo(f"Version: {settings.app_version}")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"API Prefix: {settings.api_prefix}")
    click.echo(f"Upload Directory: {Path(settings.upload_dir).absolute()}")
    click.echo(f"Log File: {settings.log_file or '(stdout only)'}")


if __name__ == "__main__":
    cli()
