"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fileshare.config import settings
from fileshare.errors import ConnectionFailureError, FileShareError
from fileshare.routes.files import router as files_router
from fileshare.routes.reactions import router as reactions_router
from fileshare.routes.stats import router as stats_router
from fileshare.services.session import Session
from fileshare.stores.local import LocalRecordStore
from fileshare.stores.relational import SqlRecordStore

logger = logging.getLogger(__name__)


def build_default_session() -> Session:
    """Database as the remote store, the local JSON store as offline fallback."""
    return Session(
        remote=SqlRecordStore.from_url(settings.DATABASE_URL),
        local=LocalRecordStore(settings.LOCAL_STORE_PATH, quota_bytes=settings.LOCAL_STORE_QUOTA_BYTES),
    )


async def handle_fileshare_error(request: Request, exc: FileShareError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request", "details": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


def create_app(session: Optional[Session] = None) -> FastAPI:
    """Create the FileShare API app. Tests pass their own session."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create tables on startup; keep serving from local storage if the database is down."""
        app.state.session = session or build_default_session()
        remote = app.state.session.remote
        if isinstance(remote, SqlRecordStore):
            try:
                await remote.create_schema()
                logger.info("Database tables initialized")
            except ConnectionFailureError as e:
                logger.warning(f"Database unavailable at startup, serving from local storage: {e}")

        yield

        if remote is not None:
            await remote.close()

    app = FastAPI(
        title="FileShare API",
        version="1.0.0",
        description="Upload, browse and react to shared files.",
        lifespan=lifespan,
    )

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FileShareError, handle_fileshare_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    @app.get("/api/health")
    async def health_check(request: Request):
        """Verify API and database connectivity."""
        remote = request.app.state.session.remote
        if remote is None:
            return {"status": "ok", "database": "not configured"}
        try:
            await remote.ping()
            return {"status": "ok", "database": "connected"}
        except FileShareError as e:
            return {"status": "degraded", "database": str(e)}

    app.include_router(files_router)
    app.include_router(reactions_router)
    app.include_router(stats_router)

    return app


app = create_app()
