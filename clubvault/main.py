"""Club Vault Application - FastAPI Entry Point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import LOG_LEVEL, STORAGE_PUBLIC_URL, UPLOADS_DIR
from .application.errors import QuotaExceededError, VaultError
from .dependencies import vault_sessions
from .infrastructure.database import close_async_db, init_async_db
from .routes import router as vault_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    await init_async_db()
    logger.info("Club vault started")
    yield
    vault_sessions.clear()
    await close_async_db()


app = FastAPI(title="Club Vault", lifespan=lifespan)


@app.exception_handler(VaultError)
async def vault_error_handler(request: Request, exc: VaultError):
    """Answer vault errors with their status and message."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    content = {"detail": exc.message}
    if isinstance(exc, QuotaExceededError):
        content.update(used_bytes=exc.used_bytes, limit_bytes=exc.limit_bytes)
    return JSONResponse(status_code=exc.status_code, content=content)


# Locally stored objects are served straight from the upload directory
if STORAGE_PUBLIC_URL.startswith("/"):
    app.mount(
        STORAGE_PUBLIC_URL,
        StaticFiles(directory=UPLOADS_DIR, check_dir=False),
        name="storage"
    )

app.include_router(vault_router)
