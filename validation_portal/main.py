from __future__ import annotations

import logging
import time

import uvicorn
from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from validation_portal.core.config import settings
from validation_portal.core.errors import ConfigurationError, PortalError
from validation_portal.db.session import engine
from validation_portal.auth.deps import get_current_principal
from validation_portal.core.redis import close_redis

# Import models to populate SQLAlchemy metadata (needed for create_all)
import validation_portal.db.models  # noqa: F401

from validation_portal.modules.submissions.router import router as submissions_router
from validation_portal.modules.enumerators.router import router as enumerators_router
from validation_portal.modules.surveys.router import router as surveys_router
from validation_portal.modules.admin.router import router as admin_router


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("validation_portal")


app = FastAPI(title=settings.APP_NAME)

# CORS (Access-Control-Allow-*) - configurable
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    expose_headers=["X-Cache"],
)

# Listings can be large; compress them
app.add_middleware(GZipMiddleware, minimum_size=800)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start = time.perf_counter()
    resp = await call_next(request)
    resp.headers["X-Process-Time-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
    return resp


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    resp = await call_next(request)
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "SAMEORIGIN"
    resp.headers["Referrer-Policy"] = "same-origin"
    return resp


@app.exception_handler(PortalError)
async def portal_exc_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exc_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Routers
app.include_router(submissions_router)
app.include_router(enumerators_router)
app.include_router(surveys_router)
app.include_router(admin_router)


def check_database() -> None:
    """Fail fast when the store is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise ConfigurationError(f"database unreachable at startup: {exc}") from exc


@app.on_event("startup")
def on_startup():
    # Schema migrations are handled by the separate "migrate" script.
    check_database()
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)


@app.on_event("shutdown")
def on_shutdown():
    close_redis()


@app.get("/health", response_class=JSONResponse)
def health():
    return {"status": "ok", "app": settings.APP_NAME}


@app.get("/health/auth", response_class=JSONResponse)
def health_auth(principal=Depends(get_current_principal)):
    return {"status": "ok", "authenticated": True, "identity": principal.identity, "role": principal.role.value}


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
