from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware

from realestate_api.api.api import api_router
from realestate_api.core.config import get_settings
from realestate_api.core.database import Base, engine, ping_database
from realestate_api.core.errors import register_exception_handlers
from realestate_api.core.logging import configure_logging
from realestate_api.core.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from realestate_api.core.rate_limit import limiter
from realestate_api import models  # noqa: F401
from realestate_api.services.uploads import UploadType, ensure_upload_dirs, folder_for, upload_root

settings = get_settings()
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    docs_url="/docs" if settings.ENABLE_API_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_API_DOCS else None,
    openapi_url="/openapi.json" if settings.ENABLE_API_DOCS else None,
)
app.state.limiter = limiter
register_exception_handlers(app)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "x-request-id"],
)

ensure_upload_dirs()
app.mount("/uploads", StaticFiles(directory=str(upload_root())), name="uploads")


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("%s %s started (%s)", settings.PROJECT_NAME, settings.VERSION, settings.ENVIRONMENT)


@app.on_event("shutdown")
def on_shutdown() -> None:
    engine.dispose()


@app.get("/health")
@limiter.limit("60/minute")
def health(request: Request):
    database_ok = ping_database()
    body = {
        "status": "ok" if database_ok else "degraded",
        "database": "connected" if database_ok else "unreachable",
        "uploads": {t.value: folder_for(t).is_dir() for t in UploadType},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=body)


@app.get(settings.API_PREFIX, include_in_schema=False)
def api_root():
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "health": "/health",
        "endpoints": [
            f"{settings.API_PREFIX}{path}"
            for path in (
                "/auth",
                "/cities",
                "/neighborhoods",
                "/final-cities",
                "/main-types",
                "/sub-types",
                "/final-types",
                "/properties",
                "/realestate",
                "/files",
                "/buildings",
                "/reservations",
                "/offers",
                "/dashboard/stats",
                "/uploads",
                "/audit",
            )
        ],
    }


app.include_router(api_router, prefix=settings.API_PREFIX)
