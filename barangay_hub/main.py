import os

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import Base, dispose_engine, init_engine
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.reports import router as reports_router
from .routes.memos import router as memos_router
from .routes.logs import router as logs_router
from .routes.users import router as users_router
from .services.errors import ServiceError

# Register tables on Base.metadata
from .models import models  # noqa: F401

log = structlog.get_logger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", path=request.url.path, error=exc.code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_exception_handler(ServiceError, service_error_handler)

    # Routers
    app.include_router(auth_router)
    app.include_router(reports_router)
    app.include_router(memos_router)
    app.include_router(logs_router)
    app.include_router(users_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        engine = init_engine(settings.database_url)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
        log.info("startup_complete", environment=settings.environment)

    @app.on_event("shutdown")
    def _shutdown():
        dispose_engine()

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
