import os

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .db import Base, engine
from .errors import ServiceError, service_error_handler, storage_error_handler
from .logging import setup_logging, RequestContextMiddleware
from .auth.router import router as auth_router
from .routes.companies import router as companies_router
from .routes.sites import router as sites_router
from .routes.tickets import router as tickets_router
from .routes.timeclock import router as timeclock_router
from .routes.users import router as users_router
from .routes.schedules import router as schedules_router
from .routes.attendance import router as attendance_router
from .routes.vacations import router as vacations_router
from .routes.app_config import router as config_router
from .routes.events import router as events_router
from .models import models  # noqa: F401  registers tables on Base.metadata


logger = structlog.get_logger()


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite:///"):
        return
    path = url[len("sqlite:///"):]
    folder = os.path.dirname(path)
    if path != ":memory:" and folder:
        os.makedirs(folder, exist_ok=True)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestContextMiddleware)
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
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)

    # Routers
    app.include_router(auth_router)
    app.include_router(companies_router)
    app.include_router(sites_router)
    app.include_router(tickets_router)
    app.include_router(timeclock_router)
    app.include_router(users_router)
    app.include_router(schedules_router)
    app.include_router(attendance_router)
    app.include_router(vacations_router)
    app.include_router(config_router)
    app.include_router(events_router)

    # Prometheus metrics at /metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        if settings.auto_create_db:
            _ensure_sqlite_dir(settings.database_url)
            Base.metadata.create_all(bind=engine)
            logger.info("database_tables_ready")
        logger.info("startup_complete", environment=settings.environment)

    @app.get("/health")
    def health():
        return {"status": "ok", "app": settings.app_name}

    return app


app = create_app()
