import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskhouse.core.config import CORS_ALLOW_ORIGIN_REGEX, CORS_ORIGINS, DATABASE_URL
from taskhouse.core.database import Base, engine
from taskhouse.core.errors import AppError, app_error_handler
from taskhouse.core.logging_setup import configure_logging
from taskhouse.core.startup_checks import ensure_migrations_applied, validate_database_environment, validate_secrets
from taskhouse.middleware.observability import ObservabilityMiddleware
import taskhouse.models  # garante que os models são importados antes do create_all

from taskhouse.routers.auth import router as auth_router
from taskhouse.routers.internal_metrics import router as internal_metrics_router
from taskhouse.routers.invitations import router as invitations_router
from taskhouse.routers.notifications import router as notifications_router
from taskhouse.routers.projects import router as projects_router
from taskhouse.routers.tasks import router as tasks_router
from taskhouse.routers.tenants import router as tenants_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Taskhouse API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=CORS_ALLOW_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)
app.add_exception_handler(AppError, app_error_handler)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        validate_secrets()
        # Em SQLite (dev/test) o schema vem dos models; nos demais bancos, das migrations.
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


# Routers
app.include_router(auth_router)
app.include_router(invitations_router)
app.include_router(tenants_router)
app.include_router(projects_router)
app.include_router(tasks_router)
app.include_router(notifications_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
