import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware
from ecolens.db.database import create_db_tables, engine
from ecolens.core.config import settings
from ecolens.core.errors import EcoLensError
from ecolens.core.logging import setup_logging
from ecolens.routers import analysis, auth, reports
from ecolens.services.container import ServiceStatus, build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT, settings.LOG_FILE)
    services = build_services(settings)

    # In production, use Alembic migrations instead of create_all
    try:
        await create_db_tables()
        services.status["database"] = ServiceStatus.ONLINE
        logger.info("Database ready")
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database unavailable at startup: {e}")

    app.state.services = services
    yield

    logger.info("Application shutdown: disposing database connection pool")
    await engine.dispose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan
)

origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",   # Vite dev server
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(EcoLensError)
async def ecolens_error_handler(request: Request, exc: EcoLensError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.http_status,
        content={
            "error": exc.context.error_type.value,
            "detail": exc.context.message,
            "recoverable": exc.context.recoverable,
        },
    )

# Include the routers to activate the endpoints
app.include_router(auth.router, prefix="/api/v1")
app.include_router(analysis.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")

@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request):
    """Readiness of each external dependency."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        return {"status": ServiceStatus.OFFLINE.value, "components": {}}

    components = {name: value.value for name, value in services.status.items()}
    overall = ServiceStatus.ONLINE if services.status.get("database") == ServiceStatus.ONLINE else ServiceStatus.OFFLINE
    return {"status": overall.value, "components": components}

@app.get("/")
async def root():
    return {"message": "Welcome to the EcoLens Enforcement API v1.0"}
