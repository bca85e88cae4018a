import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.api.v1 import api_router
from app.core.automation.factory import run_queue_pass
from app.core.automation.scheduler import QueueScheduler
from app.core.config_file import get_settings
from app.core.db.session import Base, engine
from app.core.exceptions import APIException
from app.core.logging import configure_logging

settings = get_settings()
logger = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()

    if settings.is_sqlite:
        # No migrations for the local SQLite database
        Base.metadata.create_all(bind=engine)

    scheduler: QueueScheduler | None = None
    if settings.AUTOMATION_QUEUE_ENABLED:
        scheduler = QueueScheduler(run_queue_pass, settings.AUTOMATION_QUEUE_POLL_SECONDS)
        await scheduler.start()

    logger.info(f"Leadly automation API started (env={settings.ENV})")
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()


app = FastAPI(
    title="Leadly Automation API",
    version="0.1.0",
    description="Rule-based CRM automations: triggers, actions and delayed actions",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS configuration
if settings.CORS_ORIGINS:
    origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
else:
    origins = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle APIException and return the standard error envelope."""
    # exc.detail already contains {"error": {...}}
    response_content = exc.detail.copy()
    response_content["data"] = None
    return JSONResponse(
        status_code=exc.status_code,
        content=response_content,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI validation errors to the standard error envelope."""
    details = {}
    for error in exc.errors():
        # ["body", "name"] -> "name"
        field_path = error["loc"]
        field_name = str(field_path[-1] if len(field_path) > 1 else field_path[0])
        details.setdefault(field_name, []).append(error["msg"])

    response_content = {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Validation failed",
            "details": details,
        },
        "data": None,
    }

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=response_content,
    )


@app.get("/healthz", tags=["system"])
def healthz():
    """Health check endpoint."""
    return {
        "status": "ok",
        "env": settings.ENV,
        "debug": settings.DEBUG,
    }


# Include API routers
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
