import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import Base, engine
from .errors import ValidationFailed, WorkflowError
from .routers import documents, signing, users

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup"""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    settings.storage_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Database tables created successfully!")
    yield


app = FastAPI(title="Docsign", lifespan=lifespan)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    body = {"detail": exc.message}
    if isinstance(exc, ValidationFailed):
        body["violations"] = [violation.to_dict() for violation in exc.violations]
    logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


# Mount API routers
app.include_router(users.router, prefix=settings.api_prefix, tags=["users"])
app.include_router(documents.router, prefix=f"{settings.api_prefix}/documents", tags=["documents"])
app.include_router(signing.router, prefix=f"{settings.api_prefix}/signing", tags=["signing"])


@app.get("/health")
def health_check():
    """Health check endpoint for debugging"""
    return {
        "status": "ok",
        "database": engine.dialect.name,
        "storage": str(settings.storage_dir),
        "decline_policy": settings.decline_policy.value,
    }
