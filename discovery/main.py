"""FastAPI application entry point for the Business Discovery Engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from discovery.config import get_settings
from discovery.dependencies import close_es_client, get_store, init_es_client
from discovery.exceptions import QueryValidationError
from discovery.routers import explore_router
from discovery.services.storage import BusinessStore

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown events."""
    # Startup
    logger.info(f"Starting {settings.app_name} ({settings.store_backend} backend)...")
    if settings.store_backend != "memory":
        try:
            await init_es_client()
            logger.info("Elasticsearch client initialized")
        except Exception as e:
            logger.warning(f"Could not connect to Elasticsearch: {e}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_es_client()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Location-aware business discovery and ranking over a business index",
    version=settings.app_version,
    lifespan=lifespan,
)


@app.exception_handler(QueryValidationError)
async def query_validation_error_handler(request: Request, exc: QueryValidationError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "errors": exc.errors},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed query parameters with the same envelope as range errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "query")
        errors.append(f"{field}: {error.get('msg', 'Invalid value')}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation error", "errors": errors},
    )


# Include routers
app.include_router(explore_router)


@app.get("/health")
async def health_check(store: BusinessStore = Depends(get_store)):
    """
    Health check endpoint.

    Returns the status of the application and its business store.
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "store": await store.ping(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "discovery.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
