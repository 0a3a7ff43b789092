"""
FastAPI application entry point for SalesDesk Catalog.

This module initializes the FastAPI app with middleware, CORS, logging,
error mapping for the catalog error taxonomy, and registers the API routers.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from salesdesk.config import settings
from salesdesk.database import init_db
from salesdesk.exceptions import (
    CapacityExceededError,
    CatalogError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from salesdesk.routers import products, shops
from salesdesk.schemas import ErrorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Checked in order, most specific first
ERROR_STATUS = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (CapacityExceededError, status.HTTP_409_CONFLICT, "capacity_exceeded"),
    (ConflictError, status.HTTP_409_CONFLICT, "conflict"),
    (StorageError, status.HTTP_502_BAD_GATEWAY, "storage_error"),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down application...")


# Create FastAPI app
app = FastAPI(
    title="SalesDesk Catalog API",
    description="Shop and product catalog with shop-scoped SKUs and product images",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    for error_type, status_code, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        status_code, code = status.HTTP_400_BAD_REQUEST, "catalog_error"

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, detail=str(exc)).model_dump(),
    )


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add GZip compression
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Register routers
app.include_router(shops.router, prefix=f"{settings.API_PREFIX}/shops", tags=["shops"])
app.include_router(products.router, prefix=f"{settings.API_PREFIX}/products", tags=["products"])

# Serve the local blob store
app.mount("/assets", StaticFiles(directory=settings.ASSET_ROOT, check_dir=False), name="assets")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "details": str(exc)},
    )


@app.get("/")
async def root():
    """Root endpoint for health check."""
    return {"message": "SalesDesk Catalog API", "status": "running"}
