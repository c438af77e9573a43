"""
Circlenet FastAPI Application

Main entry point for the Circlenet API: circles, connections and parent
oversight of a child's circles.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Common library imports
from common.database import MongoDB, set_main_database, get_main_database
from common.utils import success_response

# App-specific imports
from circlenet.config import settings
from circlenet.database import create_indexes
from circlenet.dependencies import init_services

# Import routers
from circlenet.routers import (
    circles_router,
    connections_router,
    guardian_router,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown tasks like database connections,
    index creation and service initialization.
    """
    # Startup
    logger.info("Starting Circlenet API...")
    settings.validate_required()

    main_db = MongoDB()
    await main_db.connect(
        uri=settings.MONGODB_URI,
        database_name=settings.MONGODB_DATABASE,
        document_models=[],
    )
    set_main_database(main_db)

    await create_indexes(main_db.db)

    init_services(db=main_db.db, settings=settings)
    logger.info("Circlenet API started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down Circlenet API...")
    await main_db.disconnect()
    logger.info("Circlenet API shut down complete.")


# =============================================================================
# FastAPI Application
# =============================================================================
app = FastAPI(
    title="Circlenet API",
    description="Circles, connections and parent oversight for student profiles",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development() else None,
    redoc_url="/redoc" if settings.is_development() else None,
)

# =============================================================================
# CORS Middleware
# =============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Include Routers (all under /api prefix)
# =============================================================================
API_PREFIX = "/api"

app.include_router(circles_router, prefix=API_PREFIX, tags=["Circles"])
app.include_router(connections_router, prefix=API_PREFIX, tags=["Connections"])
app.include_router(guardian_router, prefix=API_PREFIX, tags=["Parent"])


# =============================================================================
# Health Check Endpoint
# =============================================================================
@app.get("/health", tags=["Health"])
async def health():
    """
    Health check endpoint.

    Returns the status of the API and database connection.
    """
    try:
        database_connected = get_main_database().is_connected
    except RuntimeError:
        database_connected = False

    return success_response({
        "status": "ok",
        "version": "1.0.0",
        "database": database_connected,
    })


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
