"""
Ops Metrics Engine
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from opsmetrics.config import get_settings
from opsmetrics.utils.logger import log
from opsmetrics import __version__

# Import routers
from opsmetrics.api import health, metrics

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from opsmetrics.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    yield

    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Business financial metrics for restaurant and retail dashboards

    - Labor, food and current-expense cost as % of income before VAT
    - Monthly pace projection against the revenue target
    - Previous-month and previous-year comparisons
    - Average ticket per income source, managed product costs
    - Six-month trailing chart
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(metrics.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "opsmetrics.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
