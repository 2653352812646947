"""
FastAPI Application Entry Point

Usage:
    uvicorn kivaw_feed.api.main:app --reload --port 8111

Or with the CLI:
    kivaw-feed serve
"""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kivaw_feed.api.middleware import LoggingMiddleware
from kivaw_feed.api.routes import explore_router, feed_router, saves_router
from kivaw_feed.api.services import close_database, init_database, shutdown_services
from kivaw_feed.config.settings import (
    resolve_api_settings,
    resolve_clerk_settings,
    resolve_database_settings,
)
from kivaw_feed.utils.logging_config import configure_logging, get_logger

load_dotenv()

# Must run before any logger is created
configure_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    db_path = resolve_database_settings().path
    logger.info("Starting kivaw-feed API", database=db_path)
    await init_database(db_path)
    logger.info("API ready")

    yield

    logger.info("Shutting down API")
    await shutdown_services()
    await close_database()


app = FastAPI(
    title="Kivaw Feed API",
    description="Fresh / Today / Trending feed composition, explore stream and saved items",
    version="0.1.0",
    lifespan=lifespan,
)

# Added first so its timing covers the rest of the stack
app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=resolve_clerk_settings().authorized_parties,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed_router, prefix="/api")
app.include_router(explore_router, prefix="/api")
app.include_router(saves_router, prefix="/api")


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "kivaw-feed-api"}


def main(reload: bool = False):
    """Run the API server."""
    import uvicorn

    api_settings = resolve_api_settings()

    uvicorn.run(
        "kivaw_feed.api.main:app",
        host=api_settings.host,
        port=api_settings.port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
