import uvicorn
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api import api_router
from config.settings import API_HOST, API_PORT, CORS_ORIGINS, SEED_ON_STARTUP
from database.connection import Database
from database.seed import seed_database
from utils.logger import get_logger

# Initialize logger
logger = get_logger(__name__)


def create_app(database_url: Optional[str] = None, seed: bool = SEED_ON_STARTUP) -> FastAPI:
    """Build the application. The database handle lives on app.state.db."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - runs on startup and shutdown"""
        logger.info("Starting application...")
        db = Database(database_url)
        db.create_all()
        if seed:
            seed_database(db)
        app.state.db = db
        yield
        logger.info("Shutting down application...")
        db.dispose()

    app = FastAPI(
        title="CRM Access Control",
        version="1.0.0",
        description="Permission, tenant scope and menu visibility decisions",
        lifespan=lifespan
    )

    # Include API routes
    app.include_router(api_router, prefix="/api")

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=API_HOST, port=API_PORT)
