from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

import uvicorn

from product_api.config import get_settings
from product_api.database import Database, acquire_database, close_database
from product_api.services.product_service import ProductService
from product_api.api import products, health
from product_api.api.errors import register_exception_handlers

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def initialize_database(database: Database) -> None:
    """Create the tables the API needs."""
    logger.info("Creating database tables...")
    await ProductService(database).ensure_schema()
    logger.info("Database tables initialized")


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: Storage handle to serve requests with. Defaults to the
            shared handle built from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup and shutdown events.
        """
        # Startup
        logger.info("Starting up application...")
        app.state.database = database or acquire_database()
        await initialize_database(app.state.database)

        yield

        # Shutdown
        logger.info("Shutting down application...")
        await close_database(database)

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
        A small REST API over a product catalog:

        - **Create** products with name, description, price, category and stock
        - **List** all products, newest first
        - **Retrieve** a product by ID
        - **Filter** products by category
        - **Update** and **delete** products

        Every response uses the same envelope:
        `{success, data?, message?, error?}`.
        """,
        version="1.0.0",
        license_info={
            "name": "MIT",
            "url": "https://opensource.org/licenses/MIT"
        },
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routers
    app.include_router(health.router)
    app.include_router(products.router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "products": "/api/products"
        }

    return app


app = create_app()


def start_server() -> None:
    """Run the API; the schema is created before the listener accepts requests."""
    logger.info(f"Server starting on port {settings.PORT}")
    logger.info(f"Health check: http://localhost:{settings.PORT}/health")
    logger.info(f"API endpoints: http://localhost:{settings.PORT}/api/products")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    start_server()
