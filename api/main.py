"""
FastAPI main application for the Book Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient

from api.config import config
from api.database import BookDatabaseService, UserDatabaseService, health_check as db_health_check
from api.exceptions import BookAPIError
from api.models import HealthResponse, validation_error_summary
from api.routers import books, users
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Catalog API")

    client = AsyncIOMotorClient(config.mongodb_url)
    try:
        database = client[config.mongodb_database]

        # Test connection
        await database.command("ping")
        logger.info("Database connection established", database=config.mongodb_database)

        app.state.database = database
        app.state.book_service = BookDatabaseService(
            database[config.books_collection],
            per_page=config.books_per_page
        )
        app.state.user_service = UserDatabaseService(database[config.users_collection])
        await app.state.user_service.create_indexes()

    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise

    yield

    # Shutdown
    logger.info("Shutting down Book Catalog API")
    client.close()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    A REST API for managing a book catalog.

    ## Features

    * **Users**: Register and log in to receive an access token
    * **Books**: Create, read, update and delete books
    * **Search**: Case-insensitive search on title or author
    * **Pagination**: Four books per page

    ## Authentication

    Every book endpoint requires the token returned by `/api/login`:

    ```
    Authorization: Bearer your_token_here
    ```
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)

app.include_router(users.router, prefix="/api")
app.include_router(books.router, prefix="/api")


# Exception handlers
@app.exception_handler(BookAPIError)
async def book_api_exception_handler(request: Request, exc: BookAPIError):
    """Render service errors as ``{"message", "error"}``."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies and parameters."""
    summary = validation_error_summary(exc.errors())
    logger.info("Request validation failed", path=request.url.path, error=summary)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "error": summary}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    content = {"message": "Internal server error"}
    if config.debug:
        content["error"] = str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    database = getattr(request.app.state, "database", None)
    if database is not None:
        health_info = await db_health_check(database)
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
