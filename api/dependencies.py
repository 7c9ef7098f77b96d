"""
Request-scoped dependencies resolving the store handles attached at startup.
"""

from fastapi import Request, status

from api.database import BookDatabaseService, UserDatabaseService
from api.exceptions import BookAPIError


def get_book_service(request: Request) -> BookDatabaseService:
    """Book store handle created in the application lifespan."""
    service = getattr(request.app.state, "book_service", None)
    if service is None:
        raise BookAPIError("Database service not available",
                           status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return service


def get_user_service(request: Request) -> UserDatabaseService:
    """User store handle created in the application lifespan."""
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise BookAPIError("Database service not available",
                           status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return service
