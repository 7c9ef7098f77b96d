"""
Book endpoints.

Every route requires a verified token. Failures of any kind are reported with
status 400 and a ``{"message": ..., "error": ...}`` body.
"""

from typing import List, Optional, Union

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from api.auth import verify_token
from api.database import BookDatabaseService
from api.dependencies import get_book_service
from api.exceptions import ValidationError
from api.models import (
    BookCreateRequest, BookListQuery, BookMessageResponse, BookResponse,
    BookUpdateRequest, ErrorResponse, TokenData
)

logger = structlog.get_logger(__name__)

router = APIRouter(
    tags=["Books"],
    responses={400: {"model": ErrorResponse, "description": "Bad request"}},
)


@router.post("/books", status_code=status.HTTP_201_CREATED, response_model=BookMessageResponse)
async def create_book(
    payload: BookCreateRequest,
    user: TokenData = Depends(verify_token),
    books: BookDatabaseService = Depends(get_book_service)
):
    """
    Create a new book.

    - **title**, **author**, **isbn**, **publishedDate**: required
    - **description**: book description
    """
    if payload.missing_required():
        raise ValidationError("All fields are required")

    book = await books.create_book(payload.dict(exclude_none=True))
    logger.info("Book created via API", book_id=book.id, user_id=user.user_id)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": "Book created", "book": book.to_json()}
    )


@router.get("/books", response_model=Union[BookResponse, List[BookResponse]])
async def get_books(
    page: Optional[str] = None,
    query: Optional[str] = None,
    id: Optional[str] = None,
    user: TokenData = Depends(verify_token),
    books: BookDatabaseService = Depends(get_book_service)
):
    """
    Get a book by ID, search books, or list one page of books.

    - **id**: Book identifier; when given, returns that single book
    - **query**: Case-insensitive match on title or author; returns all matches
    - **page**: Page number (starts from 1), four books per page
    """
    # page only matters when neither id nor query is given
    if id or query:
        page = None
    try:
        params = BookListQuery(id=id, query=query, page=page)
    except PydanticValidationError:
        raise ValidationError("Invalid page number")

    if params.id:
        book = await books.get_book_by_id(params.id)
        return JSONResponse(content=book.to_json())

    if params.query:
        results = await books.search_books(params.query)
    else:
        results = await books.get_books_page(params.page)

    return JSONResponse(content=[book.to_json() for book in results])


@router.put("/books/{book_id}", response_model=BookMessageResponse)
async def update_book(
    book_id: str,
    payload: BookUpdateRequest,
    user: TokenData = Depends(verify_token),
    books: BookDatabaseService = Depends(get_book_service)
):
    """
    Update a book by ID.

    Only the fields present in the body are overwritten. An unknown ID yields
    ``book: null``.
    """
    book = await books.update_book(book_id, payload.to_update())

    return JSONResponse(
        content={"message": "Book updated", "book": book.to_json() if book else None}
    )


@router.delete("/books/{book_id}", response_model=BookMessageResponse)
async def delete_book(
    book_id: str,
    user: TokenData = Depends(verify_token),
    books: BookDatabaseService = Depends(get_book_service)
):
    """Delete a book by ID. An unknown ID yields ``book: null``."""
    book = await books.delete_book(book_id)

    return JSONResponse(
        content={"message": "Book deleted", "book": book.to_json() if book else None}
    )
