"""
Database service layer for the FastAPI application.

Thin wrappers over the Motor collections holding books and users. Driver
exceptions are logged and re-raised as the API's own error types so route
handlers only deal with ``BookAPIError`` subclasses.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from api.exceptions import DuplicateUserError, NotFoundError, StoreError, ValidationError
from api.models import Book, BookResponse, User, validation_error_summary

logger = structlog.get_logger(__name__)


def to_object_id(book_id: str) -> ObjectId:
    """
    Convert a client supplied identifier to an ObjectId.

    Raises:
        StoreError: If the identifier is not a valid ObjectId
    """
    try:
        return ObjectId(book_id)
    except (InvalidId, TypeError) as e:
        logger.warning("Malformed book identifier", book_id=book_id, error=str(e))
        raise StoreError(f'Cast to ObjectId failed for value "{book_id}"')


def to_book_response(book_doc: Dict) -> BookResponse:
    """Convert a raw book document to its JSON-safe response model."""
    book_doc = dict(book_doc)
    book_doc["_id"] = str(book_doc["_id"])

    published = book_doc.get("publishedDate")
    if isinstance(published, datetime):
        book_doc["publishedDate"] = format_utc_datetime(published)

    return BookResponse(**book_doc)


def format_utc_datetime(value: datetime) -> str:
    """
    Render a datetime the way MongoDB stores it: UTC, millisecond precision.

    Naive values are taken to be UTC, which is what Motor returns on reads.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class BookDatabaseService:
    """Database service for book operations."""

    def __init__(self, collection: AsyncIOMotorCollection, per_page: int = 4):
        self.collection = collection
        self.per_page = per_page

    async def create_book(self, book_data: Dict) -> BookResponse:
        """
        Validate and insert a new book.

        Args:
            book_data: Book fields as sent by the client

        Returns:
            The stored book including its generated identifier

        Raises:
            ValidationError: If the entity schema rejects the data
            StoreError: If the insert fails
        """
        try:
            book = Book(**book_data)
        except PydanticValidationError as e:
            summary = validation_error_summary(e.errors())
            logger.info("Book rejected by entity schema", error=summary)
            raise ValidationError(f"Book validation failed: {summary}")

        book_doc = book.dict()
        try:
            result = await self.collection.insert_one(book_doc)
        except PyMongoError as e:
            logger.error("Failed to insert book", title=book.title, error=str(e))
            raise StoreError(str(e), message=str(e))

        book_doc["_id"] = result.inserted_id
        logger.info("Book created", book_id=str(result.inserted_id), title=book.title)
        return to_book_response(book_doc)

    async def get_book_by_id(self, book_id: str) -> BookResponse:
        """
        Get a single book by ID.

        Raises:
            NotFoundError: If no book has this identifier
            StoreError: If the identifier is malformed or the lookup fails
        """
        object_id = to_object_id(book_id)
        try:
            book_doc = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise StoreError(str(e))

        if not book_doc:
            raise NotFoundError("Book Not Found")
        return to_book_response(book_doc)

    async def search_books(self, query: str) -> List[BookResponse]:
        """
        Find every book whose title or author matches ``query``.

        The query is applied as a case-insensitive regular expression and the
        result is not paginated.
        """
        pattern = {"$regex": query, "$options": "i"}
        filter_query = {"$or": [{"title": pattern}, {"author": pattern}]}

        try:
            cursor = self.collection.find(filter_query).sort("_id", ASCENDING)
            books_docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to search books", query=query, error=str(e))
            raise StoreError(str(e))

        return [to_book_response(doc) for doc in books_docs]

    async def get_books_page(self, page: int) -> List[BookResponse]:
        """
        Get one page of books in insertion order.

        Args:
            page: 1-indexed page number

        Returns:
            Up to ``per_page`` books, offset by ``(page - 1) * per_page``
        """
        skip = (page - 1) * self.per_page

        try:
            cursor = self.collection.find({}).sort("_id", ASCENDING).skip(skip).limit(self.per_page)
            books_docs = await cursor.to_list(length=self.per_page)
        except PyMongoError as e:
            logger.error("Failed to get books", page=page, error=str(e))
            raise StoreError(str(e))

        return [to_book_response(doc) for doc in books_docs]

    async def update_book(self, book_id: str, fields: Dict) -> Optional[BookResponse]:
        """
        Overwrite the given fields of a book.

        Required fields are not re-validated. Returns the updated book, or None
        when no book has this identifier.
        """
        object_id = to_object_id(book_id)
        try:
            if fields:
                book_doc = await self.collection.find_one_and_update(
                    {"_id": object_id},
                    {"$set": fields},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                book_doc = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise StoreError(str(e))

        if book_doc is None:
            logger.info("Update matched no book", book_id=book_id)
            return None

        logger.info("Book updated", book_id=book_id, fields=sorted(fields))
        return to_book_response(book_doc)

    async def delete_book(self, book_id: str) -> Optional[BookResponse]:
        """Remove a book and return it, or None when nothing matched."""
        object_id = to_object_id(book_id)
        try:
            book_doc = await self.collection.find_one_and_delete({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise StoreError(str(e))

        if book_doc is None:
            logger.info("Delete matched no book", book_id=book_id)
            return None

        logger.info("Book deleted", book_id=book_id)
        return to_book_response(book_doc)


class UserDatabaseService:
    """Database service for user accounts."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def create_indexes(self) -> None:
        """Enforce unique emails at the store level."""
        await self.collection.create_index("email", unique=True)

    async def create_user(self, user: User) -> str:
        """
        Insert a user.

        Returns:
            The new user's identifier

        Raises:
            DuplicateUserError: If the email is already registered
            StoreError: If the insert fails
        """
        try:
            if await self.collection.find_one({"email": user.email}):
                raise DuplicateUserError("User already exists")
            result = await self.collection.insert_one(user.dict())
        except DuplicateKeyError:
            raise DuplicateUserError("User already exists")
        except PyMongoError as e:
            logger.error("Failed to create user", email=user.email, error=str(e))
            raise StoreError(str(e), message=str(e))

        logger.info("User registered", user_id=str(result.inserted_id), email=user.email)
        return str(result.inserted_id)

    async def get_user_by_email(self, email: str) -> Optional[Dict]:
        """Get a raw user document by email, or None."""
        try:
            return await self.collection.find_one({"email": email})
        except PyMongoError as e:
            logger.error("Failed to get user", email=email, error=str(e))
            raise StoreError(str(e))


async def health_check(database: AsyncIOMotorDatabase) -> Dict:
    """
    Perform database health check.

    Returns:
        Dictionary with health status
    """
    try:
        await database.command("ping")
        return {"status": "healthy"}
    except PyMongoError as e:
        logger.error("Database health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e)
        }
