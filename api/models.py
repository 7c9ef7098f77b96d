"""
API models and schemas for the FastAPI application.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,4}$")

# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


class BookCreateRequest(BaseModel):
    """Request body for book creation. Required-ness is checked by the route."""
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    isbn: Optional[str] = Field(None, description="ISBN")
    description: Optional[str] = Field(None, description="Book description")
    publishedDate: Optional[str] = Field(None, description="Publication date (ISO format)")

    def missing_required(self) -> bool:
        """True when any of title, author, isbn or publishedDate is absent or empty."""
        return not (self.title and self.author and self.isbn and self.publishedDate)

    class Config:
        coerce_numbers_to_str = True


class BookUpdateRequest(BaseModel):
    """Request body for book update. Every field is optional."""
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    isbn: Optional[str] = Field(None, description="ISBN")
    description: Optional[str] = Field(None, description="Book description")
    publishedDate: Optional[datetime] = Field(None, description="Publication date")

    def to_update(self) -> dict:
        """Fields the client actually sent, without nulls."""
        return self.dict(exclude_unset=True, exclude_none=True)

    class Config:
        coerce_numbers_to_str = True


class Book(BaseModel):
    """Book entity as persisted in the books collection."""
    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    isbn: str = Field(..., min_length=1, description="ISBN")
    description: str = Field(..., min_length=1, description="Book description")
    publishedDate: datetime = Field(..., description="Publication date")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Sample Book",
                "author": "John Doe",
                "isbn": "1234567890",
                "description": "A sample book description",
                "publishedDate": "2023-01-01"
            }
        }


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., alias="_id", description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    isbn: str = Field(..., description="ISBN")
    description: Optional[str] = Field(None, description="Book description")
    publishedDate: Optional[str] = Field(None, description="Publication date (ISO format)")

    class Config:
        populate_by_name = True

    def to_json(self) -> dict:
        return self.dict(by_alias=True)


class BookMessageResponse(BaseModel):
    """Response for create, update and delete."""
    message: str = Field(..., description="Outcome message")
    book: Optional[BookResponse] = Field(None, description="Affected book, null if none matched")


class BookListQuery(BaseModel):
    """Query parameters for GET /api/books, checked in priority order id > query > page."""
    id: Optional[str] = Field(None, description="Book ID")
    query: Optional[str] = Field(None, description="Search text for title or author")
    page: int = Field(1, ge=1, description="Page number, 1-indexed")

    @validator('page', pre=True)
    def parse_page(cls, v):
        """An absent page means the first page."""
        if v is None or v == "":
            return 1
        return v


class UserRegisterRequest(BaseModel):
    """Request body for registration."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    def missing_required(self) -> bool:
        return not (self.name and self.email and self.password)

    def password_too_long(self) -> bool:
        return len(self.password.encode("utf-8")) > MAX_PASSWORD_BYTES


class UserLoginRequest(BaseModel):
    """Request body for login."""
    email: Optional[str] = None
    password: Optional[str] = None

    def missing_required(self) -> bool:
        return not (self.email and self.password)

    def password_too_long(self) -> bool:
        return len(self.password.encode("utf-8")) > MAX_PASSWORD_BYTES


class User(BaseModel):
    """User entity as persisted in the users collection."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., description="Unique email address")
    password: str = Field(..., description="bcrypt hash of the password")

    @validator('email')
    def validate_email(cls, v):
        """Ensure the email matches the accepted pattern."""
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Invalid email address')
        return v


class TokenData(BaseModel):
    """Caller identity decoded from a verified token."""
    user_id: str
    email: str
    name: Optional[str] = None


class RegisterResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str
    token: str


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")
    error: Optional[str] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


def validation_error_summary(errors: List[dict]) -> str:
    """Render pydantic error dicts as ``field: message`` pairs."""
    parts = []
    for err in errors:
        field = ".".join(str(loc) for loc in err.get("loc", ()))
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return ", ".join(parts)
