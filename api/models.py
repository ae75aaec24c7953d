"""
API request and response models for the library REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in catalog/models.py,
rentals/models.py and auth/models.py, which own the internal domain
representation. Route handlers map between the two.

Some response keys are camelCase (lastPage, checkoutDate, ...) because
existing clients read them that way. Those fields use a Field alias with
populate_by_name so Python code still constructs them with snake_case names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog.models import Author, BookDetail, BookListing, BookPage, Publisher
from core.validation import MAX_DB_INT
from rentals.models import RentalHistoryEntry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MAX_ISBN = 9_999_999_999_999
# bcrypt reads at most 72 bytes of the encoded password.
MAX_PASSWORD_BYTES = 72


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class _Credentials(BaseModel):
    """Email and password fields shared by register and login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        # max_length counts characters; non-ASCII passwords can pass it and
        # still exceed what bcrypt accepts.
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
        return v


class RegisterRequest(_Credentials):
    """Request body for POST /api/v1/users/register."""

    name: str = Field(min_length=1, max_length=255)


class LoginRequest(_Credentials):
    """Request body for POST /api/v1/users/login."""


class ChangeNameRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: str
    is_admin: bool


class LoginResponse(BaseModel):
    """Login result. access_token is for clients that cannot keep the session cookie."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


# ---------------------------------------------------------------------------
# Authors / publishers
# ---------------------------------------------------------------------------


class NameRequest(BaseModel):
    """Request body for creating or renaming an author or publisher."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class NamedEntityResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str

    @classmethod
    def from_entity(cls, entity: Author | Publisher) -> "NamedEntityResponse":
        return cls(id=entity.id, name=entity.name)


class AuthorSearchResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    authors: list[NamedEntityResponse]


class PublisherSearchResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    publishers: list[NamedEntityResponse]


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class BookFields(BaseModel):
    """Mutable book fields shared by create and update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    author_id: int = Field(gt=0, le=MAX_DB_INT)
    publisher_id: int = Field(gt=0, le=MAX_DB_INT)
    publication_year: int = Field(ge=-MAX_DB_INT, le=MAX_DB_INT)
    publication_month: int = Field(ge=1, le=12)


class BookCreate(BookFields):
    """Request body for POST /api/v1/admin/book."""

    isbn: int = Field(gt=0, le=MAX_ISBN)


class BookResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    isbn: int
    title: str
    author_id: int
    publisher_id: int
    publication_year: int
    publication_month: int


class NameRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str


class BookListRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    isbn: int
    title: str
    author: NameRef
    publication_year_month: str

    @classmethod
    def from_listing(cls, listing: BookListing) -> "BookListRow":
        return cls(
            isbn=listing.isbn,
            title=listing.title,
            author=NameRef(name=listing.author_name),
            publication_year_month=listing.publication_year_month,
        )


class BookListResponse(BaseModel):
    """Response for GET /api/v1/book/list/{page}."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    current: int
    last_page: int = Field(alias="lastPage")
    books: list[BookListRow]

    @classmethod
    def from_page(cls, page: BookPage) -> "BookListResponse":
        return cls(
            current=page.current,
            last_page=page.last_page,
            books=[BookListRow.from_listing(b) for b in page.books],
        )


class BookDetailResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    isbn: int
    title: str
    author: NameRef
    publisher: NameRef
    publication_year_month: str

    @classmethod
    def from_detail(cls, detail: BookDetail) -> "BookDetailResponse":
        return cls(
            isbn=detail.isbn,
            title=detail.title,
            author=NameRef(name=detail.author_name),
            publisher=NameRef(name=detail.publisher_name),
            publication_year_month=detail.publication_year_month,
        )


# ---------------------------------------------------------------------------
# Rentals
# ---------------------------------------------------------------------------


class RentalRequest(BaseModel):
    """Request body for POST /api/v1/book/rental. book_id is the isbn."""

    book_id: int = Field(gt=0, le=MAX_ISBN)


class ReturnRequest(BaseModel):
    """Request body for PUT /api/v1/book/return. id is the rental record id."""

    id: int = Field(gt=0, le=MAX_DB_INT)


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    checkout_date: str = Field(alias="checkoutDate")
    due_date: str = Field(alias="dueDate")


class ReturnResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    returned_date: str = Field(alias="returnedDate")


class HistoryBook(BaseModel):
    model_config = ConfigDict(frozen=True)

    isbn: int
    name: str


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    book: HistoryBook
    checkout_date: str
    due_date: str
    returned_date: Optional[str]

    @classmethod
    def from_entry(cls, entry: RentalHistoryEntry) -> "HistoryEntry":
        return cls(
            id=entry.id,
            book=HistoryBook(isbn=entry.book_isbn, name=entry.book_title),
            checkout_date=entry.checkout_date,
            due_date=entry.due_date,
            returned_date=entry.returned_date,
        )


class HistoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    history: list[HistoryEntry]
