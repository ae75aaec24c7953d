"""
api/routes/v1/admin.py -- Catalog maintenance routes (admin only).

Routes:
  POST   /api/v1/admin/author                 -- register author   {name}
  PUT    /api/v1/admin/author/{author_id}     -- rename author     {name}
  DELETE /api/v1/admin/author/{author_id}     -- soft-delete author
  POST   /api/v1/admin/publisher              -- register publisher
  PUT    /api/v1/admin/publisher/{id}         -- rename publisher
  DELETE /api/v1/admin/publisher/{id}         -- soft-delete publisher
  POST   /api/v1/admin/book                   -- register book
  PUT    /api/v1/admin/book/{isbn}            -- update book
  DELETE /api/v1/admin/book/{isbn}            -- soft-delete book

Every route depends on require_admin (401 / 403 before the handler runs); the
CatalogService checks the Caller again. Nothing is ever hard-deleted.
"""

from fastapi import APIRouter, Depends, Request

from api.models import BookCreate, BookFields, BookResponse, MessageResponse, NameRequest, NamedEntityResponse
from auth.dependencies import require_admin
from auth.models import Caller
from catalog.models import Book
from catalog.service import CatalogService

router = APIRouter(prefix="/admin")


def _catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def _book_response(book: Book) -> BookResponse:
    return BookResponse(
        isbn=book.isbn,
        title=book.title,
        author_id=book.author_id,
        publisher_id=book.publisher_id,
        publication_year=book.publication_year,
        publication_month=book.publication_month,
    )


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------


@router.post("/author", response_model=NamedEntityResponse, status_code=201)
def register_author(request: Request, body: NameRequest, caller: Caller = Depends(require_admin)):
    return NamedEntityResponse.from_entity(_catalog(request).register_author(caller, body.name))


@router.put("/author/{author_id}", response_model=NamedEntityResponse)
def update_author(request: Request, author_id: int, body: NameRequest, caller: Caller = Depends(require_admin)):
    return NamedEntityResponse.from_entity(_catalog(request).update_author(caller, author_id, body.name))


@router.delete("/author/{author_id}", response_model=MessageResponse)
def delete_author(request: Request, author_id: int, caller: Caller = Depends(require_admin)):
    _catalog(request).delete_author(caller, author_id)
    return MessageResponse(message="Deleted.")


# ---------------------------------------------------------------------------
# Publishers
# ---------------------------------------------------------------------------


@router.post("/publisher", response_model=NamedEntityResponse, status_code=201)
def register_publisher(request: Request, body: NameRequest, caller: Caller = Depends(require_admin)):
    return NamedEntityResponse.from_entity(_catalog(request).register_publisher(caller, body.name))


@router.put("/publisher/{publisher_id}", response_model=NamedEntityResponse)
def update_publisher(request: Request, publisher_id: int, body: NameRequest, caller: Caller = Depends(require_admin)):
    return NamedEntityResponse.from_entity(_catalog(request).update_publisher(caller, publisher_id, body.name))


@router.delete("/publisher/{publisher_id}", response_model=MessageResponse)
def delete_publisher(request: Request, publisher_id: int, caller: Caller = Depends(require_admin)):
    _catalog(request).delete_publisher(caller, publisher_id)
    return MessageResponse(message="Deleted.")


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


@router.post("/book", response_model=BookResponse, status_code=201)
def register_book(request: Request, body: BookCreate, caller: Caller = Depends(require_admin)):
    book = _catalog(request).register_book(
        caller,
        body.isbn,
        body.title,
        body.author_id,
        body.publisher_id,
        body.publication_year,
        body.publication_month,
    )
    return _book_response(book)


@router.put("/book/{isbn}", response_model=BookResponse)
def update_book(request: Request, isbn: int, body: BookFields, caller: Caller = Depends(require_admin)):
    book = _catalog(request).update_book(
        caller,
        isbn,
        body.title,
        body.author_id,
        body.publisher_id,
        body.publication_year,
        body.publication_month,
    )
    return _book_response(book)


@router.delete("/book/{isbn}", response_model=MessageResponse)
def delete_book(request: Request, isbn: int, caller: Caller = Depends(require_admin)):
    _catalog(request).delete_book(caller, isbn)
    return MessageResponse(message="Deleted.")
