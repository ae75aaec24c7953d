"""
api/routes/v1/books.py -- Catalog browsing and rental routes for logged-in users.

Routes:
  GET /api/v1/book/list              -- first page of active books
  GET /api/v1/book/list/{page}       -- 1-based page of active books
  GET /api/v1/book/detail/{isbn}     -- one book, withdrawn books included
  POST /api/v1/book/rental           -- check out a book  {book_id}
  PUT  /api/v1/book/return           -- return a rental   {id}

All routes require an authenticated caller. Domain failures are raised by the
services as core.errors.LibraryError and rendered by the handler in
api/main.py (404 / 409 / 403).
"""

from fastapi import APIRouter, Depends, Request

from api.models import (
    BookDetailResponse,
    BookListResponse,
    CheckoutResponse,
    RentalRequest,
    ReturnRequest,
    ReturnResponse,
)
from auth.dependencies import get_caller
from auth.models import Caller
from catalog.service import CatalogService
from rentals.service import RentalService

router = APIRouter(prefix="/book")


# ---------------------------------------------------------------------------
# Catalog browsing
# ---------------------------------------------------------------------------


@router.get("/list", response_model=BookListResponse)
@router.get("/list/{page}", response_model=BookListResponse)
def list_books(request: Request, page: int = 1, caller: Caller = Depends(get_caller)) -> BookListResponse:
    """Active books ordered by publication month, then year, newest first."""
    catalog: CatalogService = request.app.state.catalog
    return BookListResponse.from_page(catalog.list_books(caller, page))


@router.get("/detail/{isbn}", response_model=BookDetailResponse)
def book_detail(request: Request, isbn: int, caller: Caller = Depends(get_caller)) -> BookDetailResponse:
    catalog: CatalogService = request.app.state.catalog
    return BookDetailResponse.from_detail(catalog.get_book_detail(caller, isbn))


# ---------------------------------------------------------------------------
# Rentals
# ---------------------------------------------------------------------------


@router.post("/rental", response_model=CheckoutResponse)
def checkout(request: Request, body: RentalRequest, caller: Caller = Depends(get_caller)) -> CheckoutResponse:
    """Check out a book for the caller. 409 if the book is already out."""
    rentals: RentalService = request.app.state.rentals
    record = rentals.checkout(caller, body.book_id)
    return CheckoutResponse(id=record.id, checkout_date=record.checkout_date, due_date=record.due_date)


@router.put("/return", response_model=ReturnResponse)
def return_book(request: Request, body: ReturnRequest, caller: Caller = Depends(get_caller)) -> ReturnResponse:
    """Return one of the caller's open rentals."""
    rentals: RentalService = request.app.state.rentals
    record = rentals.return_book(caller, body.id)
    return ReturnResponse(id=record.id, returned_date=record.returned_date)
