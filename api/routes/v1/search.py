"""
api/routes/v1/search.py -- Author and publisher name search.

Routes:
  GET /api/v1/search/author?keyword=...
  GET /api/v1/search/publisher?keyword=...

Substring match on active records only. A blank keyword is a 400.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.models import AuthorSearchResponse, NamedEntityResponse, PublisherSearchResponse
from auth.dependencies import get_caller
from auth.models import Caller
from catalog.service import CatalogService

router = APIRouter(prefix="/search")


@router.get("/author", response_model=AuthorSearchResponse)
def search_authors(
    request: Request,
    keyword: str = Query(default="", max_length=255),
    caller: Caller = Depends(get_caller),
) -> AuthorSearchResponse:
    catalog: CatalogService = request.app.state.catalog
    found = catalog.search_authors(caller, keyword)
    return AuthorSearchResponse(authors=[NamedEntityResponse.from_entity(a) for a in found])


@router.get("/publisher", response_model=PublisherSearchResponse)
def search_publishers(
    request: Request,
    keyword: str = Query(default="", max_length=255),
    caller: Caller = Depends(get_caller),
) -> PublisherSearchResponse:
    catalog: CatalogService = request.app.state.catalog
    found = catalog.search_publishers(caller, keyword)
    return PublisherSearchResponse(publishers=[NamedEntityResponse.from_entity(p) for p in found])
