"""
tests/test_books_api.py -- Integration tests for book listing and detail.

The module gets its own in-memory database (api_client is module-scoped), so
the twelve books created by the catalog fixture are the whole catalog.

Coverage:
  - Page size 5 over 12 active books -> lastPage 3, last page holds 2
  - Ordering: publication month desc, then year desc
  - Page past the end: empty list, current echoed, lastPage unchanged
  - Page 0 and non-numeric page -> 400
  - Soft-deleted books drop out of the list
  - Detail: zero-padded publication_year_month, unknown isbn 404
  - Listing requires authentication
"""

from __future__ import annotations

import pytest

FIRST_ISBN = 9781000000001


@pytest.fixture(scope="module")
def seeded(api_client):
    """Twelve books published January..December 2001, plus one withdrawn book."""
    ctx = api_client
    author = ctx.client.post("/api/v1/admin/author", json={"name": "List Author"}, headers=ctx.admin_headers).json()
    publisher = ctx.client.post(
        "/api/v1/admin/publisher", json={"name": "List Press"}, headers=ctx.admin_headers
    ).json()
    for month in range(1, 13):
        resp = ctx.client.post(
            "/api/v1/admin/book",
            json={
                "isbn": FIRST_ISBN + month,
                "title": f"Book {month:02d}",
                "author_id": author["id"],
                "publisher_id": publisher["id"],
                "publication_year": 2001,
                "publication_month": month,
            },
            headers=ctx.admin_headers,
        )
        assert resp.status_code == 201, resp.text

    withdrawn = FIRST_ISBN + 100
    ctx.client.post(
        "/api/v1/admin/book",
        json={
            "isbn": withdrawn,
            "title": "Withdrawn",
            "author_id": author["id"],
            "publisher_id": publisher["id"],
            "publication_year": 2001,
            "publication_month": 12,
        },
        headers=ctx.admin_headers,
    )
    ctx.client.delete(f"/api/v1/admin/book/{withdrawn}", headers=ctx.admin_headers)
    return ctx


class TestBookList:
    def test_first_page(self, seeded) -> None:
        resp = seeded.client.get("/api/v1/book/list", headers=seeded.reader_headers)
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["current"] == 1
        assert data["lastPage"] == 3
        assert [b["title"] for b in data["books"]] == ["Book 12", "Book 11", "Book 10", "Book 09", "Book 08"]
        first = data["books"][0]
        assert first["author"] == {"name": "List Author"}
        assert first["publication_year_month"] == "2001-12"

    def test_explicit_page_one_matches_default(self, seeded) -> None:
        default = seeded.client.get("/api/v1/book/list", headers=seeded.reader_headers).json()
        explicit = seeded.client.get("/api/v1/book/list/1", headers=seeded.reader_headers).json()
        assert default == explicit

    def test_last_page_is_partial(self, seeded) -> None:
        data = seeded.client.get("/api/v1/book/list/3", headers=seeded.reader_headers).json()
        assert data["current"] == 3
        assert [b["title"] for b in data["books"]] == ["Book 02", "Book 01"]

    def test_page_past_end_is_empty(self, seeded) -> None:
        resp = seeded.client.get("/api/v1/book/list/4", headers=seeded.reader_headers)
        assert resp.status_code == 200
        assert resp.json() == {"current": 4, "lastPage": 3, "books": []}

    def test_page_beyond_64_bits_is_empty(self, seeded) -> None:
        resp = seeded.client.get("/api/v1/book/list/100000000000000000000", headers=seeded.reader_headers)
        assert resp.status_code == 200
        assert resp.json() == {"current": 100000000000000000000, "lastPage": 3, "books": []}

    def test_withdrawn_book_not_listed(self, seeded) -> None:
        titles = []
        for page in (1, 2, 3):
            data = seeded.client.get(f"/api/v1/book/list/{page}", headers=seeded.reader_headers).json()
            titles.extend(b["title"] for b in data["books"])
        assert len(titles) == 12
        assert "Withdrawn" not in titles

    @pytest.mark.parametrize("page", ["0", "-1", "abc"])
    def test_invalid_page_is_400(self, seeded, page: str) -> None:
        resp = seeded.client.get(f"/api/v1/book/list/{page}", headers=seeded.reader_headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_list_requires_auth(self, seeded) -> None:
        assert seeded.client.get("/api/v1/book/list").status_code == 401


class TestBookDetail:
    def test_detail(self, seeded) -> None:
        resp = seeded.client.get(f"/api/v1/book/detail/{FIRST_ISBN + 3}", headers=seeded.reader_headers)
        assert resp.status_code == 200
        assert resp.json() == {
            "isbn": FIRST_ISBN + 3,
            "title": "Book 03",
            "author": {"name": "List Author"},
            "publisher": {"name": "List Press"},
            "publication_year_month": "2001-03",
        }

    def test_unknown_isbn_is_404(self, seeded) -> None:
        resp = seeded.client.get("/api/v1/book/detail/1234567890123", headers=seeded.reader_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "book_not_found"
