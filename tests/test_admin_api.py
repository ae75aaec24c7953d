"""
tests/test_admin_api.py -- Integration tests for the admin catalog routes and search.

These tests exercise the full stack: FastAPI routing -> require_admin
dependency -> CatalogService rules -> CatalogStore guards -> response model
serialization and the error envelope.

Coverage:
  - Auth failures: 401 without credentials, 403 for a non-admin reader
  - Author/publisher: create 201, duplicate 409, rename, same-name 409,
    delete, delete twice 409, delete while referenced 409, name reuse after delete
  - Book: create 201, duplicate isbn 409, deleted author reference 409,
    month out of range 400, update, delete, deleted detail still visible
  - Search: substring match, deleted rows hidden, blank keyword 400
"""

from __future__ import annotations

import itertools

_isbns = itertools.count(9780000000001)


def _create_author(ctx, name: str) -> int:
    resp = ctx.client.post("/api/v1/admin/author", json={"name": name}, headers=ctx.admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _create_publisher(ctx, name: str) -> int:
    resp = ctx.client.post("/api/v1/admin/publisher", json={"name": name}, headers=ctx.admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _book_body(author_id: int, publisher_id: int, **overrides) -> dict:
    body = {
        "isbn": next(_isbns),
        "title": "A Wizard of Earthsea",
        "author_id": author_id,
        "publisher_id": publisher_id,
        "publication_year": 1968,
        "publication_month": 11,
    }
    body.update(overrides)
    return body


class TestAdminAuth:
    def test_create_author_unauthenticated(self, api_client) -> None:
        resp = api_client.client.post("/api/v1/admin/author", json={"name": "Nobody"})
        assert resp.status_code == 401

    def test_create_author_as_reader_forbidden(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/admin/author", json={"name": "Nobody"}, headers=api_client.reader_headers
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_delete_book_as_reader_forbidden(self, api_client) -> None:
        resp = api_client.client.delete("/api/v1/admin/book/9780000000001", headers=api_client.reader_headers)
        assert resp.status_code == 403


class TestAuthors:
    def test_create_and_duplicate(self, api_client) -> None:
        _create_author(api_client, "Octavia Butler")
        resp = api_client.client.post(
            "/api/v1/admin/author", json={"name": "Octavia Butler"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "author_exists"

    def test_blank_name_is_400(self, api_client) -> None:
        resp = api_client.client.post("/api/v1/admin/author", json={"name": "  "}, headers=api_client.admin_headers)
        assert resp.status_code == 400

    def test_rename(self, api_client) -> None:
        author_id = _create_author(api_client, "J. Tolkien")
        resp = api_client.client.put(
            f"/api/v1/admin/author/{author_id}", json={"name": "J.R.R. Tolkien"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"id": author_id, "name": "J.R.R. Tolkien"}

    def test_rename_to_same_name_conflict(self, api_client) -> None:
        author_id = _create_author(api_client, "Iain Banks")
        resp = api_client.client.put(
            f"/api/v1/admin/author/{author_id}", json={"name": "Iain Banks"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "name_unchanged"

    def test_rename_to_taken_name_conflict(self, api_client) -> None:
        _create_author(api_client, "Taken Name")
        author_id = _create_author(api_client, "Free Name")
        resp = api_client.client.put(
            f"/api/v1/admin/author/{author_id}", json={"name": "Taken Name"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "author_exists"

    def test_rename_missing_is_404(self, api_client) -> None:
        resp = api_client.client.put(
            "/api/v1/admin/author/999999", json={"name": "Ghost"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "author_not_found"

    def test_rename_id_beyond_64_bits_is_400(self, api_client) -> None:
        resp = api_client.client.put(
            f"/api/v1/admin/author/{10**20}", json={"name": "Ghost"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_delete_twice_conflict_and_name_reusable(self, api_client) -> None:
        author_id = _create_author(api_client, "Short-Lived")
        first = api_client.client.delete(f"/api/v1/admin/author/{author_id}", headers=api_client.admin_headers)
        assert first.status_code == 200

        second = api_client.client.delete(f"/api/v1/admin/author/{author_id}", headers=api_client.admin_headers)
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "already_deleted"

        # Soft-deleted names do not block re-registration.
        assert _create_author(api_client, "Short-Lived") != author_id

    def test_delete_referenced_author_conflict(self, api_client) -> None:
        author_id = _create_author(api_client, "Busy Author")
        publisher_id = _create_publisher(api_client, "Busy Author Press")
        body = _book_body(author_id, publisher_id)
        assert api_client.client.post("/api/v1/admin/book", json=body, headers=api_client.admin_headers).status_code == 201

        resp = api_client.client.delete(f"/api/v1/admin/author/{author_id}", headers=api_client.admin_headers)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "author_in_use"

        # Once the book is withdrawn the author can go.
        api_client.client.delete(f"/api/v1/admin/book/{body['isbn']}", headers=api_client.admin_headers)
        resp = api_client.client.delete(f"/api/v1/admin/author/{author_id}", headers=api_client.admin_headers)
        assert resp.status_code == 200


class TestPublishers:
    def test_create_rename_delete(self, api_client) -> None:
        publisher_id = _create_publisher(api_client, "Ace")
        resp = api_client.client.put(
            f"/api/v1/admin/publisher/{publisher_id}", json={"name": "Ace Books"}, headers=api_client.admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Ace Books"

        resp = api_client.client.delete(f"/api/v1/admin/publisher/{publisher_id}", headers=api_client.admin_headers)
        assert resp.status_code == 200

    def test_delete_missing_is_404(self, api_client) -> None:
        resp = api_client.client.delete("/api/v1/admin/publisher/999999", headers=api_client.admin_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "publisher_not_found"

    def test_delete_referenced_publisher_conflict(self, api_client) -> None:
        author_id = _create_author(api_client, "Press Author")
        publisher_id = _create_publisher(api_client, "Busy Press")
        body = _book_body(author_id, publisher_id)
        api_client.client.post("/api/v1/admin/book", json=body, headers=api_client.admin_headers)

        resp = api_client.client.delete(f"/api/v1/admin/publisher/{publisher_id}", headers=api_client.admin_headers)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "publisher_in_use"


class TestBooks:
    def test_create_book(self, api_client) -> None:
        author_id = _create_author(api_client, "Ursula K. Le Guin")
        publisher_id = _create_publisher(api_client, "Parnassus")
        body = _book_body(author_id, publisher_id)
        resp = api_client.client.post("/api/v1/admin/book", json=body, headers=api_client.admin_headers)
        assert resp.status_code == 201, resp.text
        assert resp.json()["isbn"] == body["isbn"]

        dup = api_client.client.post("/api/v1/admin/book", json=body, headers=api_client.admin_headers)
        assert dup.status_code == 409
        assert dup.json()["error"]["code"] == "isbn_exists"

    def test_create_with_deleted_author_conflict(self, api_client) -> None:
        author_id = _create_author(api_client, "Gone Author")
        publisher_id = _create_publisher(api_client, "Still Here Press")
        api_client.client.delete(f"/api/v1/admin/author/{author_id}", headers=api_client.admin_headers)

        resp = api_client.client.post(
            "/api/v1/admin/book", json=_book_body(author_id, publisher_id), headers=api_client.admin_headers
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "author_not_found"

    def test_create_with_unknown_publisher_conflict(self, api_client) -> None:
        author_id = _create_author(api_client, "Lonely Author")
        resp = api_client.client.post(
            "/api/v1/admin/book", json=_book_body(author_id, 999999), headers=api_client.admin_headers
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "publisher_not_found"

    def test_month_out_of_range_is_400(self, api_client) -> None:
        author_id = _create_author(api_client, "Month Author")
        publisher_id = _create_publisher(api_client, "Month Press")
        resp = api_client.client.post(
            "/api/v1/admin/book",
            json=_book_body(author_id, publisher_id, publication_month=13),
            headers=api_client.admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_update_book(self, api_client) -> None:
        author_id = _create_author(api_client, "Update Author")
        publisher_id = _create_publisher(api_client, "Update Press")
        body = _book_body(author_id, publisher_id)
        api_client.client.post("/api/v1/admin/book", json=body, headers=api_client.admin_headers)

        new_fields = {k: v for k, v in body.items() if k != "isbn"}
        new_fields.update(title="The Tombs of Atuan", publication_year=1970, publication_month=3)
        resp = api_client.client.put(
            f"/api/v1/admin/book/{body['isbn']}", json=new_fields, headers=api_client.admin_headers
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["title"] == "The Tombs of Atuan"

        detail = api_client.client.get(f"/api/v1/book/detail/{body['isbn']}", headers=api_client.reader_headers)
        assert detail.json()["publication_year_month"] == "1970-03"

    def test_update_missing_book_is_404(self, api_client) -> None:
        author_id = _create_author(api_client, "Missing Book Author")
        publisher_id = _create_publisher(api_client, "Missing Book Press")
        fields = {k: v for k, v in _book_body(author_id, publisher_id).items() if k != "isbn"}
        resp = api_client.client.put("/api/v1/admin/book/1", json=fields, headers=api_client.admin_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "book_not_found"

    def test_delete_book_keeps_detail_visible(self, api_client) -> None:
        author_id = _create_author(api_client, "Withdrawn Author")
        publisher_id = _create_publisher(api_client, "Withdrawn Press")
        body = _book_body(author_id, publisher_id, title="Withdrawn Title")
        api_client.client.post("/api/v1/admin/book", json=body, headers=api_client.admin_headers)

        resp = api_client.client.delete(f"/api/v1/admin/book/{body['isbn']}", headers=api_client.admin_headers)
        assert resp.status_code == 200
        again = api_client.client.delete(f"/api/v1/admin/book/{body['isbn']}", headers=api_client.admin_headers)
        assert again.status_code == 409

        detail = api_client.client.get(f"/api/v1/book/detail/{body['isbn']}", headers=api_client.reader_headers)
        assert detail.status_code == 200
        assert detail.json()["title"] == "Withdrawn Title"
        assert detail.json()["author"]["name"] == "Withdrawn Author"
        assert detail.json()["publisher"]["name"] == "Withdrawn Press"


class TestSearch:
    def test_search_authors_substring(self, api_client) -> None:
        _create_author(api_client, "Searchable Sam")
        _create_author(api_client, "Searchable Sue")
        gone = _create_author(api_client, "Searchable Gone")
        api_client.client.delete(f"/api/v1/admin/author/{gone}", headers=api_client.admin_headers)

        resp = api_client.client.get(
            "/api/v1/search/author", params={"keyword": "Searchable"}, headers=api_client.reader_headers
        )
        assert resp.status_code == 200
        names = [a["name"] for a in resp.json()["authors"]]
        assert names == ["Searchable Sam", "Searchable Sue"]

    def test_search_publishers_no_match(self, api_client) -> None:
        resp = api_client.client.get(
            "/api/v1/search/publisher", params={"keyword": "zzz-no-such"}, headers=api_client.reader_headers
        )
        assert resp.status_code == 200
        assert resp.json() == {"publishers": []}

    def test_search_wildcards_are_literal(self, api_client) -> None:
        _create_publisher(api_client, "Percent % Press")
        resp = api_client.client.get(
            "/api/v1/search/publisher", params={"keyword": "%"}, headers=api_client.reader_headers
        )
        assert [p["name"] for p in resp.json()["publishers"]] == ["Percent % Press"]

    def test_blank_keyword_is_400(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/search/author", params={"keyword": ""}, headers=api_client.reader_headers)
        assert resp.status_code == 400

    def test_search_requires_auth(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/search/author", params={"keyword": "a"})
        assert resp.status_code == 401
