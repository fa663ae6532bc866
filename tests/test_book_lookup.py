"""Tests for the Google Books ISBN lookup."""

import httpx
import pytest

from school_library_mcp.book_lookup import (
    BookLookupError,
    clean_isbn,
    lookup_book_by_isbn,
    parse_volumes,
)


class TestCleanIsbn:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("978-85-95081-51-2", "9788595081512"),
            (" 85 7164 022 x ", "857164022X"),
            ("ISBN", ""),
        ],
    )
    def test_clean(self, raw, expected):
        assert clean_isbn(raw) == expected


class TestParseVolumes:
    def test_first_volume_used(self):
        payload = {
            "totalItems": 2,
            "items": [
                {"volumeInfo": {"title": "Primeiro", "authors": ["A"]}},
                {"volumeInfo": {"title": "Segundo"}},
            ],
        }
        info = parse_volumes("123", payload)
        assert info.title == "Primeiro"
        assert info.authors == ["A"]

    def test_no_items(self):
        assert parse_volumes("123", {"totalItems": 0}) is None

    def test_volume_without_title(self):
        assert parse_volumes("123", {"totalItems": 1, "items": [{"volumeInfo": {}}]}) is None


class TestLookupBookByIsbn:
    async def test_found(self, books_api):
        info = await lookup_book_by_isbn("978-85-95081-51-2")

        assert info.isbn == "9788595081512"
        assert info.title == "O Pequeno Príncipe"
        assert info.authors == ["Antoine de Saint-Exupéry"]
        assert info.published_date == "2018-04-02"
        assert books_api.requests[0].url.params["q"] == "isbn:9788595081512"

    async def test_unknown_isbn(self, books_api):
        assert await lookup_book_by_isbn("9780000000002") is None

    async def test_blank_isbn_skips_request(self, books_api):
        assert await lookup_book_by_isbn("---") is None
        assert books_api.requests == []

    async def test_api_key_sent_when_configured(self, books_api, use_config):
        use_config(external_api_key="secret-key")
        await lookup_book_by_isbn("9788595081512")
        assert books_api.requests[0].url.params["key"] == "secret-key"

    async def test_no_api_key_by_default(self, books_api):
        await lookup_book_by_isbn("9788595081512")
        assert "key" not in books_api.requests[0].url.params

    async def test_error_status(self, books_api):
        books_api.status_code = 503
        with pytest.raises(BookLookupError, match="9788595081512"):
            await lookup_book_by_isbn("9788595081512")

    async def test_network_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(BookLookupError, match="connection refused"):
                await lookup_book_by_isbn("9788595081512", client=client)

    async def test_invalid_json(self):
        def garbage(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(garbage)) as client:
            with pytest.raises(BookLookupError, match="invalid data"):
                await lookup_book_by_isbn("9788595081512", client=client)

    async def test_configured_endpoint(self, use_config):
        use_config(book_lookup_url="https://books.example.test/volumes")
        seen = []

        def record(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"totalItems": 0})

        async with httpx.AsyncClient(transport=httpx.MockTransport(record)) as client:
            await lookup_book_by_isbn("9788595081512", client=client)

        assert seen[0].startswith("https://books.example.test/volumes?")
