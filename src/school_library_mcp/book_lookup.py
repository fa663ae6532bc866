"""
ISBN lookup against the Google Books volumes API.

The barcode on most library copies is the ISBN, so a scanned barcode is
enough to fill in a title before the book is added to the catalog. Only the
first volume returned is used.
"""

import logging
import re

import httpx
from pydantic import BaseModel, Field

from .config import get_config

logger = logging.getLogger(__name__)


class BookInfo(BaseModel):
    """Bibliographic data found for an ISBN."""

    isbn: str
    title: str
    authors: list[str] = Field(default_factory=list)
    publisher: str | None = None
    published_date: str | None = None
    description: str | None = None


class BookLookupError(Exception):
    """The book data service could not be reached or answered with an error."""


def clean_isbn(isbn: str) -> str:
    """Keep the digits and the ISBN-10 check character X."""
    return re.sub(r"[^\dX]", "", isbn.upper())


def parse_volumes(isbn: str, payload: dict) -> BookInfo | None:
    items = payload.get("items") or []
    if not payload.get("totalItems") or not items:
        return None

    volume = items[0].get("volumeInfo") or {}
    if not volume.get("title"):
        return None

    return BookInfo(
        isbn=isbn,
        title=volume["title"],
        authors=volume.get("authors") or [],
        publisher=volume.get("publisher"),
        published_date=volume.get("publishedDate"),
        description=volume.get("description"),
    )


async def lookup_book_by_isbn(
    isbn: str, client: httpx.AsyncClient | None = None
) -> BookInfo | None:
    """
    Find the book with this ISBN.

    Args:
        isbn: ISBN or barcode as printed; separators are ignored
        client: Client to send the request with. A short-lived one is
            created from the configured timeout when omitted.

    Returns:
        The book data, or None when the ISBN is empty or unknown

    Raises:
        BookLookupError: On network failures, error statuses or bad JSON
    """
    cleaned = clean_isbn(isbn)
    if not cleaned:
        return None

    config = get_config()
    params = {"q": f"isbn:{cleaned}"}
    if config.external_api_key:
        params["key"] = config.external_api_key

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.book_lookup_timeout) as owned_client:
                response = await owned_client.get(config.book_lookup_url, params=params)
        else:
            response = await client.get(config.book_lookup_url, params=params)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPError as e:
        logger.warning("Book lookup for ISBN %s failed: %s", cleaned, e)
        raise BookLookupError(f"Book lookup for ISBN {cleaned} failed: {e!s}") from e
    except ValueError as e:
        logger.warning("Book lookup for ISBN %s returned invalid JSON", cleaned)
        raise BookLookupError(f"Book lookup for ISBN {cleaned} returned invalid data") from e

    info = parse_volumes(cleaned, payload)
    if info is None:
        logger.info("No book found for ISBN %s", cleaned)
    return info
