"""Book Resources - Catalog with Derived Stock

Every book is returned with its available and loaned copies as derived from
the active loans at read time.

Resources:
- library://books/list - Paginated catalog
- library://books/{book_id} - One book by ID
- library://books/barcode/{barcode} - One book by barcode
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError
from pydantic import BaseModel, Field

from ..config import get_config
from ..database.book_repository import BookRepository, BookSortOptions, BookWithStock
from ..database.repository import PaginationParams
from ..database.session import session_scope
from ..observability.decorators import trace_resource

logger = logging.getLogger(__name__)


class BookListParams(BaseModel):
    """Parameters for book list filtering and pagination."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(default=50, ge=1, le=500, description="Items per page")
    sort_by: BookSortOptions = Field(default=BookSortOptions.TITLE, description="Sort field")
    title: str | None = Field(default=None, description="Title contains")


class BookListResponse(BaseModel):
    """Response schema with books and pagination metadata."""

    books: list[BookWithStock] = Field(..., description="Books in this page with derived stock")
    total: int = Field(..., description="Total number of books matching filters")
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


@trace_resource("books.list")
async def list_books_handler() -> dict[str, Any]:
    """Returns the catalog, first page, sorted by title.

    Restricted to the configured school when one is set.
    """
    try:
        config = get_config()
        params = BookListParams(limit=min(50, config.max_page_size))

        logger.debug("MCP Resource Request - books/list: page=%d, limit=%d", params.page, params.limit)

        with session_scope() as session:
            result = BookRepository(session).list_with_stock(
                school_id=config.default_school_id,
                title=params.title,
                pagination=PaginationParams(page=params.page, page_size=params.limit),
                sort_by=params.sort_by,
                low_stock_threshold=config.low_stock_threshold,
            )

            response = BookListResponse(
                books=result.items,
                total=result.total,
                page=result.page,
                page_size=result.page_size,
                total_pages=result.total_pages,
                has_next=result.has_next,
                has_previous=result.has_previous,
            )
            return response.model_dump(mode="json")

    except Exception as e:
        logger.exception("Error in books/list resource")
        raise ResourceError(f"Failed to retrieve book list: {e!s}") from e


@trace_resource("books.detail")
async def get_book_handler(book_id: str) -> dict[str, Any]:
    """Returns one book with its derived stock."""
    try:
        logger.debug("MCP Resource Request - books/%s", book_id)

        with session_scope() as session:
            book = BookRepository(session).get_with_stock(
                book_id, low_stock_threshold=get_config().low_stock_threshold
            )
            if book is None:
                raise ResourceError(f"Book not found: {book_id}")
            return book.model_dump(mode="json")

    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in books/{book_id} resource")
        raise ResourceError(f"Failed to retrieve book details: {e!s}") from e


@trace_resource("books.barcode")
async def get_book_by_barcode_handler(barcode: str) -> dict[str, Any]:
    """Returns the book with this barcode, as scanned at the desk."""
    try:
        config = get_config()
        with session_scope() as session:
            repo = BookRepository(session)
            book = repo.get_by_barcode(barcode, school_id=config.default_school_id)
            if book is None:
                raise ResourceError(f"No book with barcode: {barcode}")
            return repo.with_stock(book, config.low_stock_threshold).model_dump(mode="json")

    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in books/barcode resource")
        raise ResourceError(f"Failed to look up barcode: {e!s}") from e


book_resources: list[dict[str, Any]] = [
    {
        "uri": "library://books/list",
        "name": "Book Catalog",
        "description": (
            "Browse the school's book catalog. Each book includes total, available and "
            "loaned copies derived from the active loans."
        ),
        "mime_type": "application/json",
        "handler": list_books_handler,
    },
    {
        "uri_template": "library://books/{book_id}",
        "name": "Book Details",
        "description": "Get one book by ID with its derived stock",
        "mime_type": "application/json",
        "handler": get_book_handler,
    },
    {
        "uri_template": "library://books/barcode/{barcode}",
        "name": "Book by Barcode",
        "description": "Look up a book by the barcode printed on its copies",
        "mime_type": "application/json",
        "handler": get_book_by_barcode_handler,
    },
]
