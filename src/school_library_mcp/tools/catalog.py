"""Catalog Tools - Book Management

Tools:
- lookup_book: Find title and authors for an ISBN
- add_book: Add a title with its number of copies; the title can come from
  an ISBN lookup of the barcode
- update_book: Change title, barcode or copy count
- delete_book: Remove a title (its loans stay on record)
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..book_lookup import BookInfo, BookLookupError, lookup_book_by_isbn
from ..config import get_config
from ..database.book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from ..database.repository import NotFoundError
from ..observability.decorators import trace_tool
from .common import (
    format_error_response,
    format_success_response,
    log_operation,
    parse_arguments,
    run_tool,
)

BOOK_ID_PATTERN = r"^book_[a-zA-Z0-9_]{6,}$"


class AddBookInput(BaseModel):
    """Input schema for adding a book."""

    title: str | None = Field(
        default=None,
        min_length=1,
        max_length=500,
        description="Looked up from the barcode as an ISBN when omitted",
        examples=["O Pequeno Príncipe"],
    )
    barcode: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Barcode printed on the copies, usually the ISBN",
        examples=["9788595081512"],
    )
    total_copies: int = Field(
        default=1, ge=0, description="Number of physical copies the school owns"
    )
    school_id: str | None = Field(
        default=None,
        description="Owning school. Defaults to the server's configured school.",
        pattern=r"^school_[a-zA-Z0-9_]{6,}$",
    )

    @field_validator("title", "barcode")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v


class UpdateBookInput(BaseModel):
    """Input schema for updating a book. Only the given fields change."""

    book_id: str = Field(..., pattern=BOOK_ID_PATTERN)
    title: str | None = Field(default=None, min_length=1, max_length=500)
    barcode: str | None = Field(default=None, min_length=1, max_length=50)
    total_copies: int | None = Field(
        default=None,
        ge=0,
        description="New copy count. Loans are untouched; stock is re-derived.",
    )


class DeleteBookInput(BaseModel):
    book_id: str = Field(..., pattern=BOOK_ID_PATTERN)


class LookupBookInput(BaseModel):
    isbn: str = Field(..., min_length=10, max_length=20, examples=["978-85-95081-51-2"])


def _book_data(session: Session, book_id: str) -> dict[str, Any]:
    stock = BookRepository(session).get_with_stock(
        book_id, low_stock_threshold=get_config().low_stock_threshold
    )
    return {"book": stock.model_dump(mode="json")}


async def _lookup(isbn: str, operation: str) -> BookInfo | dict[str, Any] | None:
    """Book data for ``isbn``, or the error response to return instead."""
    try:
        return await lookup_book_by_isbn(isbn)
    except BookLookupError as e:
        log_operation(f"{operation}_failed", isbn=isbn, error_type="lookup", error_details=e)
        return format_error_response("Operation failed", str(e))


@trace_tool("lookup_book")
async def lookup_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Look up an ISBN and report whether the catalog already holds it."""
    params = parse_arguments(LookupBookInput, arguments, "lookup_book")
    if isinstance(params, dict):
        return params

    info = await _lookup(params.isbn, "lookup_book")
    if isinstance(info, dict):
        return info
    if info is None:
        return format_error_response("Not found", f"No book found for ISBN {params.isbn}")

    def work(session: Session) -> dict[str, Any]:
        existing = BookRepository(session).get_by_barcode(
            info.isbn, school_id=get_config().default_school_id
        )
        message = f"Found '{info.title}'"
        if info.authors:
            message += f" by {', '.join(info.authors)}"
        message += f" for ISBN {info.isbn}."
        if existing is not None:
            message += f" Already in the catalog as {existing.id}."
        return format_success_response(
            message,
            {
                "book_info": info.model_dump(mode="json"),
                "catalog_book_id": existing.id if existing else None,
            },
        )

    return run_tool("lookup_book", work, isbn=info.isbn)


@trace_tool("add_book")
async def add_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Add a book to the catalog. Barcodes are unique within a school."""
    params = parse_arguments(AddBookInput, arguments, "add_book")
    if isinstance(params, dict):
        return params

    if params.title is None:
        info = await _lookup(params.barcode, "add_book")
        if isinstance(info, dict):
            return info
        if info is None:
            return format_error_response(
                "Invalid parameters",
                f"title: not given and no book found for ISBN {params.barcode}",
            )
        params = params.model_copy(update={"title": info.title})

    def work(session: Session) -> dict[str, Any]:
        book = BookRepository(session).create(BookCreateSchema(**params.model_dump()))
        return format_success_response(
            f"Added '{book.title}' ({book.id}) with {book.total_copies} copies.",
            _book_data(session, book.id),
        )

    return run_tool("add_book", work, title=params.title, barcode=params.barcode)


@trace_tool("update_book")
async def update_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Update a book's details or copy count."""
    params = parse_arguments(UpdateBookInput, arguments, "update_book")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        changes = params.model_dump(exclude={"book_id"}, exclude_unset=True)
        book = BookRepository(session).update(params.book_id, BookUpdateSchema(**changes))
        data = _book_data(session, book.id)

        message = f"Updated '{book.title}' ({book.id})."
        overcommitted = data["book"]["overcommitted_copies"]
        if overcommitted:
            message += f" Warning: {overcommitted} more copies are on loan than the new total."
        return format_success_response(message, data)

    return run_tool("update_book", work, book_id=params.book_id)


@trace_tool("delete_book")
async def delete_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Delete a book. Loans for it remain in the ledger."""
    params = parse_arguments(DeleteBookInput, arguments, "delete_book")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        repo = BookRepository(session)
        book = repo.get_by_id(params.book_id)
        if book is None or not repo.delete(params.book_id):
            raise NotFoundError(f"Book {params.book_id} not found")
        return format_success_response(
            f"Deleted '{book.title}' ({book.id}).",
            {"book": book.model_dump(mode="json")},
        )

    return run_tool("delete_book", work, book_id=params.book_id)


lookup_book = {
    "name": "lookup_book",
    "description": (
        "Look up a book's title, authors and publisher by ISBN in Google Books, and "
        "say whether the catalog already has a book with that barcode."
    ),
    "inputSchema": LookupBookInput.model_json_schema(),
    "handler": lookup_book_handler,
}

add_book = {
    "name": "add_book",
    "description": (
        "Add a book to the school's catalog with its number of copies (default 1). "
        "Without a title, the barcode is looked up as an ISBN to fill it in. "
        "Available and loaned copies are always derived from the loans."
    ),
    "inputSchema": AddBookInput.model_json_schema(),
    "handler": add_book_handler,
}

update_book = {
    "name": "update_book",
    "description": (
        "Update a book's title, barcode or total number of copies. Changing the copy "
        "count changes the derived stock immediately."
    ),
    "inputSchema": UpdateBookInput.model_json_schema(),
    "handler": update_book_handler,
}

delete_book = {
    "name": "delete_book",
    "description": (
        "Delete a book from the catalog. Its loan records are kept but no longer count "
        "towards any stock figure. Storytelling sessions for the book are deleted."
    ),
    "inputSchema": DeleteBookInput.model_json_schema(),
    "handler": delete_book_handler,
}
