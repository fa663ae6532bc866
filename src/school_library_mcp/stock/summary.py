"""
Catalog-wide stock summary.

Totals and the low-stock count all come from the same per-book
``BookStock`` values, computed once per book in a single pass.
"""

from collections import defaultdict
from collections.abc import Iterable

from pydantic import BaseModel, Field

from ..models.book import Book
from ..models.loan import ACTIVE_LOAN_STATUSES, Loan
from .calculator import compute_book_stock

DEFAULT_LOW_STOCK_THRESHOLD = 5


class StockSummary(BaseModel):
    """Stock statistics for a whole catalog."""

    total_books: int = Field(..., description="Titles in the catalog")
    total_stock: int = Field(..., description="Physical copies owned")
    total_available: int = Field(..., description="Copies on the shelf")
    total_loaned: int = Field(..., description="Owned copies out on loan")
    low_stock_count: int = Field(..., description="Titles at or below the low-stock threshold")
    total_overcommitted: int = Field(
        default=0,
        description="Copies lent beyond what the library owns",
    )


def group_active_loans(loans: Iterable[Loan]) -> dict[str, list[Loan]]:
    """Group loans that still have copies out by ``book_id``."""
    grouped: dict[str, list[Loan]] = defaultdict(list)
    for loan in loans:
        if loan.status in ACTIVE_LOAN_STATUSES:
            grouped[loan.book_id].append(loan)
    return grouped


def compute_stock_summary(
    books: Iterable[Book],
    loans: Iterable[Loan],
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> StockSummary:
    """
    Fold ``compute_book_stock`` over the catalog.

    Loans for books not in ``books`` are ignored. Copies lent beyond a book's
    ``total_copies`` are reported in ``total_overcommitted`` rather than
    ``total_loaned``, so ``total_available + total_loaned == total_stock``
    always holds.
    """
    loans_by_book = group_active_loans(loans)

    total_books = 0
    total_stock = 0
    total_available = 0
    total_loaned = 0
    total_overcommitted = 0
    low_stock_count = 0

    for book in books:
        stock = compute_book_stock(book, loans_by_book.get(book.id, ()))

        total_books += 1
        total_stock += stock.total_copies
        total_available += stock.available
        total_loaned += stock.loaned - stock.overcommitted
        total_overcommitted += stock.overcommitted
        if stock.is_low(low_stock_threshold):
            low_stock_count += 1

    return StockSummary(
        total_books=total_books,
        total_stock=total_stock,
        total_available=total_available,
        total_loaned=total_loaned,
        low_stock_count=low_stock_count,
        total_overcommitted=total_overcommitted,
    )
