"""
Per-book stock calculation.

Availability is never stored. It is derived from a book's authoritative
``total_copies`` and the loans that still have copies out.
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from ..models.book import Book
from ..models.loan import ACTIVE_LOAN_STATUSES, Loan

# Storage default for books created without a copy count
DEFAULT_TOTAL_COPIES = 1


class BookStock(BaseModel):
    """Derived copy counts for one book."""

    model_config = ConfigDict(frozen=True)

    book_id: str | None = None
    total_copies: int = Field(..., ge=0)
    available: int = Field(..., ge=0, description="Copies on the shelf")
    loaned: int = Field(..., ge=0, description="Copies out on active loans")
    overcommitted: int = Field(
        default=0,
        ge=0,
        description="Copies lent beyond total_copies",
    )

    def is_low(self, threshold: int) -> bool:
        return self.available <= threshold


def effective_total_copies(book: Book) -> int:
    """Copy count to use for a book, treating a missing value as the storage default."""
    if book.total_copies is None:
        return DEFAULT_TOTAL_COPIES
    return max(0, book.total_copies)


def outstanding_copies(loan: Loan) -> int:
    """Copies still out on one loan. Zero for returned loans."""
    if loan.status not in ACTIVE_LOAN_STATUSES:
        return 0
    return max(0, loan.taken_quantity - loan.returned_quantity)


def compute_book_stock(book: Book, loans: Iterable[Loan]) -> BookStock:
    """
    Derive available and loaned copies for ``book``.

    Args:
        book: The book; only ``id`` and ``total_copies`` are read
        loans: Loans for this book. Returned loans are ignored.

    Returns:
        BookStock with ``available == max(0, total - loaned)``
    """
    total = effective_total_copies(book)
    loaned = sum(outstanding_copies(loan) for loan in loans)

    return BookStock(
        book_id=book.id,
        total_copies=total,
        available=max(0, total - loaned),
        loaned=loaned,
        overcommitted=max(0, loaned - total),
    )
