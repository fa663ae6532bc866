"""
Loan and stock consistency rules.

Pure functions over already-fetched data; the repositories do the I/O.

- calculator: available/loaned copies for one book
- lifecycle: creating loans and recording returns
- summary: catalog-wide totals for the dashboard
"""

from .calculator import BookStock, compute_book_stock, effective_total_copies
from .errors import InsufficientStockError, LoanError, LoanStateError, LoanValidationError
from .lifecycle import (
    apply_return,
    check_availability,
    make_borrower,
    open_loan,
    pending_quantity,
    status_for,
)
from .summary import StockSummary, compute_stock_summary, group_active_loans

__all__ = [
    "BookStock",
    "InsufficientStockError",
    "LoanError",
    "LoanStateError",
    "LoanValidationError",
    "StockSummary",
    "apply_return",
    "check_availability",
    "compute_book_stock",
    "compute_stock_summary",
    "effective_total_copies",
    "group_active_loans",
    "make_borrower",
    "open_loan",
    "pending_quantity",
    "status_for",
]
