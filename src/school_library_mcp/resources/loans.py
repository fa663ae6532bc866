"""Loan Resources - The Loan Ledger

Resources:
- library://loans/active - Loans with copies still out (Loaned or Pending)
- library://loans/{loan_id} - One loan
- library://loans/student/{student_id} - A student's loan history
- library://loans/book/{book_id} - A book's loan history
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..config import get_config
from ..database.loan_repository import LoanRepository
from ..database.repository import PaginationParams
from ..database.session import session_scope
from ..models.loan import Loan
from ..observability.decorators import trace_resource

logger = logging.getLogger(__name__)


def _loan_entry(loan: Loan) -> dict[str, Any]:
    entry = loan.model_dump(mode="json")
    entry["pending_quantity"] = loan.outstanding_quantity
    return entry


def _history(loans: list[Loan]) -> dict[str, Any]:
    return {
        "loans": [_loan_entry(loan) for loan in loans],
        "count": len(loans),
        "active_count": sum(1 for loan in loans if loan.is_active),
        "copies_out": sum(loan.outstanding_quantity for loan in loans if loan.is_active),
    }


@trace_resource("loans.active")
async def list_active_loans_handler() -> dict[str, Any]:
    """Returns active loans, newest first."""
    try:
        config = get_config()
        with session_scope() as session:
            result = LoanRepository(session).get_active_loans(
                school_id=config.default_school_id,
                pagination=PaginationParams(page=1, page_size=config.max_page_size),
            )
            return {
                "loans": [_loan_entry(loan) for loan in result.items],
                "total": result.total,
                "page": result.page,
                "page_size": result.page_size,
                "has_next": result.has_next,
            }

    except Exception as e:
        logger.exception("Error in loans/active resource")
        raise ResourceError(f"Failed to retrieve active loans: {e!s}") from e


@trace_resource("loans.detail")
async def get_loan_handler(loan_id: str) -> dict[str, Any]:
    try:
        with session_scope() as session:
            loan = LoanRepository(session).get_by_id(loan_id)
            if loan is None:
                raise ResourceError(f"Loan not found: {loan_id}")
            return _loan_entry(loan)

    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in loans/{loan_id} resource")
        raise ResourceError(f"Failed to retrieve loan: {e!s}") from e


@trace_resource("loans.student")
async def get_student_loans_handler(student_id: str) -> dict[str, Any]:
    """Returns every loan a student has taken, newest first."""
    try:
        with session_scope() as session:
            loans = LoanRepository(session).get_loans_for_student(student_id)
            return {"student_id": student_id, **_history(loans)}

    except Exception as e:
        logger.exception("Error in loans/student resource")
        raise ResourceError(f"Failed to retrieve loans for student: {e!s}") from e


@trace_resource("loans.book")
async def get_book_loans_handler(book_id: str) -> dict[str, Any]:
    """Returns every loan of a book, newest first. Works for deleted books too."""
    try:
        with session_scope() as session:
            loans = LoanRepository(session).get_loans_for_book(book_id)
            return {"book_id": book_id, **_history(loans)}

    except Exception as e:
        logger.exception("Error in loans/book resource")
        raise ResourceError(f"Failed to retrieve loans for book: {e!s}") from e


loan_resources: list[dict[str, Any]] = [
    {
        "uri": "library://loans/active",
        "name": "Active Loans",
        "description": "Loans with copies still out (status Loaned or Pending), newest first",
        "mime_type": "application/json",
        "handler": list_active_loans_handler,
    },
    {
        "uri_template": "library://loans/{loan_id}",
        "name": "Loan Details",
        "description": "One loan with its taken, returned and pending quantities",
        "mime_type": "application/json",
        "handler": get_loan_handler,
    },
    {
        "uri_template": "library://loans/student/{student_id}",
        "name": "Student Loans",
        "description": "A student's loan history",
        "mime_type": "application/json",
        "handler": get_student_loans_handler,
    },
    {
        "uri_template": "library://loans/book/{book_id}",
        "name": "Book Loans",
        "description": "A book's loan history",
        "mime_type": "application/json",
        "handler": get_book_loans_handler,
    },
]
