"""Statistics Resources - Stock and Dashboard

Exposes aggregated library figures.

Resources:
- library://stats/stock - Catalog-wide stock summary derived from the loans
- library://stats/dashboard - Totals, loans per grade and status, top borrowers
"""

import logging
from datetime import datetime
from typing import Any

from fastmcp.exceptions import ResourceError
from pydantic import BaseModel, Field

from ..config import get_config
from ..database.book_repository import BookRepository
from ..database.loan_repository import BorrowerLoanCount, LoanRepository
from ..database.session import session_scope
from ..database.student_repository import StudentRepository
from ..models.loan import LoanStatus
from ..observability.decorators import trace_resource
from ..stock import StockSummary

logger = logging.getLogger(__name__)

TOP_BORROWERS_LIMIT = 15


class StockStatsResponse(StockSummary):
    """Stock summary with the context it was computed in."""

    timestamp: str = Field(..., description="When stats were calculated (ISO format)")
    low_stock_threshold: int = Field(..., description="Available copies at or below which a book is low")
    school_id: str | None = None


class DashboardResponse(BaseModel):
    """Figures for the library dashboard."""

    timestamp: str = Field(..., description="When stats were calculated (ISO format)")
    school_id: str | None = None

    total_students: int
    total_books: int
    active_loans: int = Field(..., description="Loans with copies still out")
    total_loans: int = Field(..., description="Every loan on record")

    loans_by_grade: dict[str, int] = Field(..., description="Loans per school year")
    loans_by_status: dict[str, int] = Field(..., description="Loans per status")
    top_borrowers: list[BorrowerLoanCount] = Field(
        ..., description=f"Students with the most loans (top {TOP_BORROWERS_LIMIT})"
    )


@trace_resource("stats.stock")
async def get_stock_stats_handler() -> dict[str, Any]:
    """Returns stock totals: every figure is derived from the active loans."""
    try:
        config = get_config()
        with session_scope() as session:
            summary = BookRepository(session).stock_summary(
                school_id=config.default_school_id,
                low_stock_threshold=config.low_stock_threshold,
            )

        response = StockStatsResponse(
            **summary.model_dump(),
            timestamp=datetime.now().isoformat(),
            low_stock_threshold=config.low_stock_threshold,
            school_id=config.default_school_id,
        )
        return response.model_dump(mode="json")

    except Exception as e:
        logger.exception("Error in stats/stock resource")
        raise ResourceError(f"Failed to compute stock summary: {e!s}") from e


@trace_resource("stats.dashboard")
async def get_dashboard_stats_handler() -> dict[str, Any]:
    try:
        school_id = get_config().default_school_id
        with session_scope() as session:
            loans = LoanRepository(session)
            by_status = loans.count_by_status(school_id=school_id)

            response = DashboardResponse(
                timestamp=datetime.now().isoformat(),
                school_id=school_id,
                total_students=StudentRepository(session).count(school_id=school_id),
                total_books=BookRepository(session).count(school_id=school_id),
                active_loans=by_status[LoanStatus.LOANED.value]
                + by_status[LoanStatus.PENDING.value],
                total_loans=sum(by_status.values()),
                loans_by_grade={
                    str(grade): count
                    for grade, count in loans.count_by_grade(school_id=school_id).items()
                },
                loans_by_status=by_status,
                top_borrowers=loans.top_borrowers(TOP_BORROWERS_LIMIT, school_id=school_id),
            )
            return response.model_dump(mode="json")

    except Exception as e:
        logger.exception("Error in stats/dashboard resource")
        raise ResourceError(f"Failed to compute dashboard: {e!s}") from e


stats_resources: list[dict[str, Any]] = [
    {
        "uri": "library://stats/stock",
        "name": "Stock Summary",
        "description": (
            "Total titles, copies owned, copies available and on loan, and the number of "
            "titles at or below the low-stock threshold. Derived from the active loans."
        ),
        "mime_type": "application/json",
        "handler": get_stock_stats_handler,
    },
    {
        "uri": "library://stats/dashboard",
        "name": "Library Dashboard",
        "description": (
            "Students, books, active and total loans, loans per grade and per status, "
            f"and the {TOP_BORROWERS_LIMIT} students with the most loans"
        ),
        "mime_type": "application/json",
        "handler": get_dashboard_stats_handler,
    },
]
