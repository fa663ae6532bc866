"""Loan Tools - Lending and Returns

Write to the loan ledger. Stock is never written: every response reports
the book's stock as derived from the ledger after the change.

Tools:
- create_loan: Lend copies of a book to a student or a teacher
- register_return: Record how many copies (in total) have come back
- delete_loan: Remove a loan record
"""

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from ..config import get_config
from ..database.book_repository import BookRepository, BookWithStock
from ..database.loan_repository import LoanCreateSchema, LoanRepository
from ..models.loan import Loan, LoanStatus
from ..observability.decorators import trace_tool
from ..observability.metrics import record_loan_event
from .common import format_success_response, parse_arguments, run_tool

logger = logging.getLogger(__name__)


class CreateLoanInput(BaseModel):
    """Input schema for lending copies of a book."""

    book_id: str = Field(
        ...,
        description="ID of the book to lend",
        pattern=r"^book_[a-zA-Z0-9_]{6,}$",
        examples=["book_202401100001"],
    )

    student_id: str | None = Field(
        default=None,
        description="Borrowing student. Give either student_id or teacher_id.",
        pattern=r"^student_[a-zA-Z0-9_]{6,}$",
        examples=["student_202403010001"],
    )

    teacher_id: str | None = Field(
        default=None,
        description="Borrowing teacher. Give either student_id or teacher_id.",
        pattern=r"^teacher_[a-zA-Z0-9_]{6,}$",
        examples=["teacher_202403010001"],
    )

    taken_quantity: int = Field(
        default=1,
        description="Number of copies taken",
        ge=1,
        examples=[1, 30],
    )

    loan_date: date | None = Field(
        default=None,
        description="Date the copies were taken. Defaults to today.",
        examples=["2024-03-15"],
    )

    grade: int | None = Field(
        default=None, description="School year the copies are for (teacher loans)", ge=0, le=12
    )
    classroom: str | None = Field(default=None, max_length=20)
    shift: str | None = Field(default=None, max_length=20)

    @field_validator("loan_date")
    @classmethod
    def validate_loan_date(cls, v: date | None) -> date | None:
        if v is not None and v > date.today():
            raise ValueError("Loan date cannot be in the future")
        return v

    @model_validator(mode="after")
    def validate_borrower(self) -> "CreateLoanInput":
        if bool(self.student_id) == bool(self.teacher_id):
            raise ValueError("Provide exactly one of student_id or teacher_id")
        return self


class RegisterReturnInput(BaseModel):
    """Input schema for registering a return."""

    loan_id: str = Field(
        ...,
        description="ID of the loan",
        pattern=r"^loan_[a-zA-Z0-9_]{6,}$",
        examples=["loan_202403150001"],
    )

    returned_quantity: int = Field(
        ...,
        description=(
            "Total number of copies returned so far, not the number handed in now. "
            "Equal to the taken quantity when everything is back."
        ),
        ge=1,
        examples=[1, 3],
    )

    return_date: date | None = Field(
        default=None,
        description="Date of the return. Defaults to today.",
    )

    @field_validator("return_date")
    @classmethod
    def validate_return_date(cls, v: date | None) -> date | None:
        if v is not None and v > date.today():
            raise ValueError("Return date cannot be in the future")
        return v


class DeleteLoanInput(BaseModel):
    loan_id: str = Field(
        ...,
        description="ID of the loan to delete",
        pattern=r"^loan_[a-zA-Z0-9_]{6,}$",
    )


def _stock_after(session: Session, book_id: str) -> BookWithStock | None:
    """Derived stock for the loan's book; None once the book has been deleted."""
    return BookRepository(session).get_with_stock(
        book_id, low_stock_threshold=get_config().low_stock_threshold
    )


def _loan_data(loan: Loan, stock: BookWithStock | None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "loan": loan.model_dump(mode="json"),
        "pending_quantity": loan.outstanding_quantity,
    }
    if stock is not None:
        data["stock"] = {
            "book_id": stock.id,
            "total_copies": stock.total_copies,
            "available_copies": stock.available_copies,
            "loaned_copies": stock.loaned_copies,
            "overcommitted_copies": stock.overcommitted_copies,
            "is_low_stock": stock.is_low_stock,
        }
    return data


@trace_tool("create_loan")
async def create_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Lend copies of a book.

    Checks that the book and borrower exist. With strict stock checking on,
    also refuses loans larger than the copies on the shelf.

    Client calls: tool.call("create_loan", {"book_id": "...", "student_id": "...", "taken_quantity": 2})
    """
    params = parse_arguments(CreateLoanInput, arguments, "create_loan")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        loan = LoanRepository(session).create_loan(
            LoanCreateSchema(**params.model_dump())
        )
        stock = _stock_after(session, loan.book_id)
        record_loan_event("loan", loan.taken_quantity, loan.school_id)

        borrower = f"student {loan.student_id}" if loan.student_id else f"teacher {loan.teacher_id}"
        message = f"Lent {loan.taken_quantity} copy(ies) of '{stock.title}' to {borrower}."
        message += f" {stock.available_copies} of {stock.total_copies} copies left on the shelf."
        if stock.overcommitted_copies:
            message += (
                f" Warning: {stock.overcommitted_copies} more copies are out on loan "
                "than the library owns."
            )
        return format_success_response(message, _loan_data(loan, stock))

    return run_tool(
        "create_loan",
        work,
        book_id=params.book_id,
        borrower=params.student_id or params.teacher_id,
        taken_quantity=params.taken_quantity,
    )


@trace_tool("register_return")
async def register_return_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Record a return.

    ``returned_quantity`` replaces the loan's previous value. The loan
    becomes Pending while copies are still out and Returned once all are back;
    a Returned loan accepts no further returns.
    """
    params = parse_arguments(RegisterReturnInput, arguments, "register_return")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        repo = LoanRepository(session)
        before = repo.get_by_id(params.loan_id)
        loan = repo.register_return(params.loan_id, params.returned_quantity, params.return_date)
        stock = _stock_after(session, loan.book_id)

        moved = loan.returned_quantity - (before.returned_quantity if before else 0)
        record_loan_event("return", max(moved, 0), loan.school_id)

        if loan.status == LoanStatus.RETURNED:
            message = f"Loan {loan.id} fully returned ({loan.taken_quantity} copies)."
        else:
            message = (
                f"Loan {loan.id}: {loan.returned_quantity} of {loan.taken_quantity} copies "
                f"returned, {loan.outstanding_quantity} still pending."
            )
        return format_success_response(message, _loan_data(loan, stock))

    return run_tool(
        "register_return",
        work,
        loan_id=params.loan_id,
        returned_quantity=params.returned_quantity,
    )


@trace_tool("delete_loan")
async def delete_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Delete a loan record. Copies it had out count as available again."""
    params = parse_arguments(DeleteLoanInput, arguments, "delete_loan")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        loan = LoanRepository(session).delete_loan(params.loan_id)
        stock = _stock_after(session, loan.book_id)
        record_loan_event("delete", loan.outstanding_quantity, loan.school_id)

        message = f"Loan {loan.id} deleted."
        if loan.is_active and loan.outstanding_quantity:
            message += f" {loan.outstanding_quantity} outstanding copies are no longer counted."
        return format_success_response(message, _loan_data(loan, stock))

    return run_tool("delete_loan", work, loan_id=params.loan_id)


create_loan = {
    "name": "create_loan",
    "description": (
        "Lend copies of a book to a student or a teacher. Give exactly one of student_id "
        "or teacher_id. The loan starts in status Loaned. Returns the loan and the book's "
        "stock as derived after the loan."
    ),
    "inputSchema": CreateLoanInput.model_json_schema(),
    "handler": create_loan_handler,
}

register_return = {
    "name": "register_return",
    "description": (
        "Register returned copies for a loan. returned_quantity is the cumulative total "
        "returned, between 1 and the taken quantity. A partial return leaves the loan "
        "Pending; a full return marks it Returned, after which no more returns are accepted."
    ),
    "inputSchema": RegisterReturnInput.model_json_schema(),
    "handler": register_return_handler,
}

delete_loan = {
    "name": "delete_loan",
    "description": (
        "Delete a loan record, for example one entered by mistake. Any copies it still had "
        "out are counted as available again."
    ),
    "inputSchema": DeleteLoanInput.model_json_schema(),
    "handler": delete_loan_handler,
}
