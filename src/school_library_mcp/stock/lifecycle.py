"""
Loan lifecycle rules.

    Loaned --partial return--> Pending --full return--> Returned
       \______________full return_________________________/

Returned is terminal. Every function here is pure: it validates its inputs
and returns a new ``Loan`` without touching the one it was given, so a
rejected operation never leaves a half-updated record behind.
"""

import logging
from datetime import date, datetime

from ..models.loan import Borrower, Loan, LoanStatus, StudentBorrower, TeacherBorrower
from .calculator import BookStock
from .errors import InsufficientStockError, LoanStateError, LoanValidationError

logger = logging.getLogger(__name__)


def make_borrower(student_id: str | None = None, teacher_id: str | None = None) -> Borrower:
    """
    Build a borrower reference from exactly one of ``student_id``/``teacher_id``.

    Raises:
        LoanValidationError: If neither or both are given
    """
    if student_id and teacher_id:
        raise LoanValidationError("A loan has either a student or a teacher borrower, not both")
    if student_id:
        return StudentBorrower(student_id=student_id)
    if teacher_id:
        return TeacherBorrower(teacher_id=teacher_id)
    raise LoanValidationError("A loan needs a student or a teacher borrower")


def open_loan(
    *,
    loan_id: str,
    book_id: str,
    borrower: Borrower | None,
    taken_quantity: int,
    loan_date: date | None = None,
    school_id: str | None = None,
    grade: int | None = None,
    classroom: str | None = None,
    shift: str | None = None,
) -> Loan:
    """
    Create a new loan in the Loaned state.

    Does not look at stock; see ``check_availability`` for the strict policy.

    Raises:
        LoanValidationError: If the quantity is below 1 or the borrower is missing
    """
    if taken_quantity < 1:
        raise LoanValidationError(f"Taken quantity must be at least 1, got {taken_quantity}")
    if borrower is None:
        raise LoanValidationError("A loan needs a student or a teacher borrower")

    now = datetime.now()
    return Loan(
        id=loan_id,
        book_id=book_id,
        borrower=borrower,
        school_id=school_id,
        taken_quantity=taken_quantity,
        returned_quantity=0,
        status=LoanStatus.LOANED,
        loan_date=loan_date or now.date(),
        grade=grade,
        classroom=classroom,
        shift=shift,
        created_at=now,
        updated_at=now,
    )


def check_availability(stock: BookStock, taken_quantity: int) -> None:
    """
    Reject a loan that would take more copies than are on the shelf.

    Raises:
        InsufficientStockError: If ``taken_quantity`` exceeds ``stock.available``
    """
    if taken_quantity > stock.available:
        raise InsufficientStockError(taken_quantity, stock.available)


def status_for(taken_quantity: int, returned_quantity: int) -> LoanStatus:
    """Status implied by a loan's quantities."""
    if returned_quantity >= taken_quantity:
        return LoanStatus.RETURNED
    if returned_quantity > 0:
        return LoanStatus.PENDING
    return LoanStatus.LOANED


def apply_return(loan: Loan, returned_quantity: int, return_date: date | None = None) -> Loan:
    """
    Record a return on ``loan``.

    ``returned_quantity`` is the cumulative number of copies back, not the
    number handed in this time: it replaces the loan's previous value.

    Returns:
        A new Loan with the updated quantity, status and return date

    Raises:
        LoanStateError: If the loan is already Returned
        LoanValidationError: If the quantity is outside 1..taken_quantity
            or the return date is before the loan date
    """
    if loan.status == LoanStatus.RETURNED:
        raise LoanStateError(f"Loan {loan.id} is already returned")

    if returned_quantity < 1:
        raise LoanValidationError(
            f"Returned quantity must be at least 1, got {returned_quantity}"
        )
    if returned_quantity > loan.taken_quantity:
        raise LoanValidationError(
            f"Returned quantity {returned_quantity} exceeds the {loan.taken_quantity} "
            "copies taken"
        )

    return_date = return_date or date.today()
    if return_date < loan.loan_date:
        raise LoanValidationError("Return date cannot be before loan date")

    if returned_quantity < loan.returned_quantity:
        logger.warning(
            "Loan %s returned quantity lowered from %d to %d",
            loan.id,
            loan.returned_quantity,
            returned_quantity,
        )

    return loan.model_copy(
        update={
            "returned_quantity": returned_quantity,
            "status": status_for(loan.taken_quantity, returned_quantity),
            "return_date": return_date,
            "updated_at": datetime.now(),
        }
    )


def pending_quantity(loan: Loan) -> int:
    """Copies the borrower still has to bring back."""
    return max(0, loan.taken_quantity - loan.returned_quantity)
