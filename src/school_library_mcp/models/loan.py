"""
Loan models for the School Library MCP Server.

A loan records how many copies of a book a borrower took and how many of
them have come back. Borrowers are either a student or a teacher, modelled
as a tagged union so that teacher loans never need a stand-in student row.

Status follows the quantities:
- Loaned: nothing returned yet
- Pending: some copies returned, some still out
- Returned: every copy returned (terminal)
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LoanStatus(str, Enum):
    """Status of a loan."""

    LOANED = "Loaned"
    PENDING = "Pending"
    RETURNED = "Returned"


ACTIVE_LOAN_STATUSES = (LoanStatus.LOANED, LoanStatus.PENDING)


class StudentBorrower(BaseModel):
    """A loan taken by a student."""

    kind: Literal["student"] = "student"
    student_id: str = Field(
        ...,
        description="ID of the borrowing student",
        pattern=r"^student_[a-zA-Z0-9_]{6,}$",
        examples=["student_202403010001"],
    )


class TeacherBorrower(BaseModel):
    """A loan taken by a teacher, usually for a whole class."""

    kind: Literal["teacher"] = "teacher"
    teacher_id: str = Field(
        ...,
        description="ID of the borrowing teacher",
        pattern=r"^teacher_[a-zA-Z0-9_]{6,}$",
        examples=["teacher_202403010001"],
    )


Borrower = Annotated[StudentBorrower | TeacherBorrower, Field(discriminator="kind")]


class Loan(BaseModel):
    """
    Represents copies of one book taken by one borrower.

    ``returned_quantity`` is cumulative: each return sets it to the total
    returned so far instead of adding to it.
    """

    id: str = Field(
        ...,
        description="Unique identifier for the loan",
        pattern=r"^loan_[a-zA-Z0-9_]{6,}$",
        examples=["loan_202403150001"],
    )

    book_id: str = Field(
        ...,
        description="ID of the loaned book",
        pattern=r"^book_[a-zA-Z0-9_]{6,}$",
        examples=["book_202401100001"],
    )

    borrower: Borrower = Field(
        ...,
        description="Student or teacher who took the copies",
    )

    school_id: str | None = Field(
        None,
        description="School the loan belongs to",
    )

    taken_quantity: int = Field(
        ...,
        description="Number of copies taken",
        ge=1,
        examples=[1, 3, 30],
    )

    returned_quantity: int = Field(
        default=0,
        description="Number of copies returned so far",
        ge=0,
    )

    status: LoanStatus = Field(
        default=LoanStatus.LOANED,
        description="Current status of the loan",
    )

    loan_date: date = Field(
        default_factory=date.today,
        description="Date the copies were taken",
    )

    return_date: date | None = Field(
        None,
        description="Date of the latest return",
    )

    # Class details for teacher loans
    grade: int | None = Field(None, ge=0, le=12, description="School year the loan is for")
    classroom: str | None = Field(None, max_length=20, description="Class the loan is for")
    shift: str | None = Field(None, max_length=20, description="Shift the loan is for")

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_quantities(self) -> "Loan":
        """Keep quantities and status consistent."""
        if self.returned_quantity > self.taken_quantity:
            raise ValueError("Returned quantity cannot exceed taken quantity")

        if self.returned_quantity >= self.taken_quantity:
            if self.status != LoanStatus.RETURNED:
                raise ValueError("A fully returned loan must have status Returned")
        elif self.status == LoanStatus.RETURNED:
            raise ValueError("Loan with copies outstanding cannot be Returned")
        elif self.returned_quantity == 0 and self.status == LoanStatus.PENDING:
            raise ValueError("Loan with nothing returned cannot be Pending")

        if self.return_date and self.return_date < self.loan_date:
            raise ValueError("Return date cannot be before loan date")

        return self

    @property
    def student_id(self) -> str | None:
        if isinstance(self.borrower, StudentBorrower):
            return self.borrower.student_id
        return None

    @property
    def teacher_id(self) -> str | None:
        if isinstance(self.borrower, TeacherBorrower):
            return self.borrower.teacher_id
        return None

    @property
    def outstanding_quantity(self) -> int:
        """Copies still out on this loan."""
        return max(0, self.taken_quantity - self.returned_quantity)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_LOAN_STATUSES

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "loan_202403150001",
                "book_id": "book_202401100001",
                "borrower": {"kind": "student", "student_id": "student_202403010001"},
                "taken_quantity": 3,
                "returned_quantity": 0,
                "status": "Loaned",
                "loan_date": "2024-03-15",
            }
        }
    )
