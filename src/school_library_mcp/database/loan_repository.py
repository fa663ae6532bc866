"""
Loan repository implementation for the School Library MCP Server.

This is the loan ledger. It loads the records the stock rules need, hands
them to ``school_library_mcp.stock`` and persists the result:

1. **create_loan**: book and borrower must exist and belong to the same
   school; with ``strict_stock_check`` the derived availability must cover
   the request
2. **register_return**: cumulative returned quantity, Loaned -> Pending -> Returned
3. **delete_loan**: removes the record; stock follows automatically because
   it is never stored

Core rule violations (``LoanError``) are re-raised as ``InvalidOperationError``
so every repository failure shares the ``RepositoryException`` hierarchy.
"""

import logging
from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, Field
from sqlalchemy import and_, desc, func, select

from ..config import get_config
from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.schema import LoanStatusEnum
from ..database.schema import Student as StudentDB
from ..database.schema import Teacher as TeacherDB
from ..database.session import lock_for_write, mcp_safe_commit, mcp_safe_query
from ..models.book import Book as BookModel
from ..models.loan import ACTIVE_LOAN_STATUSES, Loan, LoanStatus, StudentBorrower
from ..stock import (
    BookStock,
    LoanError,
    apply_return,
    check_availability,
    compute_book_stock,
    make_borrower,
    open_loan,
)
from .repository import (
    BaseRepository,
    InvalidOperationError,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUS_ENUMS = tuple(LoanStatusEnum(status.value) for status in ACTIVE_LOAN_STATUSES)


class LoanCreateSchema(BaseModel):
    """Schema for lending copies of a book to a student or a teacher."""

    book_id: str
    student_id: str | None = None
    teacher_id: str | None = None
    taken_quantity: int = 1
    loan_date: date | None = None
    grade: int | None = None
    classroom: str | None = None
    shift: str | None = None


class LoanReturnSchema(BaseModel):
    """Schema for registering a return."""

    loan_id: str
    returned_quantity: int
    return_date: date | None = None


class BorrowerLoanCount(BaseModel):
    """A student and the number of loans they have taken."""

    student_id: str
    name: str
    grade: int
    loan_count: int = Field(..., ge=0)


def loan_from_row(db_obj: LoanDB) -> Loan:
    """Convert a database loan into the ``Loan`` model."""
    return Loan(
        id=db_obj.id,
        book_id=db_obj.book_id,
        borrower=make_borrower(student_id=db_obj.student_id, teacher_id=db_obj.teacher_id),
        school_id=db_obj.school_id,
        taken_quantity=db_obj.taken_quantity,
        returned_quantity=db_obj.returned_quantity,
        status=LoanStatus(db_obj.status.value),
        loan_date=db_obj.loan_date,
        return_date=db_obj.return_date,
        grade=db_obj.grade,
        classroom=db_obj.classroom,
        shift=db_obj.shift,
        created_at=db_obj.created_at,
        updated_at=db_obj.updated_at,
    )


class LoanRepository(BaseRepository[LoanDB, LoanCreateSchema, BaseModel, Loan]):
    """
    Repository for the loan ledger.

    Supports the loan Resources (library://loans/*) and the create_loan,
    register_return and delete_loan Tools.
    """

    id_prefix = "loan"

    def __init__(self, session, strict_stock_check: bool | None = None):
        super().__init__(session)
        if strict_stock_check is None:
            strict_stock_check = get_config().strict_stock_check
        self.strict_stock_check = strict_stock_check

    @property
    def model_class(self):
        return LoanDB

    @property
    def response_schema(self):
        return Loan

    def _to_response_model(self, db_obj: LoanDB) -> Loan:
        return loan_from_row(db_obj)

    def create(self, data: LoanCreateSchema) -> Loan:
        return self.create_loan(data)

    def create_loan(self, data: LoanCreateSchema) -> Loan:
        """
        Lend copies of a book.

        The loan inherits the book's school and the borrower must belong to
        the same school. Under the strict stock policy the write lock is taken
        before the derived availability is checked.

        Raises:
            NotFoundError: If the book, student or teacher doesn't exist
            InvalidOperationError: If the quantity or borrower is invalid, the
                borrower is from another school, or the strict policy finds too
                few copies on the shelf
        """
        if self.strict_stock_check:
            lock_for_write(self.session)

        book = mcp_safe_query(
            self.session,
            lambda s: s.get(BookDB, data.book_id, populate_existing=True),
            "Failed to get book for loan",
        )
        if book is None:
            raise NotFoundError(f"Book {data.book_id} not found")

        try:
            borrower = make_borrower(student_id=data.student_id, teacher_id=data.teacher_id)
        except LoanError as e:
            raise InvalidOperationError(str(e)) from e

        if isinstance(borrower, StudentBorrower):
            borrower_row = mcp_safe_query(
                self.session,
                lambda s: s.get(StudentDB, borrower.student_id),
                "Failed to get student for loan",
            )
            if borrower_row is None:
                raise NotFoundError(f"Student {borrower.student_id} not found")
        else:
            borrower_row = mcp_safe_query(
                self.session,
                lambda s: s.get(TeacherDB, borrower.teacher_id),
                "Failed to get teacher for loan",
            )
            if borrower_row is None:
                raise NotFoundError(f"Teacher {borrower.teacher_id} not found")

        if book.school_id and borrower_row.school_id and book.school_id != borrower_row.school_id:
            raise InvalidOperationError(
                f"Book {book.id} belongs to school {book.school_id} but "
                f"{borrower_row.id} attends {borrower_row.school_id}"
            )

        try:
            if self.strict_stock_check:
                stock = compute_book_stock(
                    BookModel.model_validate(book, from_attributes=True),
                    self.active_loans_for_books([book.id]),
                )
                check_availability(stock, data.taken_quantity)

            loan = open_loan(
                loan_id=self._generate_id(),
                book_id=book.id,
                borrower=borrower,
                taken_quantity=data.taken_quantity,
                loan_date=data.loan_date,
                school_id=book.school_id,
                grade=data.grade,
                classroom=data.classroom,
                shift=data.shift,
            )
        except LoanError as e:
            raise InvalidOperationError(str(e)) from e

        db_loan = LoanDB(
            id=loan.id,
            book_id=loan.book_id,
            student_id=loan.student_id,
            teacher_id=loan.teacher_id,
            school_id=loan.school_id,
            taken_quantity=loan.taken_quantity,
            returned_quantity=loan.returned_quantity,
            status=LoanStatusEnum(loan.status.value),
            loan_date=loan.loan_date,
            grade=loan.grade,
            classroom=loan.classroom,
            shift=loan.shift,
            created_at=loan.created_at,
            updated_at=loan.updated_at,
        )
        self.session.add(db_loan)
        mcp_safe_commit(self.session, "create loan")
        self.session.refresh(db_loan)

        logger.info(
            "Loan %s: %d copies of %s to %s",
            loan.id,
            loan.taken_quantity,
            loan.book_id,
            loan.student_id or loan.teacher_id,
        )
        return self._to_response_model(db_loan)

    def register_return(
        self, loan_id: str, returned_quantity: int, return_date: date | None = None
    ) -> Loan:
        """
        Record that ``returned_quantity`` copies (in total) are back.

        Raises:
            NotFoundError: If the loan doesn't exist
            InvalidOperationError: If the loan is already returned or the
                quantity/date is invalid
        """
        lock_for_write(self.session)
        db_loan = mcp_safe_query(
            self.session,
            lambda s: s.get(LoanDB, loan_id, populate_existing=True),
            "Failed to get loan for return",
        )
        if db_loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")

        try:
            updated = apply_return(loan_from_row(db_loan), returned_quantity, return_date)
        except LoanError as e:
            raise InvalidOperationError(str(e)) from e

        db_loan.returned_quantity = updated.returned_quantity
        db_loan.status = LoanStatusEnum(updated.status.value)
        db_loan.return_date = updated.return_date
        db_loan.updated_at = updated.updated_at

        mcp_safe_commit(self.session, "register return")
        self.session.refresh(db_loan)

        logger.info(
            "Loan %s: %d of %d copies returned, status %s",
            loan_id,
            updated.returned_quantity,
            updated.taken_quantity,
            updated.status.value,
        )
        return self._to_response_model(db_loan)

    def delete_loan(self, loan_id: str) -> Loan:
        """
        Remove a loan record and return what was deleted.

        Raises:
            NotFoundError: If the loan doesn't exist
        """
        db_loan = self._require_db_obj(loan_id)
        loan = self._to_response_model(db_loan)
        self.delete(loan_id)
        logger.info("Loan %s deleted", loan_id)
        return loan

    def _list(self, *filters, pagination: PaginationParams | None = None):
        query = select(LoanDB).order_by(desc(LoanDB.loan_date), desc(LoanDB.id))
        count_query = select(func.count()).select_from(LoanDB)
        if filters:
            query = query.where(and_(*filters))
            count_query = count_query.where(and_(*filters))

        if pagination is None:
            results = mcp_safe_query(
                self.session, lambda s: s.execute(query).scalars().all(), "Failed to list loans"
            )
            return [self._to_response_model(loan) for loan in results]

        pagination.validate_params()
        total = (
            mcp_safe_query(
                self.session, lambda s: s.execute(count_query).scalar(), "Failed to count loans"
            )
            or 0
        )
        query = query.offset(pagination.offset).limit(pagination.page_size)
        results = mcp_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list loans"
        )
        items = [self._to_response_model(loan) for loan in results]
        return PaginatedResponse.build(items, total, pagination)

    def get_active_loans(
        self, school_id: str | None = None, pagination: PaginationParams | None = None
    ) -> list[Loan] | PaginatedResponse[Loan]:
        """Loans with copies still out (Loaned or Pending), newest first."""
        filters = [LoanDB.status.in_(ACTIVE_STATUS_ENUMS)]
        if school_id is not None:
            filters.append(LoanDB.school_id == school_id)
        return self._list(*filters, pagination=pagination)

    def get_loans_for_student(self, student_id: str, active_only: bool = False) -> list[Loan]:
        filters = [LoanDB.student_id == student_id]
        if active_only:
            filters.append(LoanDB.status.in_(ACTIVE_STATUS_ENUMS))
        return self._list(*filters)

    def get_loans_for_teacher(self, teacher_id: str, active_only: bool = False) -> list[Loan]:
        filters = [LoanDB.teacher_id == teacher_id]
        if active_only:
            filters.append(LoanDB.status.in_(ACTIVE_STATUS_ENUMS))
        return self._list(*filters)

    def get_loans_for_book(self, book_id: str, active_only: bool = False) -> list[Loan]:
        filters = [LoanDB.book_id == book_id]
        if active_only:
            filters.append(LoanDB.status.in_(ACTIVE_STATUS_ENUMS))
        return self._list(*filters)

    def active_loans_for_books(self, book_ids: Iterable[str] | None = None) -> list[Loan]:
        """
        Active loans for the given books, or for every book when ``book_ids`` is None.

        This is the input the stock calculator needs.
        """
        query = select(LoanDB).where(LoanDB.status.in_(ACTIVE_STATUS_ENUMS))
        if book_ids is not None:
            query = query.where(LoanDB.book_id.in_(list(book_ids)))
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get active loans",
        )
        return [self._to_response_model(loan) for loan in results]

    def stock_for_book(self, book: BookModel) -> BookStock:
        """Derived stock for one book."""
        return compute_book_stock(book, self.active_loans_for_books([book.id]))

    def count_by_status(self, school_id: str | None = None) -> dict[str, int]:
        """Number of loans per status, every status included."""
        query = select(LoanDB.status, func.count(LoanDB.id)).group_by(LoanDB.status)
        if school_id is not None:
            query = query.where(LoanDB.school_id == school_id)
        rows = mcp_safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to count loans by status"
        )

        counts = {status.value: 0 for status in LoanStatus}
        for status, count in rows:
            counts[status.value] = count
        return counts

    def count_by_grade(self, school_id: str | None = None) -> dict[int, int]:
        """
        Number of loans per school year.

        Student loans use the student's current grade; teacher loans use the
        grade recorded on the loan and are skipped when it is missing.
        """
        grade = func.coalesce(StudentDB.grade, LoanDB.grade)
        query = (
            select(grade.label("grade"), func.count(LoanDB.id))
            .select_from(LoanDB)
            .outerjoin(StudentDB, LoanDB.student_id == StudentDB.id)
            .where(grade.is_not(None))
            .group_by(grade)
            .order_by(grade)
        )
        if school_id is not None:
            query = query.where(LoanDB.school_id == school_id)
        rows = mcp_safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to count loans by grade"
        )
        return {row[0]: row[1] for row in rows}

    def top_borrowers(self, limit: int = 15, school_id: str | None = None) -> list[BorrowerLoanCount]:
        """Students with the most loans, most first."""
        loan_count = func.count(LoanDB.id).label("loan_count")
        query = (
            select(StudentDB.id, StudentDB.name, StudentDB.grade, loan_count)
            .join(LoanDB, LoanDB.student_id == StudentDB.id)
            .group_by(StudentDB.id, StudentDB.name, StudentDB.grade)
            .order_by(desc(loan_count), StudentDB.name)
            .limit(limit)
        )
        if school_id is not None:
            query = query.where(LoanDB.school_id == school_id)
        rows = mcp_safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to rank borrowers"
        )
        return [
            BorrowerLoanCount(student_id=row[0], name=row[1], grade=row[2], loan_count=row[3])
            for row in rows
        ]
