"""
Student repository implementation for the School Library MCP Server.

Students are the usual borrowers. They belong to one school and one class,
identified by grade (school year), classroom and shift.
"""

from datetime import date

from pydantic import BaseModel
from sqlalchemy import and_, func, select

from ..database.schema import Loan as LoanDB
from ..database.schema import Student as StudentDB
from ..database.session import mcp_safe_query
from ..models.people import Student as StudentModel
from .repository import (
    BaseRepository,
    InvalidOperationError,
    PaginatedResponse,
    PaginationParams,
)


class StudentCreateSchema(BaseModel):
    """Schema for enrolling a new student."""

    name: str
    grade: int
    classroom: str
    shift: str
    sex: str | None = None
    birth_date: date | None = None
    school_id: str | None = None


class StudentUpdateSchema(BaseModel):
    """Schema for updating a student - all fields optional."""

    name: str | None = None
    grade: int | None = None
    classroom: str | None = None
    shift: str | None = None
    sex: str | None = None
    birth_date: date | None = None


class StudentSearchParams(BaseModel):
    """Filters for student listings."""

    name: str | None = None  # Name contains
    grade: int | None = None
    classroom: str | None = None
    shift: str | None = None
    school_id: str | None = None


class StudentRepository(
    BaseRepository[StudentDB, StudentCreateSchema, StudentUpdateSchema, StudentModel]
):
    """
    Repository for student data access.

    Supports library://students/list and the add/update/delete_student tools.
    A student with loans on record cannot be deleted.
    """

    id_prefix = "student"

    @property
    def model_class(self):
        return StudentDB

    @property
    def response_schema(self):
        return StudentModel

    def create(self, data: StudentCreateSchema) -> StudentModel:
        """
        Enroll a student, defaulting to the configured school.

        Raises:
            NotFoundError: If the school is unknown
        """
        data = data.model_copy(update={"school_id": self._resolve_school_id(data.school_id)})
        return super().create(data)

    def search(
        self,
        search_params: StudentSearchParams,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[StudentModel]:
        """Filter students by name, class and school, ordered by name."""
        filters = []
        if search_params.name:
            filters.append(StudentDB.name.ilike(f"%{search_params.name}%"))
        if search_params.grade is not None:
            filters.append(StudentDB.grade == search_params.grade)
        if search_params.classroom:
            filters.append(StudentDB.classroom == search_params.classroom)
        if search_params.shift:
            filters.append(StudentDB.shift == search_params.shift)
        if search_params.school_id:
            filters.append(StudentDB.school_id == search_params.school_id)

        query = select(StudentDB).order_by(StudentDB.name)
        count_query = select(func.count()).select_from(StudentDB)
        if filters:
            query = query.where(and_(*filters))
            count_query = count_query.where(and_(*filters))

        pagination = pagination or PaginationParams()
        pagination.validate_params()

        total = (
            mcp_safe_query(
                self.session, lambda s: s.execute(count_query).scalar(), "Failed to count students"
            )
            or 0
        )
        query = query.offset(pagination.offset).limit(pagination.page_size)
        results = mcp_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to search students"
        )

        items = [self._to_response_model(student) for student in results]
        return PaginatedResponse.build(items, total, pagination)

    def delete(self, id: str) -> bool:
        """
        Delete a student.

        Raises:
            InvalidOperationError: If the student has loans on record
        """
        loan_count = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(func.count()).select_from(LoanDB).where(LoanDB.student_id == id)
            ).scalar(),
            "Failed to count student loans",
        )
        if loan_count:
            raise InvalidOperationError(
                f"Student {id} has {loan_count} loan(s) on record and cannot be deleted"
            )
        return super().delete(id)
