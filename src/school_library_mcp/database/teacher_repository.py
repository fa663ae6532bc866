"""Teacher repository: teachers borrow books for their classes and run storytelling."""

from pydantic import BaseModel
from sqlalchemy import func, or_, select

from ..database.schema import Loan as LoanDB
from ..database.schema import StorytellingSession as StorytellingDB
from ..database.schema import Teacher as TeacherDB
from ..database.session import mcp_safe_query
from ..models.people import Teacher as TeacherModel
from .repository import BaseRepository, InvalidOperationError


class TeacherCreateSchema(BaseModel):
    name: str
    school_id: str | None = None


class TeacherUpdateSchema(BaseModel):
    name: str | None = None


class TeacherRepository(
    BaseRepository[TeacherDB, TeacherCreateSchema, TeacherUpdateSchema, TeacherModel]
):
    """Repository for teachers (library://teachers/list, add/update/delete_teacher)."""

    id_prefix = "teacher"

    @property
    def model_class(self):
        return TeacherDB

    @property
    def response_schema(self):
        return TeacherModel

    def create(self, data: TeacherCreateSchema) -> TeacherModel:
        data = data.model_copy(update={"school_id": self._resolve_school_id(data.school_id)})
        return super().create(data)

    def delete(self, id: str) -> bool:
        """
        Delete a teacher.

        Raises:
            InvalidOperationError: If loans or storytelling sessions still reference the teacher
        """
        loan_count = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(func.count()).select_from(LoanDB).where(LoanDB.teacher_id == id)
            ).scalar(),
            "Failed to count teacher loans",
        )
        session_count = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(func.count())
                .select_from(StorytellingDB)
                .where(or_(StorytellingDB.teacher_id == id, StorytellingDB.storyteller_id == id))
            ).scalar(),
            "Failed to count storytelling sessions",
        )
        if loan_count or session_count:
            raise InvalidOperationError(
                f"Teacher {id} has {loan_count} loan(s) and {session_count} storytelling "
                "session(s) on record and cannot be deleted"
            )
        return super().delete(id)
