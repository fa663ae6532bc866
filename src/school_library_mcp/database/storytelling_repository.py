"""
Storytelling repository.

Storytelling sessions record a book read aloud to a class. They reference
two teachers (the class teacher and the storyteller) and a book; deleting
the book deletes its sessions.
"""

from datetime import date

from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import joinedload

from ..database.schema import Book as BookDB
from ..database.schema import StorytellingSession as StorytellingDB
from ..database.schema import Teacher as TeacherDB
from ..database.session import mcp_safe_query
from ..models.storytelling import StorytellingSession
from .repository import BaseRepository, NotFoundError


class StorytellingCreateSchema(BaseModel):
    teacher_id: str
    storyteller_id: str
    book_id: str
    grade: int
    classroom: str
    shift: str
    session_date: date
    student_count: int
    notes: str | None = None
    school_id: str | None = None


class StorytellingUpdateSchema(BaseModel):
    """Schema for updating a session - all fields optional."""

    teacher_id: str | None = None
    storyteller_id: str | None = None
    book_id: str | None = None
    grade: int | None = None
    classroom: str | None = None
    shift: str | None = None
    session_date: date | None = None
    student_count: int | None = None
    notes: str | None = None


class StorytellingRepository(
    BaseRepository[
        StorytellingDB, StorytellingCreateSchema, StorytellingUpdateSchema, StorytellingSession
    ]
):
    """Repository for storytelling sessions (library://storytelling/list and tools)."""

    id_prefix = "story"

    @property
    def model_class(self):
        return StorytellingDB

    @property
    def response_schema(self):
        return StorytellingSession

    def _to_response_model(self, db_obj: StorytellingDB) -> StorytellingSession:
        return StorytellingSession(
            id=db_obj.id,
            teacher_id=db_obj.teacher_id,
            storyteller_id=db_obj.storyteller_id,
            book_id=db_obj.book_id,
            grade=db_obj.grade,
            classroom=db_obj.classroom,
            shift=db_obj.shift,
            session_date=db_obj.session_date,
            student_count=db_obj.student_count,
            notes=db_obj.notes,
            school_id=db_obj.school_id,
            teacher_name=db_obj.teacher.name if db_obj.teacher else None,
            storyteller_name=db_obj.storyteller.name if db_obj.storyteller else None,
            book_title=db_obj.book.title if db_obj.book else None,
            created_at=db_obj.created_at,
        )

    def _check_references(
        self, teacher_id: str | None, storyteller_id: str | None, book_id: str | None
    ) -> BookDB | None:
        for label, ref_id in (("Teacher", teacher_id), ("Storyteller", storyteller_id)):
            if ref_id is not None and self.session.get(TeacherDB, ref_id) is None:
                raise NotFoundError(f"{label} {ref_id} not found")

        if book_id is None:
            return None
        book = self.session.get(BookDB, book_id)
        if book is None:
            raise NotFoundError(f"Book {book_id} not found")
        return book

    def create(self, data: StorytellingCreateSchema) -> StorytellingSession:
        """
        Record a storytelling session. The session belongs to the book's school.

        Raises:
            NotFoundError: If a teacher or the book doesn't exist
        """
        book = self._check_references(data.teacher_id, data.storyteller_id, data.book_id)
        return super().create(data.model_copy(update={"school_id": book.school_id}))

    def update(self, id: str, data: StorytellingUpdateSchema) -> StorytellingSession:
        self._check_references(data.teacher_id, data.storyteller_id, data.book_id)
        return super().update(id, data)

    def list_sessions(
        self, school_id: str | None = None, teacher_id: str | None = None
    ) -> list[StorytellingSession]:
        """Sessions, newest first."""
        query = (
            select(StorytellingDB)
            .options(
                joinedload(StorytellingDB.teacher),
                joinedload(StorytellingDB.storyteller),
                joinedload(StorytellingDB.book),
            )
            .order_by(desc(StorytellingDB.session_date), desc(StorytellingDB.id))
        )
        if school_id is not None:
            query = query.where(StorytellingDB.school_id == school_id)
        if teacher_id is not None:
            query = query.where(StorytellingDB.teacher_id == teacher_id)

        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to list storytelling sessions",
        )
        return [self._to_response_model(row) for row in results]
