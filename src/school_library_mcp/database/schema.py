"""
SQLAlchemy database schema for the School Library MCP Server.

These tables mirror the Pydantic models and back the MCP resources (reads)
and tools (writes).

Stock is not stored: the ``books`` table only holds ``total_copies``.
Available and loaned counts are derived from the ``loans`` table every time
they are needed.
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class LoanStatusEnum(str, enum.Enum):
    """Database enum for loan status."""

    LOANED = "Loaned"
    PENDING = "Pending"
    RETURNED = "Returned"


class School(Base):
    """
    Schools table - each school's library is partitioned by ``school_id``.

    MCP Usage:
    - Resource: library://schools/list
    - Tool: add_school
    """

    __tablename__ = "schools"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=True)
    phone = Column(String(30), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (CheckConstraint("id LIKE 'school_%'", name="check_school_id_format"),)


class Student(Base):
    """
    Students table.

    MCP Usage:
    - Resource: library://students/list
    - Tools: add_student, update_student, delete_student
    """

    __tablename__ = "students"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    grade = Column(Integer, nullable=False)
    classroom = Column(String(20), nullable=False)
    shift = Column(String(20), nullable=False)
    sex = Column(String(20), nullable=True)
    birth_date = Column(Date, nullable=True)
    school_id = Column(String(50), ForeignKey("schools.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    loans = relationship("Loan", back_populates="student")

    __table_args__ = (
        Index("idx_student_school", "school_id"),
        Index("idx_student_grade", "grade"),
        CheckConstraint("id LIKE 'student_%'", name="check_student_id_format"),
        CheckConstraint("grade >= 1 AND grade <= 12", name="check_student_grade_range"),
    )


class Teacher(Base):
    """
    Teachers table.

    MCP Usage:
    - Resource: library://teachers/list
    - Tools: add_teacher, update_teacher, delete_teacher
    """

    __tablename__ = "teachers"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    school_id = Column(String(50), ForeignKey("schools.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    loans = relationship("Loan", back_populates="teacher")

    __table_args__ = (
        Index("idx_teacher_school", "school_id"),
        CheckConstraint("id LIKE 'teacher_%'", name="check_teacher_id_format"),
    )


class Book(Base):
    """
    Books table - the catalog.

    MCP Usage:
    - Resource: library://books/list, library://books/{book_id}
    - Tools: add_book, update_book, delete_book

    Only the authoritative ``total_copies`` is stored.
    """

    __tablename__ = "books"

    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False, index=True)
    barcode = Column(String(50), nullable=False)
    total_copies = Column(Integer, nullable=True, default=1)
    school_id = Column(String(50), ForeignKey("schools.id"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_school", "school_id"),
        UniqueConstraint("school_id", "barcode", name="unique_barcode_per_school"),
        CheckConstraint("id LIKE 'book_%'", name="check_book_id_format"),
        CheckConstraint("total_copies >= 0", name="check_total_copies_non_negative"),
    )


class Loan(Base):
    """
    Loans table - the loan ledger.

    MCP Usage:
    - Resource: library://loans/active, library://loans/{loan_id}
    - Tools: create_loan, register_return, delete_loan

    ``book_id`` is a weak reference: deleting a book leaves its loans behind.
    Exactly one of ``student_id`` / ``teacher_id`` is set.
    """

    __tablename__ = "loans"

    id = Column(String(50), primary_key=True)
    book_id = Column(String(50), nullable=False)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=True)
    teacher_id = Column(String(50), ForeignKey("teachers.id"), nullable=True)
    school_id = Column(String(50), ForeignKey("schools.id"), nullable=True)
    taken_quantity = Column(Integer, nullable=False, default=1)
    returned_quantity = Column(Integer, nullable=False, default=0)
    status = Column(Enum(LoanStatusEnum), nullable=False, default=LoanStatusEnum.LOANED)
    loan_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    # Class the copies went to (teacher loans)
    grade = Column(Integer, nullable=True)
    classroom = Column(String(20), nullable=True)
    shift = Column(String(20), nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="loans")
    teacher = relationship("Teacher", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_book", "book_id"),
        Index("idx_loan_student", "student_id"),
        Index("idx_loan_teacher", "teacher_id"),
        Index("idx_loan_status", "status"),
        Index("idx_loan_school", "school_id"),
        CheckConstraint("id LIKE 'loan_%'", name="check_loan_id_format"),
        CheckConstraint("taken_quantity >= 1", name="check_taken_quantity_positive"),
        CheckConstraint(
            "returned_quantity >= 0 AND returned_quantity <= taken_quantity",
            name="check_returned_quantity_range",
        ),
        CheckConstraint(
            "(student_id IS NULL) <> (teacher_id IS NULL)",
            name="check_single_borrower",
        ),
    )


class StorytellingSession(Base):
    """
    Storytelling sessions table.

    MCP Usage:
    - Resource: library://storytelling/list
    - Tools: add_storytelling, update_storytelling, delete_storytelling
    """

    __tablename__ = "storytelling_sessions"

    id = Column(String(50), primary_key=True)
    teacher_id = Column(String(50), ForeignKey("teachers.id"), nullable=False)
    storyteller_id = Column(String(50), ForeignKey("teachers.id"), nullable=False)
    book_id = Column(String(50), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    grade = Column(Integer, nullable=False)
    classroom = Column(String(20), nullable=False)
    shift = Column(String(20), nullable=False)
    session_date = Column(Date, nullable=False)
    student_count = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    school_id = Column(String(50), ForeignKey("schools.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    teacher = relationship("Teacher", foreign_keys=[teacher_id])
    storyteller = relationship("Teacher", foreign_keys=[storyteller_id])
    book = relationship("Book")

    __table_args__ = (
        Index("idx_story_date", "session_date"),
        Index("idx_story_school", "school_id"),
        CheckConstraint("id LIKE 'story_%'", name="check_story_id_format"),
        CheckConstraint("student_count >= 1", name="check_student_count_positive"),
    )
