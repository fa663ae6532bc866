"""
Database package for the School Library MCP Server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories that turn rows into Pydantic models and apply the loan and
  stock rules on writes

Stock is never persisted: the loan ledger is the single source of truth and
every availability figure is derived from it on read.
"""

from .book_repository import BookRepository, BookWithStock
from .loan_repository import LoanRepository
from .repository import (
    BaseRepository,
    DuplicateError,
    InvalidOperationError,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
    RepositoryException,
)
from .schema import (
    Base,
    Book,
    Loan,
    LoanStatusEnum,
    School,
    StorytellingSession,
    Student,
    Teacher,
)
from .school_repository import SchoolRepository
from .session import (
    DatabaseManager,
    DatabaseOperationError,
    get_db_manager,
    get_session,
    lock_for_write,
    mcp_safe_commit,
    mcp_safe_query,
    reset_db_manager,
    session_scope,
)
from .storytelling_repository import StorytellingRepository
from .student_repository import StudentRepository
from .teacher_repository import TeacherRepository

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookRepository",
    "BookWithStock",
    "DatabaseManager",
    "DatabaseOperationError",
    "DuplicateError",
    "InvalidOperationError",
    "Loan",
    "LoanRepository",
    "LoanStatusEnum",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "RepositoryException",
    "School",
    "SchoolRepository",
    "StorytellingRepository",
    "StorytellingSession",
    "Student",
    "StudentRepository",
    "Teacher",
    "TeacherRepository",
    "get_db_manager",
    "get_session",
    "lock_for_write",
    "mcp_safe_commit",
    "mcp_safe_query",
    "reset_db_manager",
    "session_scope",
]
