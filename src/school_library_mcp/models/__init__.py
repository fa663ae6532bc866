"""
School Library MCP Server Models.

Pydantic models for the core entities:
- Book: Catalog titles with their authoritative copy count
- Loan: Copies taken by a student or teacher
- School, Student, Teacher: The people and places loans belong to
- StorytellingSession: Books read aloud to a class
"""

from .book import Book
from .loan import (
    ACTIVE_LOAN_STATUSES,
    Borrower,
    Loan,
    LoanStatus,
    StudentBorrower,
    TeacherBorrower,
)
from .people import School, Student, Teacher
from .storytelling import StorytellingSession

__all__ = [
    "ACTIVE_LOAN_STATUSES",
    "Book",
    "Borrower",
    "Loan",
    "LoanStatus",
    "School",
    "StorytellingSession",
    "Student",
    "StudentBorrower",
    "Teacher",
    "TeacherBorrower",
]
