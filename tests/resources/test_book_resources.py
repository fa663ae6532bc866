"""Tests for the book and loan resources.

Resources are read-only: they report stock derived from the loan ledger and
raise ResourceError when something is missing.
"""

import inspect
import re
from datetime import date, timedelta

import pytest
from fastmcp.exceptions import ResourceError

from school_library_mcp.database.book_repository import BookCreateSchema, BookRepository
from school_library_mcp.database.loan_repository import LoanCreateSchema, LoanRepository
from school_library_mcp.database.school_repository import SchoolCreateSchema, SchoolRepository
from school_library_mcp.resources import all_resources
from school_library_mcp.resources.books import (
    BookListResponse,
    get_book_by_barcode_handler,
    get_book_handler,
    list_books_handler,
)
from school_library_mcp.resources.loans import (
    get_book_loans_handler,
    get_loan_handler,
    get_student_loans_handler,
    list_active_loans_handler,
)


@pytest.fixture
def lent_book(mock_session_scope, sample_book, sample_student):
    """The sample book with two copies out and one loan fully returned."""
    loans = LoanRepository(mock_session_scope)
    active = loans.create_loan(
        LoanCreateSchema(book_id=sample_book.id, student_id=sample_student.id, taken_quantity=2)
    )
    finished = loans.create_loan(
        LoanCreateSchema(
            book_id=sample_book.id,
            student_id=sample_student.id,
            loan_date=date.today() - timedelta(days=20),
        )
    )
    loans.register_return(finished.id, 1)
    return sample_book, active, finished


class TestBookResources:
    async def test_list_books(self, lent_book):
        book, _, _ = lent_book

        result = await list_books_handler()

        response = BookListResponse.model_validate(result)
        assert response.total == 1
        assert response.page == 1
        assert response.has_next is False
        entry = response.books[0]
        assert entry.id == book.id
        assert entry.available_copies == 3
        assert entry.loaned_copies == 2

    async def test_list_books_restricted_to_configured_school(
        self, mock_session_scope, sample_book, use_config
    ):
        other = SchoolRepository(mock_session_scope).create(
            SchoolCreateSchema(name="Outra Escola")
        )
        BookRepository(mock_session_scope).create(
            BookCreateSchema(title="Elsewhere", barcode="999", school_id=other.id)
        )
        use_config(default_school_id=sample_book.school_id)

        result = await list_books_handler()

        assert result["total"] == 1
        assert result["books"][0]["id"] == sample_book.id

    async def test_empty_catalog(self, mock_session_scope):
        result = await list_books_handler()
        assert result["books"] == []
        assert result["total"] == 0

    async def test_get_book(self, lent_book):
        book, _, _ = lent_book

        result = await get_book_handler(book_id=book.id)

        assert result["title"] == "O Pequeno Príncipe"
        assert result["available_copies"] == 3
        assert result["is_low_stock"] is True

    async def test_get_missing_book(self, mock_session_scope):
        with pytest.raises(ResourceError, match="Book not found"):
            await get_book_handler(book_id="book_missing0001")

    async def test_get_book_by_barcode(self, lent_book):
        book, _, _ = lent_book
        result = await get_book_by_barcode_handler(barcode=book.barcode)
        assert result["id"] == book.id
        assert result["loaned_copies"] == 2

    async def test_unknown_barcode(self, mock_session_scope):
        with pytest.raises(ResourceError, match="No book with barcode"):
            await get_book_by_barcode_handler(barcode="0000000000")


class TestLoanResources:
    async def test_active_loans(self, lent_book):
        _, active, _ = lent_book

        result = await list_active_loans_handler()

        assert result["total"] == 1
        assert result["loans"][0]["id"] == active.id
        assert result["loans"][0]["pending_quantity"] == 2

    async def test_get_loan(self, lent_book):
        _, _, finished = lent_book

        result = await get_loan_handler(loan_id=finished.id)

        assert result["status"] == "Returned"
        assert result["pending_quantity"] == 0

    async def test_get_missing_loan(self, mock_session_scope):
        with pytest.raises(ResourceError, match="Loan not found"):
            await get_loan_handler(loan_id="loan_missing0001")

    async def test_student_history(self, lent_book, sample_student):
        result = await get_student_loans_handler(student_id=sample_student.id)

        assert result["count"] == 2
        assert result["active_count"] == 1
        assert result["copies_out"] == 2

    async def test_book_history_survives_book_deletion(self, lent_book, mock_session_scope):
        book, _, _ = lent_book
        BookRepository(mock_session_scope).delete(book.id)

        result = await get_book_loans_handler(book_id=book.id)

        assert result["count"] == 2
        assert result["copies_out"] == 2


class TestResourceRegistry:
    def test_uris_are_unique(self):
        uris = [r.get("uri") or r.get("uri_template") for r in all_resources]
        assert len(uris) == len(set(uris))
        assert "library://stats/stock" in uris
        assert "library://books/{book_id}" in uris

    def test_template_parameters_match_handlers(self):
        for resource in all_resources:
            template = resource.get("uri_template")
            params = set(inspect.signature(resource["handler"]).parameters)
            if template is None:
                assert params == set()
            else:
                assert set(re.findall(r"\{(\w+)\}", template)) == params
                assert inspect.iscoroutinefunction(resource["handler"])
