"""Tests for the Pydantic models: books, loans, people and storytelling."""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from school_library_mcp.models import (
    Book,
    Loan,
    LoanStatus,
    School,
    StorytellingSession,
    Student,
    StudentBorrower,
    TeacherBorrower,
)


def loan_data(**overrides):
    data = {
        "id": "loan_test000001",
        "book_id": "book_test000001",
        "borrower": {"kind": "student", "student_id": "student_test000001"},
        "taken_quantity": 3,
    }
    data.update(overrides)
    return data


class TestBookModel:
    def test_valid_book(self):
        book = Book(id="book_test000001", title="  Reinações de Narizinho ", barcode="978852505")
        assert book.title == "Reinações de Narizinho"
        assert book.total_copies == 1

    def test_has_no_stored_availability(self):
        assert "available_copies" not in Book.model_fields
        assert "loaned_copies" not in Book.model_fields

    @pytest.mark.parametrize(
        "overrides",
        [
            {"id": "bk_1"},
            {"title": "   "},
            {"barcode": ""},
            {"total_copies": -1},
        ],
    )
    def test_invalid_books(self, overrides):
        data = {"id": "book_test000001", "title": "Title", "barcode": "123"}
        data.update(overrides)
        with pytest.raises(ValidationError):
            Book(**data)

    def test_total_copies_may_be_missing(self):
        book = Book(id="book_test000001", title="Title", barcode="123", total_copies=None)
        assert book.total_copies is None


class TestLoanModel:
    def test_student_borrower_from_dict(self):
        loan = Loan(**loan_data())

        assert isinstance(loan.borrower, StudentBorrower)
        assert loan.student_id == "student_test000001"
        assert loan.teacher_id is None
        assert loan.status == LoanStatus.LOANED
        assert loan.is_active
        assert loan.outstanding_quantity == 3

    def test_teacher_borrower_from_dict(self):
        loan = Loan(**loan_data(borrower={"kind": "teacher", "teacher_id": "teacher_test000001"}))
        assert isinstance(loan.borrower, TeacherBorrower)
        assert loan.teacher_id == "teacher_test000001"
        assert loan.student_id is None

    def test_unknown_borrower_kind_rejected(self):
        with pytest.raises(ValidationError):
            Loan(**loan_data(borrower={"kind": "parent", "parent_id": "parent_000001"}))

    def test_returned_cannot_exceed_taken(self):
        with pytest.raises(ValidationError, match="cannot exceed"):
            Loan(**loan_data(returned_quantity=4, status=LoanStatus.RETURNED))

    def test_status_must_match_quantities(self):
        with pytest.raises(ValidationError, match="must have status Returned"):
            Loan(**loan_data(returned_quantity=3, status=LoanStatus.PENDING))
        with pytest.raises(ValidationError, match="cannot be Returned"):
            Loan(**loan_data(returned_quantity=1, status=LoanStatus.RETURNED))
        with pytest.raises(ValidationError, match="cannot be Pending"):
            Loan(**loan_data(status=LoanStatus.PENDING))

    def test_zero_taken_rejected(self):
        with pytest.raises(ValidationError):
            Loan(**loan_data(taken_quantity=0))

    def test_return_date_before_loan_date_rejected(self):
        with pytest.raises(ValidationError):
            Loan(
                **loan_data(
                    loan_date=date.today(),
                    return_date=date.today() - timedelta(days=1),
                    returned_quantity=1,
                    status=LoanStatus.PENDING,
                )
            )

    def test_json_dump_carries_status_value(self):
        dumped = Loan(**loan_data()).model_dump(mode="json")
        assert dumped["status"] == "Loaned"
        assert dumped["borrower"] == {"kind": "student", "student_id": "student_test000001"}

    def test_returned_loan_is_not_active(self):
        loan = Loan(**loan_data(returned_quantity=3, status=LoanStatus.RETURNED))
        assert not loan.is_active
        assert loan.outstanding_quantity == 0


class TestPeopleModels:
    def test_student_grade_range(self):
        with pytest.raises(ValidationError):
            Student(id="student_test000001", name="Ana", grade=13, classroom="A", shift="Morning")

    def test_student_birth_date_not_in_future(self):
        with pytest.raises(ValidationError, match="future"):
            Student(
                id="student_test000001",
                name="Ana",
                grade=3,
                classroom="A",
                shift="Morning",
                birth_date=date.today() + timedelta(days=1),
            )

    def test_school_phone_format(self):
        assert School(id="school_test000001", name="Escola", phone="+55 (11) 4000-1234")
        with pytest.raises(ValidationError):
            School(id="school_test000001", name="Escola", phone="call me")


class TestStorytellingModel:
    def test_session_date_not_in_future(self):
        with pytest.raises(ValidationError, match="future"):
            StorytellingSession(
                id="story_test000001",
                teacher_id="teacher_test000001",
                storyteller_id="teacher_test000002",
                book_id="book_test000001",
                grade=2,
                classroom="C",
                shift="Morning",
                session_date=date.today() + timedelta(days=1),
                student_count=20,
            )
