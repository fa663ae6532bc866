"""
Tests for the loan tools (create_loan, register_return, delete_loan).

1. Input validation
2. Success scenarios with the derived stock in the response
3. Error handling
4. Ledger state after each call
"""

from datetime import date, timedelta

import pytest

from school_library_mcp.database.schema import Loan as LoanDB
from school_library_mcp.database.schema import LoanStatusEnum
from school_library_mcp.tools import all_tools
from school_library_mcp.tools.loans import (
    create_loan_handler,
    delete_loan_handler,
    register_return_handler,
)
from school_library_mcp.tools.people import add_school_handler, add_teacher_handler


def text_of(result):
    return result["content"][0]["text"]


@pytest.fixture
def open_loan_id(mock_get_session, sample_book, sample_student):
    """Create a three-copy loan directly in the ledger and return its id."""
    loan = LoanDB(
        id="loan_test000001",
        book_id=sample_book.id,
        student_id=sample_student.id,
        school_id=sample_book.school_id,
        taken_quantity=3,
        returned_quantity=0,
        status=LoanStatusEnum.LOANED,
        loan_date=date.today() - timedelta(days=5),
    )
    mock_get_session.add(loan)
    mock_get_session.commit()
    return loan.id


class TestCreateLoanTool:
    """Test the create_loan MCP tool."""

    async def test_student_loan(self, mock_get_session, sample_book, sample_student):
        result = await create_loan_handler(
            {"book_id": sample_book.id, "student_id": sample_student.id, "taken_quantity": 3}
        )

        assert not result.get("isError")
        assert "Lent 3 copy(ies) of 'O Pequeno Príncipe'" in text_of(result)
        assert "2 of 5 copies left on the shelf" in text_of(result)

        data = result["data"]
        assert data["loan"]["status"] == "Loaned"
        assert data["loan"]["borrower"]["student_id"] == sample_student.id
        assert data["pending_quantity"] == 3
        assert data["stock"]["available_copies"] == 2
        assert data["stock"]["loaned_copies"] == 3

        stored = mock_get_session.get(LoanDB, data["loan"]["id"])
        assert stored.taken_quantity == 3
        assert stored.status == LoanStatusEnum.LOANED

    async def test_teacher_loan(self, mock_get_session, sample_book, sample_teacher):
        result = await create_loan_handler(
            {
                "book_id": sample_book.id,
                "teacher_id": sample_teacher.id,
                "taken_quantity": 2,
                "grade": 4,
                "classroom": "B",
                "shift": "Afternoon",
            }
        )

        assert not result.get("isError")
        assert f"teacher {sample_teacher.id}" in text_of(result)
        assert result["data"]["loan"]["grade"] == 4

    async def test_overcommit_warns_in_lenient_mode(
        self, mock_get_session, sample_book, sample_student
    ):
        result = await create_loan_handler(
            {"book_id": sample_book.id, "student_id": sample_student.id, "taken_quantity": 7}
        )

        assert not result.get("isError")
        assert "Warning: 2 more copies" in text_of(result)
        assert result["data"]["stock"]["available_copies"] == 0
        assert result["data"]["stock"]["overcommitted_copies"] == 2

    async def test_strict_mode_refuses(
        self, mock_get_session, sample_book, sample_student, use_config
    ):
        use_config(strict_stock_check=True)

        result = await create_loan_handler(
            {"book_id": sample_book.id, "student_id": sample_student.id, "taken_quantity": 6}
        )

        assert result["isError"] is True
        assert text_of(result).startswith("Operation failed")
        assert "only 5 available" in text_of(result)
        assert mock_get_session.query(LoanDB).count() == 0

    async def test_borrower_from_another_school(
        self, mock_get_session, sample_book, sample_school
    ):
        other = await add_school_handler({"name": "Escola Vizinha"})
        teacher = await add_teacher_handler(
            {"name": "Rita Alves", "school_id": other["data"]["school"]["id"]}
        )

        result = await create_loan_handler(
            {"book_id": sample_book.id, "teacher_id": teacher["data"]["teacher"]["id"]}
        )

        assert text_of(result).startswith("Operation failed")
        assert sample_school.id in text_of(result)
        assert mock_get_session.query(LoanDB).count() == 0

    @pytest.mark.parametrize(
        "arguments",
        [
            {"taken_quantity": 0},
            {"student_id": None},
            {"teacher_id": "teacher_test000001"},
            {"loan_date": (date.today() + timedelta(days=1)).isoformat()},
            {"book_id": "not-a-book"},
        ],
    )
    async def test_invalid_parameters(
        self, mock_get_session, sample_book, sample_student, arguments
    ):
        payload = {"book_id": sample_book.id, "student_id": sample_student.id}
        payload.update(arguments)

        result = await create_loan_handler(payload)

        assert result["isError"] is True
        assert text_of(result).startswith("Invalid parameters")

    async def test_unknown_book(self, mock_get_session, sample_student):
        result = await create_loan_handler(
            {"book_id": "book_missing0001", "student_id": sample_student.id}
        )
        assert result["isError"] is True
        assert text_of(result).startswith("Not found")

    async def test_unknown_student(self, mock_get_session, sample_book):
        result = await create_loan_handler(
            {"book_id": sample_book.id, "student_id": "student_missing001"}
        )
        assert result["isError"] is True
        assert "Student student_missing001 not found" in text_of(result)


class TestRegisterReturnTool:
    async def test_partial_return(self, mock_get_session, open_loan_id):
        result = await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 2})

        assert not result.get("isError")
        assert "2 of 3 copies returned, 1 still pending" in text_of(result)
        assert result["data"]["loan"]["status"] == "Pending"
        assert result["data"]["pending_quantity"] == 1
        assert result["data"]["stock"]["available_copies"] == 4

    async def test_full_return(self, mock_get_session, open_loan_id):
        await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 2})
        result = await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 3})

        assert not result.get("isError")
        assert "fully returned" in text_of(result)
        assert result["data"]["loan"]["status"] == "Returned"
        assert result["data"]["stock"]["available_copies"] == 5

        stored = mock_get_session.get(LoanDB, open_loan_id)
        assert stored.status == LoanStatusEnum.RETURNED
        assert stored.return_date == date.today()

    async def test_returned_loan_rejects_more_returns(self, mock_get_session, open_loan_id):
        await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 3})
        result = await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 3})

        assert result["isError"] is True
        assert text_of(result).startswith("Operation failed")
        assert "already returned" in text_of(result)

    async def test_more_than_taken_rejected(self, mock_get_session, open_loan_id):
        result = await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 4})

        assert result["isError"] is True
        assert "exceeds" in text_of(result)
        assert mock_get_session.get(LoanDB, open_loan_id).returned_quantity == 0

    async def test_zero_rejected_by_schema(self, mock_get_session, open_loan_id):
        result = await register_return_handler({"loan_id": open_loan_id, "returned_quantity": 0})
        assert text_of(result).startswith("Invalid parameters")

    async def test_unknown_loan(self, mock_get_session):
        result = await register_return_handler(
            {"loan_id": "loan_missing0001", "returned_quantity": 1}
        )
        assert text_of(result).startswith("Not found")


class TestDeleteLoanTool:
    async def test_delete_active_loan(self, mock_get_session, open_loan_id):
        result = await delete_loan_handler({"loan_id": open_loan_id})

        assert not result.get("isError")
        assert "3 outstanding copies are no longer counted" in text_of(result)
        assert result["data"]["stock"]["available_copies"] == 5
        assert mock_get_session.get(LoanDB, open_loan_id) is None

    async def test_delete_unknown_loan(self, mock_get_session):
        result = await delete_loan_handler({"loan_id": "loan_missing0001"})
        assert text_of(result).startswith("Not found")


class TestToolRegistry:
    def test_tool_definitions(self):
        names = [tool["name"] for tool in all_tools]

        assert len(names) == len(set(names)) == 18
        assert {"create_loan", "register_return", "delete_loan"} <= set(names)
        for tool in all_tools:
            assert tool["description"]
            assert tool["inputSchema"]["type"] == "object"
            assert callable(tool["handler"])
