"""Tests for the catalog tools (lookup_book, add_book, update_book, delete_book)."""

from datetime import date

from school_library_mcp.database.schema import Book as BookDB
from school_library_mcp.database.schema import Loan as LoanDB
from school_library_mcp.database.schema import LoanStatusEnum
from school_library_mcp.tools.catalog import (
    add_book_handler,
    delete_book_handler,
    lookup_book_handler,
    update_book_handler,
)


def text_of(result):
    return result["content"][0]["text"]


class TestAddBookTool:
    async def test_add_book(self, mock_get_session, sample_school):
        result = await add_book_handler(
            {
                "title": "Menina Bonita do Laço de Fita",
                "barcode": " 9788508101726 ",
                "total_copies": 4,
                "school_id": sample_school.id,
            }
        )

        assert not result.get("isError")
        book = result["data"]["book"]
        assert book["barcode"] == "9788508101726"
        assert book["available_copies"] == 4
        assert book["loaned_copies"] == 0
        assert book["is_low_stock"] is True
        assert mock_get_session.get(BookDB, book["id"]).total_copies == 4

    async def test_defaults_to_one_copy(self, mock_get_session):
        result = await add_book_handler({"title": "Single", "barcode": "111"})
        assert result["data"]["book"]["total_copies"] == 1

    async def test_duplicate_barcode(self, mock_get_session, sample_book):
        result = await add_book_handler(
            {"title": "Again", "barcode": sample_book.barcode, "school_id": sample_book.school_id}
        )
        assert result["isError"] is True
        assert text_of(result).startswith("Operation failed")

    async def test_unknown_school(self, mock_get_session):
        result = await add_book_handler(
            {"title": "Lost", "barcode": "222", "school_id": "school_missing001"}
        )
        assert text_of(result).startswith("Not found")

    async def test_invalid_input(self, mock_get_session):
        result = await add_book_handler({"title": "  ", "barcode": "1", "total_copies": -1})
        assert text_of(result).startswith("Invalid parameters")
        assert "total_copies" in text_of(result)


class TestUpdateBookTool:
    async def test_update_title(self, mock_get_session, sample_book):
        result = await update_book_handler({"book_id": sample_book.id, "title": "Novo Título"})

        assert not result.get("isError")
        assert result["data"]["book"]["title"] == "Novo Título"
        assert result["data"]["book"]["total_copies"] == 5

    async def test_lowering_copies_below_loans_warns(
        self, mock_get_session, sample_book, sample_student
    ):
        mock_get_session.add(
            LoanDB(
                id="loan_test000001",
                book_id=sample_book.id,
                student_id=sample_student.id,
                taken_quantity=4,
                returned_quantity=0,
                status=LoanStatusEnum.LOANED,
                loan_date=date.today(),
            )
        )
        mock_get_session.commit()

        result = await update_book_handler({"book_id": sample_book.id, "total_copies": 3})

        assert not result.get("isError")
        assert "Warning: 1 more copies" in text_of(result)
        assert result["data"]["book"]["available_copies"] == 0

    async def test_unknown_book(self, mock_get_session):
        result = await update_book_handler({"book_id": "book_missing0001", "title": "X"})
        assert text_of(result).startswith("Not found")


class TestDeleteBookTool:
    async def test_delete_book(self, mock_get_session, sample_book):
        result = await delete_book_handler({"book_id": sample_book.id})

        assert not result.get("isError")
        assert "Deleted 'O Pequeno Príncipe'" in text_of(result)
        assert mock_get_session.get(BookDB, sample_book.id) is None

    async def test_delete_unknown_book(self, mock_get_session):
        result = await delete_book_handler({"book_id": "book_missing0001"})
        assert text_of(result).startswith("Not found")


class TestIsbnLookup:
    async def test_lookup_book(self, mock_get_session, books_api):
        result = await lookup_book_handler({"isbn": "978-85-95081-51-2"})

        assert not result.get("isError")
        assert "Found 'O Pequeno Príncipe' by Antoine de Saint-Exupéry" in text_of(result)
        assert result["data"]["book_info"]["publisher"] == "HarperCollins"
        assert result["data"]["catalog_book_id"] is None

    async def test_lookup_reports_catalog_copy(self, mock_get_session, books_api, sample_book):
        result = await lookup_book_handler({"isbn": sample_book.barcode})

        assert result["data"]["catalog_book_id"] == sample_book.id
        assert f"Already in the catalog as {sample_book.id}" in text_of(result)

    async def test_lookup_unknown_isbn(self, mock_get_session, books_api):
        result = await lookup_book_handler({"isbn": "9780000000002"})
        assert text_of(result).startswith("Not found")

    async def test_lookup_service_down(self, mock_get_session, books_api):
        books_api.status_code = 500
        result = await lookup_book_handler({"isbn": "9788595081512"})

        assert result["isError"] is True
        assert text_of(result).startswith("Operation failed")

    async def test_add_book_title_from_barcode(self, mock_get_session, books_api, sample_school):
        result = await add_book_handler(
            {"barcode": "9788595081512", "total_copies": 3, "school_id": sample_school.id}
        )

        assert not result.get("isError")
        book = result["data"]["book"]
        assert book["title"] == "O Pequeno Príncipe"
        assert mock_get_session.get(BookDB, book["id"]).title == "O Pequeno Príncipe"

    async def test_add_book_given_title_skips_lookup(self, mock_get_session, books_api):
        result = await add_book_handler(
            {"title": "Caderno de Receitas", "barcode": "9788595081512"}
        )

        assert result["data"]["book"]["title"] == "Caderno de Receitas"
        assert books_api.requests == []

    async def test_add_book_without_title_or_match(self, mock_get_session, books_api):
        result = await add_book_handler({"barcode": "9780000000002"})

        assert text_of(result).startswith("Invalid parameters")
        assert mock_get_session.query(BookDB).count() == 0
