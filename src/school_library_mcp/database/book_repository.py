"""
Book repository implementation for the School Library MCP Server.

The catalog store. Books only carry their authoritative ``total_copies``;
every read that shows availability joins in the active loans and derives it
through ``compute_book_stock``:

1. **MCP Resources**: browsing the catalog with derived stock, barcode lookup
2. **MCP Tools**: add_book, update_book, delete_book
3. **Stock Summary**: all books plus all active loans in one load

Deleting a book leaves its loans in place; they no longer count towards any
book's stock.
"""

import enum

from pydantic import BaseModel, Field
from sqlalchemy import and_, func, select

from ..database.schema import Book as BookDB
from ..database.session import mcp_safe_query
from ..models.book import Book as BookModel
from ..stock import BookStock, StockSummary, compute_book_stock, compute_stock_summary
from ..stock.summary import DEFAULT_LOW_STOCK_THRESHOLD, group_active_loans
from .loan_repository import LoanRepository
from .repository import (
    BaseRepository,
    DuplicateError,
    PaginatedResponse,
    PaginationParams,
)


class BookCreateSchema(BaseModel):
    """Schema for adding a title to the catalog."""

    title: str
    barcode: str
    total_copies: int | None = 1
    school_id: str | None = None


class BookUpdateSchema(BaseModel):
    """Schema for updating a book - all fields optional."""

    title: str | None = None
    barcode: str | None = None
    total_copies: int | None = Field(None, ge=0)


class BookSortOptions(str, enum.Enum):
    """Sorting options for book queries."""

    TITLE = "title"
    CREATED_AT = "created_at"
    TOTAL_COPIES = "total_copies"


class BookWithStock(BookModel):
    """Book model extended with its derived stock."""

    available_copies: int = Field(..., ge=0)
    loaned_copies: int = Field(..., ge=0)
    overcommitted_copies: int = Field(default=0, ge=0)
    is_low_stock: bool = False

    @classmethod
    def from_stock(
        cls, book: BookModel, stock: BookStock, low_stock_threshold: int
    ) -> "BookWithStock":
        return cls(
            **book.model_dump(),
            available_copies=stock.available,
            loaned_copies=stock.loaned,
            overcommitted_copies=stock.overcommitted,
            is_low_stock=stock.is_low(low_stock_threshold),
        )


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """
    Repository for the book catalog.

    - Resources: library://books/list, library://books/{book_id},
      library://books/barcode/{barcode}, library://stats/stock
    - Tools: add_book, update_book, delete_book
    """

    id_prefix = "book"

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    @property
    def loans(self) -> LoanRepository:
        return LoanRepository(self.session)

    def create(self, data: BookCreateSchema) -> BookModel:
        """
        Add a book, defaulting to the configured school.

        Raises:
            NotFoundError: If the school is unknown
            DuplicateError: If the school already has a book with this barcode
        """
        school_id = self._resolve_school_id(data.school_id)
        barcode = data.barcode.strip()

        if self.get_by_barcode(barcode, school_id=school_id) is not None:
            raise DuplicateError(f"A book with barcode {barcode} already exists")

        return super().create(
            data.model_copy(update={"school_id": school_id, "barcode": barcode})
        )

    def update(self, id: str, data: BookUpdateSchema) -> BookModel:
        """
        Update a book.

        Changing ``total_copies`` immediately changes the derived stock; loans
        are left alone even if they now exceed the copy count.
        """
        if data.barcode is not None:
            current = self._require_db_obj(id)
            existing = self.get_by_barcode(data.barcode.strip(), school_id=current.school_id)
            if existing is not None and existing.id != id:
                raise DuplicateError(f"A book with barcode {data.barcode} already exists")
        return super().update(id, data)

    def get_by_barcode(self, barcode: str, school_id: str | None = None) -> BookModel | None:
        """
        Look up a book by its barcode, within one school when given.

        Returns the first match; barcodes are only unique per school.
        """
        filters = [BookDB.barcode == barcode.strip()]
        if school_id is not None:
            filters.append(BookDB.school_id == school_id)
        query = select(BookDB).where(and_(*filters)).order_by(BookDB.created_at).limit(1)
        result = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by barcode",
        )
        if result is None:
            return None
        return self._to_response_model(result)

    def with_stock(
        self, book: BookModel, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    ) -> BookWithStock:
        """Attach derived stock to one book."""
        return BookWithStock.from_stock(
            book, self.loans.stock_for_book(book), low_stock_threshold
        )

    def get_with_stock(
        self, book_id: str, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    ) -> BookWithStock | None:
        book = self.get_by_id(book_id)
        if book is None:
            return None
        return self.with_stock(book, low_stock_threshold)

    def list_with_stock(
        self,
        school_id: str | None = None,
        title: str | None = None,
        pagination: PaginationParams | None = None,
        sort_by: BookSortOptions = BookSortOptions.TITLE,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> PaginatedResponse[BookWithStock]:
        """
        Browse the catalog with derived stock.

        Active loans are loaded once for the whole page.
        """
        filters = []
        if school_id is not None:
            filters.append(BookDB.school_id == school_id)
        if title:
            filters.append(BookDB.title.ilike(f"%{title}%"))

        sort_field = {
            BookSortOptions.TITLE: BookDB.title,
            BookSortOptions.CREATED_AT: BookDB.created_at,
            BookSortOptions.TOTAL_COPIES: BookDB.total_copies,
        }.get(sort_by, BookDB.title)

        query = select(BookDB).order_by(sort_field, BookDB.id)
        count_query = select(func.count()).select_from(BookDB)
        if filters:
            query = query.where(and_(*filters))
            count_query = count_query.where(and_(*filters))

        pagination = pagination or PaginationParams()
        pagination.validate_params()

        total = (
            mcp_safe_query(
                self.session, lambda s: s.execute(count_query).scalar(), "Failed to count books"
            )
            or 0
        )
        query = query.offset(pagination.offset).limit(pagination.page_size)
        results = mcp_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list books"
        )

        books = [self._to_response_model(book) for book in results]
        loans_by_book = group_active_loans(
            self.loans.active_loans_for_books([book.id for book in books])
        )
        items = [
            BookWithStock.from_stock(
                book,
                compute_book_stock(book, loans_by_book.get(book.id, ())),
                low_stock_threshold,
            )
            for book in books
        ]
        return PaginatedResponse.build(items, total, pagination)

    def stock_summary(
        self,
        school_id: str | None = None,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> StockSummary:
        """Catalog-wide stock totals for one school, or for every school."""
        books = self.get_all(school_id=school_id)
        book_ids = None if school_id is None else [book.id for book in books]
        loans = self.loans.active_loans_for_books(book_ids)
        return compute_stock_summary(books, loans, low_stock_threshold)
