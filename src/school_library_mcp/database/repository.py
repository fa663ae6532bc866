"""
Repository pattern implementation for the School Library MCP Server.

Repositories sit between the MCP handlers and SQLAlchemy:

1. **Protocol Separation**: Tools and Resources deal in Pydantic models,
   never in ORM rows
2. **School Scope**: List operations take an optional ``school_id`` so each
   school's library stays partitioned
3. **Consistency**: Every query goes through ``mcp_safe_query`` and every
   write through ``mcp_safe_commit``

The base repository provides common CRUD operations; the entity repositories
add the queries their Resources and Tools need.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_config
from ..database.schema import Base
from ..database.schema import School as SchoolDB
from ..database.session import mcp_safe_commit, mcp_safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class RepositoryException(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""


class DuplicateError(RepositoryException):
    """Raised when attempting to create a duplicate entity."""


class InvalidOperationError(RepositoryException):
    """Raised when a write is rejected by the loan and stock rules."""


class PaginationParams(BaseModel):
    """Standard pagination parameters for MCP list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        """Validate pagination parameters against the configured maximum page size."""
        max_page_size = get_config().max_page_size
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > max_page_size:
            raise ValueError(f"Page size must be between 1 and {max_page_size}")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for MCP list operations."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(
        cls, items: list, total: int, pagination: PaginationParams
    ) -> "PaginatedResponse":
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common CRUD operations.

    Subclasses name their SQLAlchemy table (``model_class``), their response
    model (``response_schema``) and the prefix used for generated IDs.
    """

    id_prefix: str = ""

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: str) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == str(id))
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.entity_name} by ID",
        )

    def _require_db_obj(self, id: str) -> ModelType:
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} {id} not found")
        return db_obj

    def get_by_id(self, id: str) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(
        self,
        school_id: str | None = None,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> list[ResponseSchemaType] | PaginatedResponse[ResponseSchemaType]:
        """
        Get all entities, optionally for one school, sorted and paginated.

        Args:
            school_id: Only return entities belonging to this school
            pagination: Pagination parameters; a plain list is returned without them
            order_by: Field name to order by
            order_desc: Whether to order descending
        """
        query = select(self.model_class)
        count_query = select(func.count()).select_from(self.model_class)

        if school_id is not None and hasattr(self.model_class, "school_id"):
            query = query.where(self.model_class.school_id == school_id)
            count_query = count_query.where(self.model_class.school_id == school_id)

        if order_by and hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
            query = query.order_by(desc(order_field) if order_desc else asc(order_field))

        if pagination:
            pagination.validate_params()

            total = (
                mcp_safe_query(
                    self.session,
                    lambda s: s.execute(count_query).scalar(),
                    "Failed to get total count",
                )
                or 0
            )

            query = query.offset(pagination.offset).limit(pagination.page_size)
            results = mcp_safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get paginated results",
            )

            items = [self._to_response_model(item) for item in results]
            return PaginatedResponse.build(items, total, pagination)

        results = mcp_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to get all results"
        )
        return [self._to_response_model(item) for item in results]

    def count(self, school_id: str | None = None) -> int:
        query = select(func.count()).select_from(self.model_class)
        if school_id is not None and hasattr(self.model_class, "school_id"):
            query = query.where(self.model_class.school_id == school_id)
        return (
            mcp_safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                f"Failed to count {self.entity_name}",
            )
            or 0
        )

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity with a generated ID.

        Raises:
            DuplicateError: If a unique constraint is violated
            RepositoryException: On other database errors
        """
        try:
            db_obj = self.model_class(id=self._generate_id(), **data.model_dump())
            self.session.add(db_obj)
            self.session.flush()
            mcp_safe_commit(self.session, f"create {self.entity_name}")
            self.session.refresh(db_obj)
            return self._to_response_model(db_obj)
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateError(f"{self.entity_name} already exists: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryException(f"Database error: {e!s}") from e

    def update(self, id: str, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Update existing entity with the fields set on ``data``.

        Raises:
            NotFoundError: If the entity does not exist
            DuplicateError: If the update violates a unique constraint
        """
        db_obj = self._require_db_obj(id)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)

        try:
            self.session.flush()
            mcp_safe_commit(self.session, f"update {self.entity_name}")
            self.session.refresh(db_obj)
            return self._to_response_model(db_obj)
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateError(f"Update conflicts with an existing record: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryException(f"Update failed: {e!s}") from e

    def delete(self, id: str) -> bool:
        """
        Delete entity by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return False

        try:
            self.session.delete(db_obj)
            self.session.flush()
            mcp_safe_commit(self.session, f"delete {self.entity_name}")
            return True
        except IntegrityError as e:
            self.session.rollback()
            raise RepositoryException(
                f"{self.entity_name} {id} is still referenced by other records"
            ) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryException(f"Delete failed: {e!s}") from e

    def exists(self, id: str) -> bool:
        """Check if entity exists by ID."""
        query = (
            select(func.count()).select_from(self.model_class).where(self.model_class.id == str(id))
        )
        count = mcp_safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return count > 0

    def _resolve_school_id(self, school_id: str | None) -> str | None:
        """
        Fall back to the configured default school and check the school exists.

        Raises:
            NotFoundError: If the school is unknown
        """
        school_id = school_id or get_config().default_school_id
        if school_id is None:
            return None

        found = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(func.count()).select_from(SchoolDB).where(SchoolDB.id == school_id)
            ).scalar(),
            "Failed to look up school",
        )
        if not found:
            raise NotFoundError(f"School {school_id} not found")
        return school_id

    def _generate_id(self) -> str:
        """Generate a unique ID: ``{prefix}_{timestamp}{sequence}``."""
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        count = (
            mcp_safe_query(
                self.session,
                lambda s: s.execute(
                    select(func.count())
                    .select_from(self.model_class)
                    .where(self.model_class.id.like(f"{self.id_prefix}_{timestamp}%"))
                ).scalar(),
                f"Failed to count {self.entity_name} for ID generation",
            )
            or 0
        )
        sequence = count + 1
        # Deleted records leave gaps, so the count alone can collide
        while self.exists(f"{self.id_prefix}_{timestamp}{sequence:04d}"):
            sequence += 1
        return f"{self.id_prefix}_{timestamp}{sequence:04d}"
