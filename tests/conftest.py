"""Test configuration and fixtures for the School Library MCP Server.

1. Isolated test databases - each test gets its own SQLite file
2. Configuration overrides - every test runs against a test ServerConfig
3. Session patching - tools and resources see the test session
4. Sample records created through the repositories
5. An in-memory Google Books for the ISBN lookup
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import httpx
import logfire
import pytest
from sqlalchemy.orm import Session

from school_library_mcp.config import ServerConfig, reset_config, set_config
from school_library_mcp.database.book_repository import BookCreateSchema, BookRepository
from school_library_mcp.database.school_repository import SchoolCreateSchema, SchoolRepository
from school_library_mcp.database.session import DatabaseManager
from school_library_mcp.database.student_repository import (
    StudentCreateSchema,
    StudentRepository,
)
from school_library_mcp.database.teacher_repository import (
    TeacherCreateSchema,
    TeacherRepository,
)

# Spans and metrics stay local during tests
logfire.configure(send_to_logfire=False, console=False)

# Kept before books_api patches httpx.AsyncClient
REAL_ASYNC_CLIENT = httpx.AsyncClient

RESOURCE_MODULES = (
    "school_library_mcp.resources.books",
    "school_library_mcp.resources.loans",
    "school_library_mcp.resources.people",
    "school_library_mcp.resources.stats",
    "school_library_mcp.resources.storytelling",
)


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Temporary database file, one per test."""
    return tmp_path / "test_school_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def test_db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """A DatabaseManager on the test file, schema created, foreign keys on."""
    manager = DatabaseManager(test_database_url)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def test_db_session(test_db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Session on the test database. Tests that expect a failed commit leave it dirty."""
    session = test_db_manager.create_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# === Configuration Fixtures ===


@pytest.fixture(autouse=True)
def test_config(test_db_path: Path) -> Generator[ServerConfig, None, None]:
    """Install a test configuration for every test.

    Repositories read the stock policy and page limits from ``get_config()``,
    so no test should fall back to the environment.
    """
    reset_config()
    config = ServerConfig(
        server_name="test-school-library",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
    )
    set_config(config)

    yield config

    reset_config()


@pytest.fixture
def use_config(test_config: ServerConfig):
    """Swap in a copy of the test config with some fields changed."""

    def _use(**changes) -> ServerConfig:
        config = test_config.model_copy(update=changes)
        set_config(config)
        return config

    return _use


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove SCHOOL_LIBRARY_* variables for settings tests."""
    for key in list(os.environ):
        if key.startswith("SCHOOL_LIBRARY_"):
            monkeypatch.delenv(key)


# === Session Patching ===


@pytest.fixture
def mock_get_session(test_db_session, monkeypatch):
    """Make the tool handlers use the test session."""

    @contextmanager
    def _mock_get_session():
        yield test_db_session

    monkeypatch.setattr("school_library_mcp.tools.common.get_session", _mock_get_session)
    return test_db_session


@pytest.fixture
def mock_session_scope(test_db_session, monkeypatch):
    """Make the resource handlers use the test session."""

    @contextmanager
    def _mock_session_scope():
        yield test_db_session

    for module in RESOURCE_MODULES:
        monkeypatch.setattr(f"{module}.session_scope", _mock_session_scope)
    return test_db_session


# === Sample Records ===


@pytest.fixture
def sample_school(test_db_session):
    return SchoolRepository(test_db_session).create(
        SchoolCreateSchema(name="Escola Estadual Cecília Meireles", phone="(11) 4000-1234")
    )


@pytest.fixture
def sample_student(test_db_session, sample_school):
    return StudentRepository(test_db_session).create(
        StudentCreateSchema(
            name="Ana Souza",
            grade=3,
            classroom="A",
            shift="Morning",
            school_id=sample_school.id,
        )
    )


@pytest.fixture
def sample_teacher(test_db_session, sample_school):
    return TeacherRepository(test_db_session).create(
        TeacherCreateSchema(name="Marta Ribeiro", school_id=sample_school.id)
    )


@pytest.fixture
def sample_book(test_db_session, sample_school):
    """A title with five copies and no loans."""
    return BookRepository(test_db_session).create(
        BookCreateSchema(
            title="O Pequeno Príncipe",
            barcode="9788595081512",
            total_copies=5,
            school_id=sample_school.id,
        )
    )


# === Book Data Service ===


class FakeBooksAPI:
    """Answers Google Books volume queries from ``volumes`` (ISBN -> volumeInfo)."""

    def __init__(self):
        self.volumes: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.status_code = 200

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"code": self.status_code}})

        isbn = request.url.params["q"].removeprefix("isbn:")
        volume = self.volumes.get(isbn)
        if volume is None:
            return httpx.Response(200, json={"kind": "books#volumes", "totalItems": 0})
        return httpx.Response(
            200,
            json={"kind": "books#volumes", "totalItems": 1, "items": [{"volumeInfo": volume}]},
        )

    def client(self, **kwargs) -> httpx.AsyncClient:
        return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(self.handle), **kwargs)


@pytest.fixture
def books_api(monkeypatch) -> FakeBooksAPI:
    """Route the lookup's own HTTP clients to a FakeBooksAPI."""
    api = FakeBooksAPI()
    api.volumes["9788595081512"] = {
        "title": "O Pequeno Príncipe",
        "authors": ["Antoine de Saint-Exupéry"],
        "publisher": "HarperCollins",
        "publishedDate": "2018-04-02",
    }
    monkeypatch.setattr("school_library_mcp.book_lookup.httpx.AsyncClient", api.client)
    return api
