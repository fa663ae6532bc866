"""
School Library MCP Server Package.

An MCP (Model Context Protocol) server for school libraries: a book catalog,
a loan ledger for students and teachers, storytelling sessions, and stock
figures that are always derived from the loans rather than stored.

Key Components:
- models: Pydantic models for data validation and serialization
- stock: Pure loan and stock consistency rules
- database: SQLAlchemy schema, sessions and repositories
- config: Configuration management with pydantic-settings
- resources: MCP resources (read-only endpoints)
- tools: MCP tools (operations with side effects)
- observability: Logfire spans and metrics
"""

__version__ = "0.1.0"

from . import database

__all__ = [
    "__version__",
    "database",
]
