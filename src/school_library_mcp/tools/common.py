"""
Shared plumbing for the MCP tools.

Tools never raise. Every failure becomes an MCP error result whose text
starts with the kind of failure:

- ``Invalid parameters``: the arguments failed validation
- ``Not found``: an id does not exist
- ``Operation failed``: the loan and stock rules (or a uniqueness check) refused the write
- ``Database error``: a query or commit failed (``DatabaseOperationError``)
- ``Unexpected error``: anything else, including bugs that surface as ``ValueError``
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from ..database.repository import NotFoundError, RepositoryException
from ..database.session import DatabaseOperationError, get_session

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def format_error_response(error_type: str, details: str) -> dict[str, Any]:
    """Format error responses consistently across all tools."""
    return {"isError": True, "content": [{"type": "text", "text": f"{error_type}: {details}"}]}


def format_success_response(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": message}], "data": data}


def log_operation(operation: str, **kwargs) -> None:
    """Log operation details for audit trail."""
    logger.info(
        "Operation: %s | Details: %s", operation, " | ".join(f"{k}={v}" for k, v in kwargs.items())
    )


def parse_arguments(
    schema: type[T], arguments: dict[str, Any], operation: str
) -> T | dict[str, Any]:
    """Validate tool arguments; returns the error response instead of raising."""
    try:
        return schema.model_validate(arguments or {})
    except ValidationError as e:
        logger.warning("Invalid %s parameters: %s", operation, e)
        return format_error_response("Invalid parameters", _validation_message(e))


def run_tool(
    operation: str, work: Callable[[Session], dict[str, Any]], **log_fields
) -> dict[str, Any]:
    """
    Run ``work`` in a fresh session and turn failures into error responses.

    ``work`` receives the session and returns the success response.
    """
    log_operation(f"{operation}_start", **log_fields)
    try:
        with get_session() as session:
            try:
                result = work(session)
            except NotFoundError as e:
                logger.info("%s failed - entity not found: %s", operation, e)
                log_operation(
                    f"{operation}_failed", **log_fields, error_type="not_found", error_details=e
                )
                return format_error_response("Not found", str(e))
            except RepositoryException as e:
                logger.info("%s failed - business rule: %s", operation, e)
                log_operation(
                    f"{operation}_failed",
                    **log_fields,
                    error_type="business_rule",
                    error_details=e,
                )
                return format_error_response("Operation failed", str(e))
            except DatabaseOperationError as e:
                logger.exception("%s database error", operation)
                log_operation(
                    f"{operation}_failed",
                    **log_fields,
                    error_type="database_error",
                    error_details=e,
                )
                return format_error_response("Database error", str(e))

        log_operation(f"{operation}_success", **log_fields)
        return result

    except Exception as e:
        logger.exception("Unexpected error in %s tool", operation)
        return format_error_response("Unexpected error", str(e))


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)
