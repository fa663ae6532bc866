"""People Resources

Resources:
- library://schools/list
- library://students/list - Ordered by grade, classroom and name
- library://students/search/{name} - Name contains
- library://students/by-grade/{grade}
- library://students/by-class/{grade}/{classroom}/{shift}
- library://teachers/list
"""

import logging
from typing import Any
from urllib.parse import unquote

from fastmcp.exceptions import ResourceError

from ..config import get_config
from ..database.repository import PaginationParams
from ..database.school_repository import SchoolRepository
from ..database.session import session_scope
from ..database.student_repository import StudentRepository, StudentSearchParams
from ..database.teacher_repository import TeacherRepository
from ..observability.decorators import trace_resource

logger = logging.getLogger(__name__)


@trace_resource("schools.list")
async def list_schools_handler() -> dict[str, Any]:
    try:
        with session_scope() as session:
            schools = SchoolRepository(session).get_all(order_by="name")
            return {
                "schools": [school.model_dump(mode="json") for school in schools],
                "count": len(schools),
            }
    except Exception as e:
        logger.exception("Error in schools/list resource")
        raise ResourceError(f"Failed to retrieve schools: {e!s}") from e


@trace_resource("students.list")
async def list_students_handler() -> dict[str, Any]:
    """Returns the students of the configured school (or all), by class then name."""
    try:
        with session_scope() as session:
            students = StudentRepository(session).get_all(
                school_id=get_config().default_school_id, order_by="name"
            )
            students.sort(key=lambda s: (s.grade, s.classroom, s.name))
            return {
                "students": [student.model_dump(mode="json") for student in students],
                "count": len(students),
            }
    except Exception as e:
        logger.exception("Error in students/list resource")
        raise ResourceError(f"Failed to retrieve students: {e!s}") from e


def _filtered_students(search: StudentSearchParams) -> dict[str, Any]:
    config = get_config()
    if search.school_id is None:
        search = search.model_copy(update={"school_id": config.default_school_id})
    with session_scope() as session:
        result = StudentRepository(session).search(
            search, PaginationParams(page=1, page_size=config.max_page_size)
        )
        return {
            "students": [student.model_dump(mode="json") for student in result.items],
            "count": len(result.items),
            "total": result.total,
            "filters": search.model_dump(exclude_none=True),
        }


@trace_resource("students.search")
async def search_students_handler(name: str) -> dict[str, Any]:
    """Students whose name contains ``name``, ignoring case."""
    try:
        return _filtered_students(StudentSearchParams(name=unquote(name)))
    except Exception as e:
        logger.exception("Error in students/search resource")
        raise ResourceError(f"Failed to search students: {e!s}") from e


@trace_resource("students.by_grade")
async def get_grade_students_handler(grade: str) -> dict[str, Any]:
    try:
        return _filtered_students(StudentSearchParams(grade=grade))
    except Exception as e:
        logger.exception("Error in students/by-grade resource")
        raise ResourceError(f"Failed to retrieve students for grade {grade}: {e!s}") from e


@trace_resource("students.by_class")
async def get_class_students_handler(grade: str, classroom: str, shift: str) -> dict[str, Any]:
    """Students of one class: grade, classroom and shift together."""
    try:
        return _filtered_students(
            StudentSearchParams(grade=grade, classroom=unquote(classroom), shift=unquote(shift))
        )
    except Exception as e:
        logger.exception("Error in students/by-class resource")
        raise ResourceError(f"Failed to retrieve class {grade}{classroom}: {e!s}") from e


@trace_resource("teachers.list")
async def list_teachers_handler() -> dict[str, Any]:
    try:
        with session_scope() as session:
            teachers = TeacherRepository(session).get_all(
                school_id=get_config().default_school_id, order_by="name"
            )
            return {
                "teachers": [teacher.model_dump(mode="json") for teacher in teachers],
                "count": len(teachers),
            }
    except Exception as e:
        logger.exception("Error in teachers/list resource")
        raise ResourceError(f"Failed to retrieve teachers: {e!s}") from e


people_resources: list[dict[str, Any]] = [
    {
        "uri": "library://schools/list",
        "name": "Schools",
        "description": "Schools registered on this server",
        "mime_type": "application/json",
        "handler": list_schools_handler,
    },
    {
        "uri": "library://students/list",
        "name": "Students",
        "description": "Students with their grade, classroom and shift",
        "mime_type": "application/json",
        "handler": list_students_handler,
    },
    {
        "uri_template": "library://students/search/{name}",
        "name": "Student Search",
        "description": "Students whose name contains the given text",
        "mime_type": "application/json",
        "handler": search_students_handler,
    },
    {
        "uri_template": "library://students/by-grade/{grade}",
        "name": "Students by Grade",
        "description": "Students of one school year, by name",
        "mime_type": "application/json",
        "handler": get_grade_students_handler,
    },
    {
        "uri_template": "library://students/by-class/{grade}/{classroom}/{shift}",
        "name": "Students by Class",
        "description": "Students of one class, identified by grade, classroom and shift",
        "mime_type": "application/json",
        "handler": get_class_students_handler,
    },
    {
        "uri": "library://teachers/list",
        "name": "Teachers",
        "description": "Teachers who can borrow for their classes and run storytelling",
        "mime_type": "application/json",
        "handler": list_teachers_handler,
    },
]
