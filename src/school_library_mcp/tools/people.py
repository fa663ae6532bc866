"""People Tools - Schools, Students and Teachers

Tools:
- add_school, update_school
- add_student, update_student, delete_student
- add_teacher, update_teacher, delete_teacher

Students and teachers with loans on record cannot be deleted.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..database.repository import NotFoundError
from ..database.school_repository import (
    SchoolCreateSchema,
    SchoolRepository,
    SchoolUpdateSchema,
)
from ..database.student_repository import (
    StudentCreateSchema,
    StudentRepository,
    StudentUpdateSchema,
)
from ..database.teacher_repository import (
    TeacherCreateSchema,
    TeacherRepository,
    TeacherUpdateSchema,
)
from ..observability.decorators import trace_tool
from .common import format_success_response, parse_arguments, run_tool

SCHOOL_ID_PATTERN = r"^school_[a-zA-Z0-9_]{6,}$"
STUDENT_ID_PATTERN = r"^student_[a-zA-Z0-9_]{6,}$"
TEACHER_ID_PATTERN = r"^teacher_[a-zA-Z0-9_]{6,}$"


def _no_future_birth_date(v: date | None) -> date | None:
    if v is not None and v > date.today():
        raise ValueError("Birth date cannot be in the future")
    return v


class AddSchoolInput(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    address: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, pattern=r"^\+?[\d\s\-\(\)]+$")


class UpdateSchoolInput(BaseModel):
    """Input schema for updating a school. Only the given fields change."""

    school_id: str = Field(..., pattern=SCHOOL_ID_PATTERN)
    name: str | None = Field(default=None, min_length=2, max_length=200)
    address: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, pattern=r"^\+?[\d\s\-\(\)]+$")


class AddStudentInput(BaseModel):
    """Input schema for enrolling a student."""

    name: str = Field(..., min_length=2, max_length=200)
    grade: int = Field(..., ge=1, le=12, description="School year")
    classroom: str = Field(..., min_length=1, max_length=20, examples=["A"])
    shift: str = Field(..., min_length=1, max_length=20, examples=["Morning"])
    sex: str | None = Field(default=None, max_length=20)
    birth_date: date | None = None
    school_id: str | None = Field(
        default=None,
        description="School the student attends. Defaults to the server's configured school.",
        pattern=SCHOOL_ID_PATTERN,
    )

    check_birth_date = field_validator("birth_date")(_no_future_birth_date)


class UpdateStudentInput(BaseModel):
    """Input schema for updating a student. Only the given fields change."""

    student_id: str = Field(..., pattern=STUDENT_ID_PATTERN)
    name: str | None = Field(default=None, min_length=2, max_length=200)
    grade: int | None = Field(default=None, ge=1, le=12)
    classroom: str | None = Field(default=None, min_length=1, max_length=20)
    shift: str | None = Field(default=None, min_length=1, max_length=20)
    sex: str | None = Field(default=None, max_length=20)
    birth_date: date | None = None

    check_birth_date = field_validator("birth_date")(_no_future_birth_date)


class StudentIdInput(BaseModel):
    student_id: str = Field(..., pattern=STUDENT_ID_PATTERN)


class AddTeacherInput(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    school_id: str | None = Field(default=None, pattern=SCHOOL_ID_PATTERN)


class UpdateTeacherInput(BaseModel):
    teacher_id: str = Field(..., pattern=TEACHER_ID_PATTERN)
    name: str = Field(..., min_length=2, max_length=200)


class TeacherIdInput(BaseModel):
    teacher_id: str = Field(..., pattern=TEACHER_ID_PATTERN)


@trace_tool("add_school")
async def add_school_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Register a school."""
    params = parse_arguments(AddSchoolInput, arguments, "add_school")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        school = SchoolRepository(session).create(SchoolCreateSchema(**params.model_dump()))
        return format_success_response(
            f"Registered school '{school.name}' ({school.id}).",
            {"school": school.model_dump(mode="json")},
        )

    return run_tool("add_school", work, name=params.name)


@trace_tool("update_school")
async def update_school_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(UpdateSchoolInput, arguments, "update_school")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        changes = params.model_dump(exclude={"school_id"}, exclude_unset=True)
        school = SchoolRepository(session).update(
            params.school_id, SchoolUpdateSchema(**changes)
        )
        return format_success_response(
            f"Updated school '{school.name}' ({school.id}).",
            {"school": school.model_dump(mode="json")},
        )

    return run_tool("update_school", work, school_id=params.school_id)


@trace_tool("add_student")
async def add_student_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Enroll a student."""
    params = parse_arguments(AddStudentInput, arguments, "add_student")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        student = StudentRepository(session).create(StudentCreateSchema(**params.model_dump()))
        return format_success_response(
            f"Enrolled {student.name} ({student.id}) in grade {student.grade}"
            f" class {student.classroom}, {student.shift} shift.",
            {"student": student.model_dump(mode="json")},
        )

    return run_tool("add_student", work, name=params.name, grade=params.grade)


@trace_tool("update_student")
async def update_student_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(UpdateStudentInput, arguments, "update_student")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        changes = params.model_dump(exclude={"student_id"}, exclude_unset=True)
        student = StudentRepository(session).update(
            params.student_id, StudentUpdateSchema(**changes)
        )
        return format_success_response(
            f"Updated student {student.name} ({student.id}).",
            {"student": student.model_dump(mode="json")},
        )

    return run_tool("update_student", work, student_id=params.student_id)


@trace_tool("delete_student")
async def delete_student_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(StudentIdInput, arguments, "delete_student")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        if not StudentRepository(session).delete(params.student_id):
            raise NotFoundError(f"Student {params.student_id} not found")
        return format_success_response(
            f"Deleted student {params.student_id}.", {"student_id": params.student_id}
        )

    return run_tool("delete_student", work, student_id=params.student_id)


@trace_tool("add_teacher")
async def add_teacher_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(AddTeacherInput, arguments, "add_teacher")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        teacher = TeacherRepository(session).create(TeacherCreateSchema(**params.model_dump()))
        return format_success_response(
            f"Added teacher {teacher.name} ({teacher.id}).",
            {"teacher": teacher.model_dump(mode="json")},
        )

    return run_tool("add_teacher", work, name=params.name)


@trace_tool("update_teacher")
async def update_teacher_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(UpdateTeacherInput, arguments, "update_teacher")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        teacher = TeacherRepository(session).update(
            params.teacher_id, TeacherUpdateSchema(name=params.name)
        )
        return format_success_response(
            f"Updated teacher {teacher.name} ({teacher.id}).",
            {"teacher": teacher.model_dump(mode="json")},
        )

    return run_tool("update_teacher", work, teacher_id=params.teacher_id)


@trace_tool("delete_teacher")
async def delete_teacher_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(TeacherIdInput, arguments, "delete_teacher")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        if not TeacherRepository(session).delete(params.teacher_id):
            raise NotFoundError(f"Teacher {params.teacher_id} not found")
        return format_success_response(
            f"Deleted teacher {params.teacher_id}.", {"teacher_id": params.teacher_id}
        )

    return run_tool("delete_teacher", work, teacher_id=params.teacher_id)


add_school = {
    "name": "add_school",
    "description": "Register a school. Each school's books, people and loans are kept apart.",
    "inputSchema": AddSchoolInput.model_json_schema(),
    "handler": add_school_handler,
}

update_school = {
    "name": "update_school",
    "description": "Update a school's name, address or phone. Only the fields given are changed.",
    "inputSchema": UpdateSchoolInput.model_json_schema(),
    "handler": update_school_handler,
}

add_student = {
    "name": "add_student",
    "description": "Enroll a student with their grade (school year), classroom and shift.",
    "inputSchema": AddStudentInput.model_json_schema(),
    "handler": add_student_handler,
}

update_student = {
    "name": "update_student",
    "description": "Update a student's details. Only the fields given are changed.",
    "inputSchema": UpdateStudentInput.model_json_schema(),
    "handler": update_student_handler,
}

delete_student = {
    "name": "delete_student",
    "description": "Delete a student. Refused while the student has loans on record.",
    "inputSchema": StudentIdInput.model_json_schema(),
    "handler": delete_student_handler,
}

add_teacher = {
    "name": "add_teacher",
    "description": "Add a teacher, who can borrow books for a class and run storytelling.",
    "inputSchema": AddTeacherInput.model_json_schema(),
    "handler": add_teacher_handler,
}

update_teacher = {
    "name": "update_teacher",
    "description": "Rename a teacher.",
    "inputSchema": UpdateTeacherInput.model_json_schema(),
    "handler": update_teacher_handler,
}

delete_teacher = {
    "name": "delete_teacher",
    "description": (
        "Delete a teacher. Refused while loans or storytelling sessions reference them."
    ),
    "inputSchema": TeacherIdInput.model_json_schema(),
    "handler": delete_teacher_handler,
}
