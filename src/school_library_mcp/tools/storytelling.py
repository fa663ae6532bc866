"""Storytelling Tools

Tools:
- add_storytelling: Record a book read aloud to a class
- update_storytelling
- delete_storytelling
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..database.repository import NotFoundError
from ..database.storytelling_repository import (
    StorytellingCreateSchema,
    StorytellingRepository,
    StorytellingUpdateSchema,
)
from ..observability.decorators import trace_tool
from .common import format_success_response, parse_arguments, run_tool

TEACHER_ID_PATTERN = r"^teacher_[a-zA-Z0-9_]{6,}$"
STORY_ID_PATTERN = r"^story_[a-zA-Z0-9_]{6,}$"


def _not_in_future(v: date | None) -> date | None:
    if v is not None and v > date.today():
        raise ValueError("Session date cannot be in the future")
    return v


class AddStorytellingInput(BaseModel):
    """Input schema for recording a storytelling session."""

    teacher_id: str = Field(
        ..., description="Teacher responsible for the class", pattern=TEACHER_ID_PATTERN
    )
    storyteller_id: str = Field(
        ..., description="Teacher who told the story", pattern=TEACHER_ID_PATTERN
    )
    book_id: str = Field(..., pattern=r"^book_[a-zA-Z0-9_]{6,}$")
    grade: int = Field(..., ge=1, le=12)
    classroom: str = Field(..., min_length=1, max_length=20)
    shift: str = Field(..., min_length=1, max_length=20)
    session_date: date = Field(default_factory=date.today)
    student_count: int = Field(..., ge=1, le=200, description="Students who attended")
    notes: str | None = Field(default=None, max_length=1000)

    check_session_date = field_validator("session_date")(_not_in_future)


class UpdateStorytellingInput(BaseModel):
    """Only the given fields change."""

    session_id: str = Field(..., pattern=STORY_ID_PATTERN)
    teacher_id: str | None = Field(default=None, pattern=TEACHER_ID_PATTERN)
    storyteller_id: str | None = Field(default=None, pattern=TEACHER_ID_PATTERN)
    book_id: str | None = Field(default=None, pattern=r"^book_[a-zA-Z0-9_]{6,}$")
    grade: int | None = Field(default=None, ge=1, le=12)
    classroom: str | None = Field(default=None, min_length=1, max_length=20)
    shift: str | None = Field(default=None, min_length=1, max_length=20)
    session_date: date | None = None
    student_count: int | None = Field(default=None, ge=1, le=200)
    notes: str | None = Field(default=None, max_length=1000)

    check_session_date = field_validator("session_date")(_not_in_future)


class DeleteStorytellingInput(BaseModel):
    session_id: str = Field(..., pattern=STORY_ID_PATTERN)


@trace_tool("add_storytelling")
async def add_storytelling_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Record a storytelling session. It belongs to the book's school."""
    params = parse_arguments(AddStorytellingInput, arguments, "add_storytelling")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        story = StorytellingRepository(session).create(
            StorytellingCreateSchema(**params.model_dump())
        )
        return format_success_response(
            f"Recorded storytelling of '{story.book_title}' by {story.storyteller_name} "
            f"for grade {story.grade} class {story.classroom} ({story.student_count} students).",
            {"session": story.model_dump(mode="json")},
        )

    return run_tool(
        "add_storytelling", work, book_id=params.book_id, storyteller_id=params.storyteller_id
    )


@trace_tool("update_storytelling")
async def update_storytelling_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(UpdateStorytellingInput, arguments, "update_storytelling")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        changes = params.model_dump(exclude={"session_id"}, exclude_unset=True)
        story = StorytellingRepository(session).update(
            params.session_id, StorytellingUpdateSchema(**changes)
        )
        return format_success_response(
            f"Updated storytelling session {story.id}.",
            {"session": story.model_dump(mode="json")},
        )

    return run_tool("update_storytelling", work, session_id=params.session_id)


@trace_tool("delete_storytelling")
async def delete_storytelling_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    params = parse_arguments(DeleteStorytellingInput, arguments, "delete_storytelling")
    if isinstance(params, dict):
        return params

    def work(session: Session) -> dict[str, Any]:
        if not StorytellingRepository(session).delete(params.session_id):
            raise NotFoundError(f"Storytelling session {params.session_id} not found")
        return format_success_response(
            f"Deleted storytelling session {params.session_id}.",
            {"session_id": params.session_id},
        )

    return run_tool("delete_storytelling", work, session_id=params.session_id)


add_storytelling = {
    "name": "add_storytelling",
    "description": (
        "Record a storytelling session: a book read aloud by a storyteller to a class "
        "(grade, classroom, shift) under its class teacher, with the number of students present."
    ),
    "inputSchema": AddStorytellingInput.model_json_schema(),
    "handler": add_storytelling_handler,
}

update_storytelling = {
    "name": "update_storytelling",
    "description": "Update a storytelling session. Only the fields given are changed.",
    "inputSchema": UpdateStorytellingInput.model_json_schema(),
    "handler": update_storytelling_handler,
}

delete_storytelling = {
    "name": "delete_storytelling",
    "description": "Delete a storytelling session.",
    "inputSchema": DeleteStorytellingInput.model_json_schema(),
    "handler": delete_storytelling_handler,
}
