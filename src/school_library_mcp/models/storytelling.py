"""
Storytelling session model.

A session records a book being read aloud to a class: which class teacher's
class it was, who told the story, and how many students attended.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator


class StorytellingSession(BaseModel):
    """A book read aloud to one class."""

    id: str = Field(
        ...,
        description="Unique identifier for the session",
        pattern=r"^story_[a-zA-Z0-9_]{6,}$",
    )
    teacher_id: str = Field(
        ...,
        description="Teacher responsible for the class",
        pattern=r"^teacher_[a-zA-Z0-9_]{6,}$",
    )
    storyteller_id: str = Field(
        ...,
        description="Teacher who told the story",
        pattern=r"^teacher_[a-zA-Z0-9_]{6,}$",
    )
    book_id: str = Field(..., pattern=r"^book_[a-zA-Z0-9_]{6,}$")
    grade: int = Field(..., ge=1, le=12)
    classroom: str = Field(..., max_length=20)
    shift: str = Field(..., max_length=20)
    session_date: date = Field(default_factory=date.today)
    student_count: int = Field(..., ge=1, le=200, description="Students who attended")
    notes: str | None = Field(None, max_length=1000)
    school_id: str | None = None

    # Denormalised names for listings
    teacher_name: str | None = None
    storyteller_name: str | None = None
    book_title: str | None = None

    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_session_date(self) -> "StorytellingSession":
        if self.session_date > date.today():
            raise ValueError("Session date cannot be in the future")
        return self
