"""
School, student and teacher models.

Every record belongs to a school; listings are partitioned by ``school_id``.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator


class School(BaseModel):
    """A school running its own library."""

    id: str = Field(
        ...,
        description="Unique identifier for the school",
        pattern=r"^school_[a-zA-Z0-9_]{6,}$",
    )
    name: str = Field(..., min_length=2, max_length=200)
    address: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, pattern=r"^\+?[\d\s\-\(\)]+$")
    created_at: datetime = Field(default_factory=datetime.now)


class Student(BaseModel):
    """A student who can borrow books."""

    id: str = Field(
        ...,
        description="Unique identifier for the student",
        pattern=r"^student_[a-zA-Z0-9_]{6,}$",
    )
    name: str = Field(..., min_length=2, max_length=200)
    grade: int = Field(..., description="School year", ge=1, le=12, examples=[1, 5, 9])
    classroom: str = Field(..., description="Class letter or code", max_length=20, examples=["A"])
    shift: str = Field(..., description="Morning, afternoon...", max_length=20)
    sex: str | None = Field(None, max_length=20)
    birth_date: date | None = None
    school_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v: date | None) -> date | None:
        if v is not None and v > date.today():
            raise ValueError("Birth date cannot be in the future")
        return v


class Teacher(BaseModel):
    """A teacher who can borrow books and run storytelling sessions."""

    id: str = Field(
        ...,
        description="Unique identifier for the teacher",
        pattern=r"^teacher_[a-zA-Z0-9_]{6,}$",
    )
    name: str = Field(..., min_length=2, max_length=200)
    school_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
