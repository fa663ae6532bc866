"""
Book model for the School Library MCP Server.

Only ``total_copies`` is stored. How many copies are on the shelf or out on
loan is always derived from the loan ledger (see ``school_library_mcp.stock``),
so the model carries no availability fields.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Book(BaseModel):
    """Represents a title in a school's catalog."""

    id: str = Field(
        ...,
        description="Unique identifier for the book",
        pattern=r"^book_[a-zA-Z0-9_]{6,}$",
        examples=["book_202401100001"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["O Pequeno Príncipe", "Charlotte's Web"],
    )

    barcode: str = Field(
        ...,
        description="Barcode printed on the copies (usually the ISBN)",
        min_length=1,
        max_length=50,
        examples=["9788595081512"],
    )

    total_copies: int | None = Field(
        default=1,
        description="Number of physical copies the school owns",
        ge=0,
        examples=[1, 5, 30],
    )

    school_id: str | None = Field(
        None,
        description="School that owns the copies",
    )

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime | None = None

    @field_validator("title", "barcode")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "book_202401100001",
                "title": "O Pequeno Príncipe",
                "barcode": "9788595081512",
                "total_copies": 5,
            }
        }
    )
