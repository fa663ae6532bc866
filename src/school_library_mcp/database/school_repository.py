"""School repository: the schools whose libraries share this server."""

from pydantic import BaseModel

from ..database.schema import School as SchoolDB
from ..models.people import School as SchoolModel
from .repository import BaseRepository


class SchoolCreateSchema(BaseModel):
    """Schema for registering a school."""

    name: str
    address: str | None = None
    phone: str | None = None


class SchoolUpdateSchema(BaseModel):
    name: str | None = None
    address: str | None = None
    phone: str | None = None


class SchoolRepository(
    BaseRepository[SchoolDB, SchoolCreateSchema, SchoolUpdateSchema, SchoolModel]
):
    """Repository for schools (library://schools/list, add_school)."""

    id_prefix = "school"

    @property
    def model_class(self):
        return SchoolDB

    @property
    def response_schema(self):
        return SchoolModel
