from datetime import datetime
from typing import Annotated, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

# Column ranges: ids are INTEGER, size is BIGINT.
MAX_ID = 2**31 - 1
MAX_SIZE = 2**63 - 1

RecordId = Annotated[int, Field(ge=1, le=MAX_ID)]


# ---------- Envelope ----------

class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class Envelope(BaseModel, Generic[T]):
    status: Literal["success"] = "success"
    data: T


class PaginatedEnvelope(Envelope[T], Generic[T]):
    pagination: Pagination


class ErrorDetail(BaseModel):
    path: str
    message: str


class ErrorEnvelope(BaseModel):
    status: Literal["error"] = "error"
    message: str
    errors: list[ErrorDetail] | None = None


# ---------- Folders ----------

class FolderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    parent_id: int | None
    created_by: str
    created_at: datetime
    updated_at: datetime


class FolderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: RecordId | None = None
    created_by: str = Field(min_length=1, max_length=100)


class FolderUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    parent_id: RecordId | None = None


# ---------- Documents ----------

class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    size: int
    folder_id: int | None
    created_by: str
    created_at: datetime
    updated_at: datetime


class DocumentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=50)
    size: int = Field(ge=0, le=MAX_SIZE)
    folder_id: RecordId | None = None
    created_by: str = Field(min_length=1, max_length=100)


class DocumentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: str | None = Field(default=None, min_length=1, max_length=50)
    size: int | None = Field(default=None, ge=0, le=MAX_SIZE)
    folder_id: RecordId | None = None


class DocumentIds(BaseModel):
    ids: list[RecordId]


class DocumentMove(BaseModel):
    ids: list[RecordId]
    folder_id: RecordId | None = None


class TypeCount(BaseModel):
    type: str
    count: int


class DocumentStats(BaseModel):
    total_files: int
    total_size: int
    type_distribution: list[TypeCount]


# ---------- Unified listing ----------

class FileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: Literal["folder", "document"]
    size: int | None = None
    folder_id: int | None
    created_by: str
    created_at: datetime
