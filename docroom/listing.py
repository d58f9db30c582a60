"""Combined folder + document listing.

Folders and documents in one parent are projected onto the same columns,
unioned, sorted and sliced by the database.
"""

import math
from dataclasses import dataclass

from sqlalchemy import BigInteger, cast, func, literal, null, select, union_all
from sqlalchemy.orm import Session

from . import schemas
from .models import Document, Folder
from .repositories import parent_criterion, search_criterion

FILE_SORT_FIELDS = ("name", "type", "size", "created_at")
DEFAULT_SORT = "name"
DEFAULT_ORDER = "asc"
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class FileQuery:
    folder_id: int | None = None
    page: int = 1
    limit: int = DEFAULT_LIMIT
    sort: str | None = DEFAULT_SORT
    order: str | None = DEFAULT_ORDER
    search: str | None = None

    def normalized(self) -> "FileQuery":
        return FileQuery(
            folder_id=self.folder_id,
            page=max(self.page, 1),
            limit=min(max(self.limit, 1), MAX_LIMIT),
            sort=self.sort if self.sort in FILE_SORT_FIELDS else DEFAULT_SORT,
            order=self.order if self.order in ("asc", "desc") else DEFAULT_ORDER,
            search=self.search,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class FilePage:
    items: list[schemas.FileRead]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    def pagination(self) -> schemas.Pagination:
        return schemas.Pagination(
            total=self.total,
            page=self.page,
            limit=self.limit,
            totalPages=self.total_pages,
        )


class FileListing:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _folder_criteria(query: FileQuery):
        criteria = [
            parent_criterion(Folder.parent_id, query.folder_id),
            search_criterion(Folder.name, query.search),
        ]
        return [c for c in criteria if c is not None]

    @staticmethod
    def _document_criteria(query: FileQuery):
        criteria = [
            parent_criterion(Document.folder_id, query.folder_id),
            search_criterion(Document.name, query.search),
        ]
        return [c for c in criteria if c is not None]

    def _count(self, model, criteria) -> int:
        return self.db.scalar(select(func.count(model.id)).where(*criteria)) or 0

    def list_files(self, query: FileQuery) -> FilePage:
        query = query.normalized()
        folder_criteria = self._folder_criteria(query)
        document_criteria = self._document_criteria(query)

        folders = select(
            Folder.id,
            Folder.name,
            literal("folder").label("type"),
            cast(null(), BigInteger).label("size"),
            Folder.parent_id.label("folder_id"),
            Folder.created_by,
            Folder.created_at,
        ).where(*folder_criteria)
        documents = select(
            Document.id,
            Document.name,
            literal("document").label("type"),
            cast(Document.size, BigInteger).label("size"),
            Document.folder_id,
            Document.created_by,
            Document.created_at,
        ).where(*document_criteria)
        files = union_all(folders, documents).subquery("files")

        if query.sort == "size":
            sort_column = func.coalesce(files.c.size, 0)
        else:
            sort_column = files.c[query.sort]
        primary = sort_column.desc() if query.order == "desc" else sort_column.asc()

        stmt = (
            select(files)
            .order_by(primary, files.c.type.asc(), files.c.id.asc())
            .limit(query.limit)
            .offset(query.offset)
        )
        items = [
            schemas.FileRead.model_validate(dict(row))
            for row in self.db.execute(stmt).mappings()
        ]

        total = self._count(Folder, folder_criteria) + self._count(Document, document_criteria)
        return FilePage(items=items, total=total, page=query.page, limit=query.limit)
