"""Data access for folders and documents.

Repositories wrap a request-scoped ``Session``. Absence is reported as
``None`` (or an empty list), never as an exception.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from .models import Document, Folder, utcnow

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks a filter that was not supplied, as opposed to an explicit None (root).
UNSET: Any = _Unset()

DOCUMENT_SORT_FIELDS = ("name", "type", "size", "created_at")
SORT_ORDERS = ("asc", "desc")


def search_criterion(column, search: str | None) -> ColumnElement[bool] | None:
    term = (search or "").strip()
    if not term:
        return None
    return column.icontains(term, autoescape=True)


def parent_criterion(column, parent_id) -> ColumnElement[bool] | None:
    if parent_id is UNSET:
        return None
    if parent_id is None:
        return column.is_(None)
    return column == parent_id


# ---------- Folders ----------

class FolderRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self, parent_id=UNSET) -> Sequence[Folder]:
        stmt = select(Folder).order_by(Folder.created_at.desc(), Folder.id.desc())
        criterion = parent_criterion(Folder.parent_id, parent_id)
        if criterion is not None:
            stmt = stmt.where(criterion)
        return self.db.scalars(stmt).all()

    def find_by_id(self, folder_id: int) -> Folder | None:
        return self.db.get(Folder, folder_id)

    def create(self, name: str, parent_id: int | None, created_by: str) -> Folder:
        now = utcnow()
        folder = Folder(
            name=name,
            parent_id=parent_id,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.db.add(folder)
        self.db.commit()
        self.db.refresh(folder)
        return folder

    def update(self, folder_id: int, fields: dict) -> Folder | None:
        folder = self.find_by_id(folder_id)
        if folder is None:
            return None
        for key, value in fields.items():
            setattr(folder, key, value)
        folder.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(folder)
        return folder

    def child_ids(self, folder_id: int) -> list[int]:
        return list(
            self.db.scalars(
                select(Folder.id).where(Folder.parent_id == folder_id).order_by(Folder.id)
            )
        )

    def subtree_ids(self, folder_id: int) -> list[int]:
        """Return ``folder_id`` and all its descendants in depth-first pre-order.

        Reversing the result yields an order where every folder appears
        before its parent.
        """
        order: list[int] = []
        seen: set[int] = set()
        stack = [folder_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            # reversed so children are visited in id order
            stack.extend(reversed(self.child_ids(current)))
        return order

    def remove(self, folder_id: int) -> Folder | None:
        """Delete a folder, its descendant folders and every contained document.

        Children are removed before their parent, so the result does not
        depend on the store cascading foreign keys. Returns the folder as it
        was before deletion, or ``None`` when it does not exist.
        """
        folder = self.find_by_id(folder_id)
        if folder is None:
            return None

        removal_order = list(reversed(self.subtree_ids(folder_id)))
        for current in removal_order:
            self.db.execute(
                delete(Document)
                .where(Document.folder_id == current)
                .execution_options(synchronize_session=False)
            )
            self.db.execute(
                delete(Folder)
                .where(Folder.id == current)
                .execution_options(synchronize_session=False)
            )
        self.db.commit()
        self.db.expunge_all()

        logger.info(
            "Removed folder %s with %d descendant folder(s)",
            folder_id,
            len(removal_order) - 1,
        )
        return folder

    def get_path(self, folder_id: int) -> list[Folder]:
        """Ancestor chain of a folder, root first and the folder itself last."""
        path: list[Folder] = []
        seen: set[int] = set()
        current = self.find_by_id(folder_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            path.append(current)
            if current.parent_id is None:
                break
            current = self.find_by_id(current.parent_id)
        path.reverse()
        return path


# ---------- Documents ----------

@dataclass
class DocumentFilters:
    folder_id: Any = UNSET
    type: str | None = None
    search: str | None = None
    sort: str | None = None
    order: str | None = None

    def criteria(self) -> list[ColumnElement[bool]]:
        criteria = [
            parent_criterion(Document.folder_id, self.folder_id),
            Document.type == self.type if self.type else None,
            search_criterion(Document.name, self.search),
        ]
        return [c for c in criteria if c is not None]

    def ordering(self):
        field = self.sort if self.sort in DOCUMENT_SORT_FIELDS else "created_at"
        order = self.order if self.order in SORT_ORDERS else "desc"
        column = getattr(Document, field)
        if order == "desc":
            return [column.desc(), Document.id.desc()]
        return [column.asc(), Document.id.asc()]


class DocumentRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self, filters: DocumentFilters | None = None) -> Sequence[Document]:
        filters = filters or DocumentFilters()
        stmt = select(Document).where(*filters.criteria()).order_by(*filters.ordering())
        return self.db.scalars(stmt).all()

    def find_by_id(self, document_id: int) -> Document | None:
        return self.db.get(Document, document_id)

    def find_by_ids(self, ids: Iterable[int]) -> Sequence[Document]:
        ids = list(ids)
        if not ids:
            return []
        stmt = (
            select(Document)
            .where(Document.id.in_(ids))
            .order_by(Document.id)
            .execution_options(populate_existing=True)
        )
        return self.db.scalars(stmt).all()

    def create(
        self,
        name: str,
        type: str,
        size: int,
        folder_id: int | None,
        created_by: str,
    ) -> Document:
        now = utcnow()
        document = Document(
            name=name,
            type=type,
            size=size,
            folder_id=folder_id,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        return document

    def update(self, document_id: int, fields: dict) -> Document | None:
        document = self.find_by_id(document_id)
        if document is None:
            return None
        for key, value in fields.items():
            setattr(document, key, value)
        document.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(document)
        return document

    def remove(self, document_id: int) -> Document | None:
        document = self.find_by_id(document_id)
        if document is None:
            return None
        self.db.delete(document)
        self.db.commit()
        return document

    def bulk_remove(self, ids: Iterable[int]) -> Sequence[Document]:
        ids = list(ids)
        if not ids:
            return []
        documents = self.find_by_ids(ids)
        self.db.execute(
            delete(Document)
            .where(Document.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        for document in documents:
            self.db.expunge(document)
        return documents

    def move_to_folder(self, ids: Iterable[int], folder_id: int | None) -> Sequence[Document]:
        ids = list(ids)
        if not ids:
            return []
        self.db.execute(
            update(Document)
            .where(Document.id.in_(ids))
            .values(folder_id=folder_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return self.find_by_ids(ids)

    def count_by_type(self) -> list[tuple[str, int]]:
        stmt = (
            select(Document.type, func.count(Document.id))
            .group_by(Document.type)
            .order_by(Document.type)
        )
        return [(type_, count) for type_, count in self.db.execute(stmt)]

    def get_total_size(self) -> int:
        total = self.db.scalar(select(func.coalesce(func.sum(Document.size), 0)))
        return int(total or 0)
