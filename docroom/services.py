"""Business rules on top of the repositories.

Services are built per request around the request's session. Missing
targets come back as ``None``; rule violations raise ``RejectedError``
before anything is written.
"""

import logging
from collections.abc import Iterable, Sequence

from . import schemas
from .errors import RejectedError
from .models import Document, Folder
from .repositories import UNSET, DocumentFilters, DocumentRepository, FolderRepository

logger = logging.getLogger(__name__)


def _require_name(fields: dict) -> None:
    if "name" in fields and not (fields["name"] or "").strip():
        raise RejectedError("Name must not be empty", field="name")


class FolderService:
    def __init__(self, folders: FolderRepository):
        self.folders = folders

    def get_all_folders(self, parent_id=UNSET) -> Sequence[Folder]:
        return self.folders.find_all(parent_id)

    def get_folder_by_id(self, folder_id: int) -> Folder | None:
        return self.folders.find_by_id(folder_id)

    def create_folder(self, data: schemas.FolderCreate) -> Folder:
        _require_name({"name": data.name})
        if data.parent_id is not None and self.folders.find_by_id(data.parent_id) is None:
            logger.warning("Rejected folder create: parent %s not found", data.parent_id)
            raise RejectedError("Parent folder not found", field="parent_id")
        return self.folders.create(data.name, data.parent_id, data.created_by)

    def update_folder(self, folder_id: int, fields: dict) -> Folder | None:
        """Apply a partial update.

        Moving a folder under itself or one of its descendants is rejected:
        the candidate parent's ancestor chain must not contain the folder.
        """
        if self.folders.find_by_id(folder_id) is None:
            return None

        _require_name(fields)
        parent_id = fields.get("parent_id")
        if parent_id is not None:
            if self.folders.find_by_id(parent_id) is None:
                logger.warning("Rejected move of folder %s: parent %s not found", folder_id, parent_id)
                raise RejectedError("Parent folder not found", field="parent_id")
            if any(ancestor.id == folder_id for ancestor in self.folders.get_path(parent_id)):
                logger.warning(
                    "Rejected move of folder %s under its own descendant %s", folder_id, parent_id
                )
                raise RejectedError(
                    "A folder cannot be moved into itself or one of its subfolders",
                    field="parent_id",
                )

        return self.folders.update(folder_id, fields)

    def delete_folder(self, folder_id: int) -> Folder | None:
        return self.folders.remove(folder_id)

    def get_folder_path(self, folder_id: int) -> list[Folder]:
        return self.folders.get_path(folder_id)


class DocumentService:
    def __init__(self, documents: DocumentRepository, folders: FolderRepository):
        self.documents = documents
        self.folders = folders

    def _require_folder(self, folder_id: int | None) -> None:
        if folder_id is not None and self.folders.find_by_id(folder_id) is None:
            logger.warning("Rejected document write: folder %s not found", folder_id)
            raise RejectedError("Folder not found", field="folder_id")

    def get_all_documents(self, filters: DocumentFilters | None = None) -> Sequence[Document]:
        return self.documents.find_all(filters)

    def get_document_by_id(self, document_id: int) -> Document | None:
        return self.documents.find_by_id(document_id)

    def create_document(self, data: schemas.DocumentCreate) -> Document:
        _require_name({"name": data.name})
        if data.size < 0:
            raise RejectedError("Size must not be negative", field="size")
        self._require_folder(data.folder_id)
        return self.documents.create(
            name=data.name,
            type=data.type,
            size=data.size,
            folder_id=data.folder_id,
            created_by=data.created_by,
        )

    def update_document(self, document_id: int, fields: dict) -> Document | None:
        if self.documents.find_by_id(document_id) is None:
            return None

        self._require_folder(fields.get("folder_id"))
        if "size" in fields and fields["size"] is None:
            raise RejectedError("Size is required", field="size")
        if fields.get("size", 0) < 0:
            raise RejectedError("Size must not be negative", field="size")
        _require_name(fields)
        if "type" in fields and not (fields["type"] or "").strip():
            raise RejectedError("Type must not be empty", field="type")

        return self.documents.update(document_id, fields)

    def delete_document(self, document_id: int) -> Document | None:
        return self.documents.remove(document_id)

    def bulk_delete_documents(self, ids: Iterable[int]) -> Sequence[Document]:
        removed = self.documents.bulk_remove(ids)
        logger.info("Bulk removed %d document(s)", len(removed))
        return removed

    def move_documents(self, ids: Iterable[int], folder_id: int | None) -> Sequence[Document]:
        if folder_id is not None and self.folders.find_by_id(folder_id) is None:
            logger.warning("Skipped move: destination folder %s not found", folder_id)
            return []
        moved = self.documents.move_to_folder(ids, folder_id)
        logger.info("Moved %d document(s) to folder %s", len(moved), folder_id)
        return moved

    def get_document_stats(self) -> schemas.DocumentStats:
        distribution = [
            schemas.TypeCount(type=type_, count=count)
            for type_, count in self.documents.count_by_type()
        ]
        return schemas.DocumentStats(
            total_files=sum(item.count for item in distribution),
            total_size=self.documents.get_total_size(),
            type_distribution=distribution,
        )
