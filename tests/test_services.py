"""Tests for FolderService and DocumentService business rules."""

import pytest

from docroom.errors import RejectedError
from docroom.repositories import DocumentFilters
from payloads import document_create, folder_create


class TestFolderService:
    """Tests for folder validation, cycle prevention and deletion."""

    def test_create_root_folder(self, folder_service):
        folder = folder_service.create_folder(folder_create(name="Finance"))

        assert folder.id is not None
        assert folder.parent_id is None
        assert folder_service.get_folder_by_id(folder.id).name == "Finance"

    def test_create_under_existing_parent(self, folder_service, make_folder):
        parent = make_folder("parent")

        folder = folder_service.create_folder(folder_create(name="child", parent_id=parent.id))

        assert folder.parent_id == parent.id

    def test_create_with_missing_parent_is_rejected(self, folder_service):
        with pytest.raises(RejectedError) as exc_info:
            folder_service.create_folder(folder_create(parent_id=999))

        assert exc_info.value.field == "parent_id"
        assert folder_service.get_all_folders() == []

    def test_create_with_blank_name_is_rejected(self, folder_service):
        with pytest.raises(RejectedError) as exc_info:
            folder_service.create_folder(folder_create(name="   "))

        assert exc_info.value.field == "name"
        assert folder_service.get_all_folders() == []

    def test_get_all_folders_by_parent(self, folder_service, make_folder):
        root = make_folder("root")
        child = make_folder("child", parent_id=root.id)

        assert [f.id for f in folder_service.get_all_folders(root.id)] == [child.id]
        assert [f.id for f in folder_service.get_all_folders(None)] == [root.id]

    def test_update_missing_folder_returns_none(self, folder_service):
        assert folder_service.update_folder(999, {"name": "x"}) is None

    def test_rename(self, folder_service, make_folder):
        folder = make_folder("old")

        updated = folder_service.update_folder(folder.id, {"name": "new"})

        assert updated.name == "new"

    def test_rename_to_blank_is_rejected(self, folder_service, make_folder):
        folder = make_folder("old")

        with pytest.raises(RejectedError):
            folder_service.update_folder(folder.id, {"name": " "})

        assert folder_service.get_folder_by_id(folder.id).name == "old"

    def test_move_under_other_folder(self, folder_service, make_folder):
        a = make_folder("a")
        b = make_folder("b")

        moved = folder_service.update_folder(a.id, {"parent_id": b.id})

        assert moved.parent_id == b.id

    def test_move_to_root(self, folder_service, make_folder):
        parent = make_folder("parent")
        child = make_folder("child", parent_id=parent.id)

        moved = folder_service.update_folder(child.id, {"parent_id": None})

        assert moved.parent_id is None

    def test_move_under_missing_parent_is_rejected(self, folder_service, make_folder):
        folder = make_folder()

        with pytest.raises(RejectedError):
            folder_service.update_folder(folder.id, {"parent_id": 999})

        assert folder_service.get_folder_by_id(folder.id).parent_id is None

    def test_move_under_itself_is_rejected(self, folder_service, make_folder):
        folder = make_folder()

        with pytest.raises(RejectedError):
            folder_service.update_folder(folder.id, {"parent_id": folder.id})

        assert folder_service.get_folder_by_id(folder.id).parent_id is None

    @pytest.mark.parametrize("depth", [1, 2, 3])
    def test_move_under_descendant_is_rejected(self, folder_service, make_folder, depth):
        root = make_folder("root")
        current = root
        for level in range(depth):
            current = make_folder(f"level-{level}", parent_id=current.id)

        with pytest.raises(RejectedError):
            folder_service.update_folder(root.id, {"parent_id": current.id, "name": "moved"})

        unchanged = folder_service.get_folder_by_id(root.id)
        assert unchanged.parent_id is None
        assert unchanged.name == "root"

    def test_delete_folder_cascades(self, folder_service, document_service, make_folder, make_document):
        finance = make_folder("Finance")
        reports = make_folder("Reports", parent_id=finance.id)
        q1 = make_document("q1.pdf", folder_id=reports.id)

        removed = folder_service.delete_folder(finance.id)

        assert removed.id == finance.id
        assert folder_service.get_folder_by_id(reports.id) is None
        assert document_service.get_document_by_id(q1.id) is None

    def test_delete_missing_folder_returns_none(self, folder_service):
        assert folder_service.delete_folder(999) is None

    def test_get_folder_path(self, folder_service, make_folder):
        root = make_folder("root")
        child = make_folder("child", parent_id=root.id)

        assert [f.name for f in folder_service.get_folder_path(child.id)] == ["root", "child"]
        assert folder_service.get_folder_path(999) == []


class TestDocumentService:
    """Tests for document validation, batch operations and stats."""

    def test_create_document(self, document_service, make_folder):
        folder = make_folder()

        document = document_service.create_document(document_create(folder_id=folder.id))

        assert document.id is not None
        assert document.folder_id == folder.id

    def test_create_with_negative_size_is_rejected(self, document_service):
        with pytest.raises(RejectedError) as exc_info:
            document_service.create_document(document_create(size=-5))

        assert exc_info.value.field == "size"
        assert document_service.get_all_documents() == []

    def test_create_with_blank_name_is_rejected(self, document_service):
        with pytest.raises(RejectedError) as exc_info:
            document_service.create_document(document_create(name="  "))

        assert exc_info.value.field == "name"

    def test_create_with_missing_folder_is_rejected(self, document_service):
        with pytest.raises(RejectedError) as exc_info:
            document_service.create_document(document_create(folder_id=999))

        assert exc_info.value.field == "folder_id"
        assert document_service.get_all_documents() == []

    def test_first_failing_check_wins(self, document_service):
        with pytest.raises(RejectedError) as exc_info:
            document_service.create_document(document_create(name="", size=-1, folder_id=999))

        assert exc_info.value.field == "name"

    def test_get_all_documents_with_filters(self, document_service, make_document):
        make_document("a.pdf", type="pdf")
        txt = make_document("b.txt", type="txt")

        result = document_service.get_all_documents(DocumentFilters(type="txt"))

        assert [d.id for d in result] == [txt.id]

    def test_update_missing_document_returns_none(self, document_service):
        assert document_service.update_document(999, {"name": "x"}) is None

    def test_update_moves_to_existing_folder(self, document_service, make_folder, make_document):
        folder = make_folder()
        document = make_document()

        updated = document_service.update_document(document.id, {"folder_id": folder.id})

        assert updated.folder_id == folder.id

    @pytest.mark.parametrize(
        "patch",
        [
            {"folder_id": 999},
            {"size": -1},
            {"name": ""},
            {"name": None},
            {"type": " "},
        ],
    )
    def test_invalid_update_is_rejected(self, document_service, make_document, patch):
        document = make_document("keep.pdf", size=10)

        with pytest.raises(RejectedError):
            document_service.update_document(document.id, patch)

        stored = document_service.get_document_by_id(document.id)
        assert (stored.name, stored.size, stored.folder_id) == ("keep.pdf", 10, None)

    def test_update_clearing_size_says_size_is_required(self, document_service, make_document):
        document = make_document(size=10)

        with pytest.raises(RejectedError) as exc_info:
            document_service.update_document(document.id, {"size": None})

        assert (exc_info.value.field, exc_info.value.message) == ("size", "Size is required")
        assert document_service.get_document_by_id(document.id).size == 10

    def test_update_with_negative_size_says_so(self, document_service, make_document):
        document = make_document(size=10)

        with pytest.raises(RejectedError) as exc_info:
            document_service.update_document(document.id, {"size": -1})

        assert exc_info.value.message == "Size must not be negative"

    def test_delete_document(self, document_service, make_document):
        document = make_document()

        assert document_service.delete_document(document.id).id == document.id
        assert document_service.delete_document(document.id) is None

    def test_bulk_delete(self, document_service, make_document):
        a = make_document("a")
        b = make_document("b")

        removed = document_service.bulk_delete_documents([a.id, b.id])

        assert len(removed) == 2
        assert document_service.get_all_documents() == []

    def test_move_documents(self, document_service, make_folder, make_document):
        folder = make_folder()
        a = make_document("a")

        moved = document_service.move_documents([a.id], folder.id)

        assert [d.folder_id for d in moved] == [folder.id]

    def test_move_to_missing_folder_changes_nothing(self, document_service, make_folder, make_document):
        folder = make_folder()
        a = make_document("a", folder_id=folder.id)

        moved = document_service.move_documents([a.id], 999)

        assert moved == []
        assert document_service.get_document_by_id(a.id).folder_id == folder.id

    def test_stats(self, document_service, make_document):
        make_document("a", type="pdf", size=1000)
        make_document("b", type="pdf", size=24)
        make_document("c", type="txt", size=1)

        stats = document_service.get_document_stats()

        assert stats.total_files == 3
        assert stats.total_size == 1025
        assert [(t.type, t.count) for t in stats.type_distribution] == [("pdf", 2), ("txt", 1)]

    def test_stats_on_empty_store(self, document_service):
        stats = document_service.get_document_stats()

        assert stats.total_files == 0
        assert stats.total_size == 0
        assert stats.type_distribution == []
