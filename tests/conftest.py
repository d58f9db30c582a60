"""Shared fixtures: an in-memory SQLite store and the services built on it."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from docroom.database import Base, build_engine, build_session_factory
from docroom.listing import FileListing
from docroom.main import create_app
from docroom.repositories import DocumentRepository, FolderRepository
from docroom.services import DocumentService, FolderService


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = build_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def folder_repo(db):
    return FolderRepository(db)


@pytest.fixture
def document_repo(db):
    return DocumentRepository(db)


@pytest.fixture
def folder_service(folder_repo):
    return FolderService(folder_repo)


@pytest.fixture
def document_service(document_repo, folder_repo):
    return DocumentService(document_repo, folder_repo)


@pytest.fixture
def listing(db):
    return FileListing(db)


@pytest.fixture
def make_folder(folder_repo):
    """Factory creating a folder directly through the repository."""

    def _make(name="Folder", parent_id=None, created_by="tester"):
        return folder_repo.create(name, parent_id, created_by)

    return _make


@pytest.fixture
def make_document(document_repo):
    """Factory creating a document directly through the repository."""

    def _make(name="doc.pdf", type="application/pdf", size=100, folder_id=None, created_by="tester"):
        return document_repo.create(
            name=name,
            type=type,
            size=size,
            folder_id=folder_id,
            created_by=created_by,
        )

    return _make


@pytest.fixture
def client(engine):
    app = create_app(engine=engine)
    with TestClient(app) as client:
        yield client
