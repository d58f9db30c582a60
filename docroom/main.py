import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

from . import schemas
from .database import Base, build_engine, build_session_factory, get_db
from .errors import RejectedError
from .listing import DEFAULT_LIMIT, MAX_LIMIT, FileListing, FileQuery
from .logging_config import configure_logging
from .repositories import UNSET, DocumentFilters, DocumentRepository, FolderRepository
from .services import DocumentService, FolderService

load_dotenv()

logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "production")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

DBDep = Annotated[Session, Depends(get_db)]
RecordIdPath = Annotated[int, Path(ge=1, le=schemas.MAX_ID)]


def get_folder_service(db: DBDep) -> FolderService:
    return FolderService(FolderRepository(db))


def get_document_service(db: DBDep) -> DocumentService:
    return DocumentService(DocumentRepository(db), FolderRepository(db))


def get_file_listing(db: DBDep) -> FileListing:
    return FileListing(db)


FolderServiceDep = Annotated[FolderService, Depends(get_folder_service)]
DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]
FileListingDep = Annotated[FileListing, Depends(get_file_listing)]

router = APIRouter(prefix="/api")


def _parse_folder_ref(raw: str | None, name: str, absent=UNSET):
    """Parse an optional folder id from the query string.

    Missing means ``absent``; ``""`` and ``"null"`` mean the root level.
    """
    if raw is None:
        return absent
    if raw in ("", "null"):
        return None
    try:
        value = int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    if not 1 <= value <= schemas.MAX_ID:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return value


def _folder_or_404(folder):
    if folder is None:
        raise HTTPException(status_code=404, detail="Folder not found")
    return schemas.FolderRead.model_validate(folder)


def _document_or_404(document):
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return schemas.DocumentRead.model_validate(document)


# ---------- Files ----------

@router.get("/files", response_model=schemas.PaginatedEnvelope[list[schemas.FileRead]])
def list_files(
    listing: FileListingDep,
    folder_id: str | None = None,
    parent_id: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
    sort: str = "name",
    order: str = "asc",
    search: str | None = None,
):
    raw = folder_id if folder_id is not None else parent_id
    query = FileQuery(
        folder_id=_parse_folder_ref(raw, "folder_id", absent=None),
        page=page,
        limit=limit,
        sort=sort,
        order=order,
        search=search,
    )
    result = listing.list_files(query)
    return {"data": result.items, "pagination": result.pagination()}


# ---------- Folders ----------

@router.get("/folders", response_model=schemas.Envelope[list[schemas.FolderRead]])
def list_folders(service: FolderServiceDep, parent_id: str | None = None):
    folders = service.get_all_folders(_parse_folder_ref(parent_id, "parent_id"))
    return {"data": [schemas.FolderRead.model_validate(f) for f in folders]}


@router.get("/folders/{folder_id}", response_model=schemas.Envelope[schemas.FolderRead])
def get_folder(folder_id: RecordIdPath, service: FolderServiceDep):
    return {"data": _folder_or_404(service.get_folder_by_id(folder_id))}


@router.get("/folders/{folder_id}/path", response_model=schemas.Envelope[list[schemas.FolderRead]])
def get_folder_path(folder_id: RecordIdPath, service: FolderServiceDep):
    path = service.get_folder_path(folder_id)
    if not path:
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"data": [schemas.FolderRead.model_validate(f) for f in path]}


@router.post(
    "/folders",
    response_model=schemas.Envelope[schemas.FolderRead],
    status_code=status.HTTP_201_CREATED,
)
def create_folder(body: schemas.FolderCreate, service: FolderServiceDep):
    return {"data": schemas.FolderRead.model_validate(service.create_folder(body))}


@router.put("/folders/{folder_id}", response_model=schemas.Envelope[schemas.FolderRead])
def update_folder(folder_id: RecordIdPath, body: schemas.FolderUpdate, service: FolderServiceDep):
    folder = service.update_folder(folder_id, body.model_dump(exclude_unset=True))
    return {"data": _folder_or_404(folder)}


@router.delete("/folders/{folder_id}", response_model=schemas.Envelope[schemas.FolderRead])
def delete_folder(folder_id: RecordIdPath, service: FolderServiceDep):
    return {"data": _folder_or_404(service.delete_folder(folder_id))}


# ---------- Documents ----------

@router.get("/documents", response_model=schemas.Envelope[list[schemas.DocumentRead]])
def list_documents(
    service: DocumentServiceDep,
    folder_id: str | None = None,
    type: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    order: str | None = None,
):
    filters = DocumentFilters(
        folder_id=_parse_folder_ref(folder_id, "folder_id"),
        type=type,
        search=search,
        sort=sort,
        order=order,
    )
    documents = service.get_all_documents(filters)
    return {"data": [schemas.DocumentRead.model_validate(d) for d in documents]}


@router.get("/documents/stats", response_model=schemas.Envelope[schemas.DocumentStats])
def get_document_stats(service: DocumentServiceDep):
    return {"data": service.get_document_stats()}


@router.post("/documents/bulk-delete", response_model=schemas.Envelope[list[schemas.DocumentRead]])
def bulk_delete_documents(body: schemas.DocumentIds, service: DocumentServiceDep):
    removed = service.bulk_delete_documents(body.ids)
    return {"data": [schemas.DocumentRead.model_validate(d) for d in removed]}


@router.post("/documents/move", response_model=schemas.Envelope[list[schemas.DocumentRead]])
def move_documents(
    body: schemas.DocumentMove,
    documents: DocumentServiceDep,
    folders: FolderServiceDep,
):
    if body.folder_id is not None and folders.get_folder_by_id(body.folder_id) is None:
        raise HTTPException(status_code=400, detail="Folder not found")
    moved = documents.move_documents(body.ids, body.folder_id)
    return {"data": [schemas.DocumentRead.model_validate(d) for d in moved]}


@router.get("/documents/{document_id}", response_model=schemas.Envelope[schemas.DocumentRead])
def get_document(document_id: RecordIdPath, service: DocumentServiceDep):
    return {"data": _document_or_404(service.get_document_by_id(document_id))}


@router.post(
    "/documents",
    response_model=schemas.Envelope[schemas.DocumentRead],
    status_code=status.HTTP_201_CREATED,
)
def create_document(body: schemas.DocumentCreate, service: DocumentServiceDep):
    return {"data": schemas.DocumentRead.model_validate(service.create_document(body))}


@router.put("/documents/{document_id}", response_model=schemas.Envelope[schemas.DocumentRead])
def update_document(
    document_id: RecordIdPath,
    body: schemas.DocumentUpdate,
    service: DocumentServiceDep,
):
    document = service.update_document(document_id, body.model_dump(exclude_unset=True))
    return {"data": _document_or_404(document)}


@router.delete("/documents/{document_id}", response_model=schemas.Envelope[schemas.DocumentRead])
def delete_document(document_id: RecordIdPath, service: DocumentServiceDep):
    return {"data": _document_or_404(service.delete_document(document_id))}


# ---------- Error handling ----------

def _error(status_code: int, message: str, errors=None) -> JSONResponse:
    body = schemas.ErrorEnvelope(message=message, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _validation_error(_request: Request, exc: RequestValidationError):
    errors = [
        schemas.ErrorDetail(
            path=".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
            message=err["msg"],
        )
        for err in exc.errors()
    ]
    return _error(400, "Validation failed", errors)


async def _http_error(_request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


async def _rejected(_request: Request, exc: RejectedError):
    errors = None
    if exc.field:
        errors = [schemas.ErrorDetail(path=exc.field, message=exc.message)]
    return _error(400, exc.message, errors)


async def _internal_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Internal server error"
    if APP_ENV == "development":
        message = f"{message}: {exc}"
    return _error(500, message)


# ---------- App ----------

def create_app(engine: Engine | None = None) -> FastAPI:
    configure_logging()
    engine = engine if engine is not None else build_engine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=app.state.engine)
        logger.info("Database ready at %s", app.state.engine.url.render_as_string(hide_password=True))
        yield
        app.state.engine.dispose()

    app = FastAPI(title="Document Management API", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            response = await _internal_error(request, exc)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RejectedError, _rejected)
    app.add_exception_handler(SQLAlchemyError, _internal_error)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(router)
    return app


def run() -> None:
    import uvicorn

    uvicorn.run(
        "docroom.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
