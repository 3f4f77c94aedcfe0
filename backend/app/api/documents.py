"""Documents API routes. Bodies are multipart forms: a binary plus business fields."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_current_user
from app.schemas.document import DocumentAttributes, DocumentPatch
from app.services.document_service import DocumentService, UploadedFile
from app.services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)
router = APIRouter()


def get_document_service(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
) -> DocumentService:
    return DocumentService(db, storage)


async def read_upload(value: Any) -> Optional[UploadedFile]:
    """
    Read a multipart file part into memory.

    At most MAX_UPLOAD_SIZE + 1 bytes are read so an oversized file is
    detected without buffering all of it.
    """
    if not isinstance(value, UploadFile):
        return None

    data = await value.read(settings.MAX_UPLOAD_SIZE + 1)
    if not value.filename and not data:
        return None

    return UploadedFile(
        filename=value.filename,
        content_type=value.content_type or "application/octet-stream",
        data=data,
    )


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@router.post("")
async def create_document(
    request: Request,
    current_user: int = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload a document binary together with its business fields.

    Required form fields: file, templateId, title, type. ``products``,
    ``duties`` and ``offers`` are JSON-encoded lists.
    """
    form = await request.form()
    upload = await read_upload(form.get("file"))
    logger.info(
        f"Document upload request - user: {current_user}, type: {form.get('type')}, "
        f"filename: {upload.filename if upload else None}"
    )

    document = service.create(
        current_user,
        template_id=_text(form.get("templateId")),
        title=_text(form.get("title")),
        doc_type=_text(form.get("type")),
        attributes=DocumentAttributes.from_form(form),
        upload=upload,
        logo=_text(form.get("logo")),
        signature=_text(form.get("signature")),
    )
    return {"document": document}


@router.get("")
async def list_documents(
    category: Optional[str] = None,
    current_user: int = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """The caller's documents, newest first, optionally filtered by type."""
    return service.list(current_user, category)


@router.post("/upload-image")
async def upload_image(
    request: Request,
    current_user: int = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Store a standalone image (logo, signature) and return its URL."""
    form = await request.form()
    upload = await read_upload(form.get("image"))
    url = service.upload_asset(current_user, _text(form.get("field")), upload)
    return {"url": url}


@router.get("/{document_id}")
async def get_document(
    document_id: int,
    current_user: int = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return {"document": service.get(current_user, document_id)}


@router.put("/{document_id}")
async def update_document(
    document_id: int,
    request: Request,
    current_user: int = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Partial update. Only fields present in the form change; ``file`` is optional."""
    form = await request.form()
    upload = await read_upload(form.get("file"))
    patch = DocumentPatch.from_form(form)

    document = service.update(current_user, document_id, patch, upload=upload)
    return {"document": document}


@router.delete("/{document_id}")
async def delete_document(
    document_id: int,
    current_user: int = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    service.delete(current_user, document_id)
    return {"message": "Document deleted"}
