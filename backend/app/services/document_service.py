"""
Document Service - upload, listing, partial update and deletion of paperwork.

Each document is a binary in object storage plus a metadata row holding the
owner, template reference, SHA-256 of the binary and the business attribute
bag. Every lookup is scoped to the owning user.

Known gap: there is no compensating action between storage and database. A
metadata failure after a successful upload leaves the object orphaned; it is
logged with its key.
"""

import hashlib
import logging
import re
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import utcnow
from app.core.exceptions import (
    DependencyError,
    NotFoundError,
    PayloadTooLarge,
    ValidationError,
)
from app.models.document import Document
from app.models.template import Template
from app.schemas.document import DocumentAttributes, DocumentPatch
from app.services.storage import StorageService

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
}

NOT_FOUND_MESSAGE = "Document not found or access denied"


@dataclass
class UploadedFile:
    """A fully read multipart upload."""

    filename: Optional[str]
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def extension(self) -> str:
        return MIME_EXTENSIONS.get(self.content_type, "")


def compute_hash(data: bytes) -> str:
    """Hex-encoded SHA-256 of the binary."""
    return hashlib.sha256(data).hexdigest()


def _slug(value: str, fallback: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_")
    return slug or fallback


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def build_object_name(user_id: int, doc_type: str, upload: UploadedFile) -> str:
    """documents/user_<id>/<type>_<epoch ms>_<random><ext>"""
    return (
        f"documents/user_{user_id}/{_slug(doc_type, 'document')}_"
        f"{_timestamp_ms()}_{uuid.uuid4().hex[:8]}{upload.extension}"
    )


def build_asset_name(user_id: int, field: str, upload: UploadedFile) -> str:
    return f"assets/{_slug(field, 'asset')}_{user_id}_{_timestamp_ms()}{upload.extension}"


def format_document(document: Document, template_name: Optional[str] = None, with_template: bool = False) -> dict:
    """Row columns plus ``url`` and the attribute bag flattened to top level."""
    data = {
        "id": document.id,
        "user_id": document.user_id,
        "template_id": document.template_id,
        "file_path": document.file_path,
        "storage_key": document.storage_key,
        "hash": document.hash,
        "type": document.type,
        "is_image": bool(document.is_image),
        "name": document.name,
        "logo": document.logo,
        "signature": document.signature,
        "created_at": document.created_at,
        "updated_at": document.updated_at,
        "url": document.file_path,
    }
    if with_template:
        data["template_name"] = template_name
    data.update(DocumentAttributes.from_storage(document.attributes).flattened())
    return data


class DocumentService:
    """Orchestrates upload validation, object storage and document metadata."""

    def __init__(
        self,
        db: Session,
        storage: StorageService,
        max_upload_size: Optional[int] = None,
        allowed_mime_types: Optional[Iterable[str]] = None,
    ):
        self.db = db
        self.storage = storage
        self.max_upload_size = max_upload_size or settings.MAX_UPLOAD_SIZE
        self.allowed_mime_types = set(allowed_mime_types or settings.ALLOWED_MIME_TYPES)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def validate_upload(self, upload: Optional[UploadedFile], required: bool = True) -> None:
        """Size and MIME checks; run before storage or database are touched."""
        if upload is None:
            if required:
                raise ValidationError("No file provided")
            return

        if upload.size > self.max_upload_size:
            raise PayloadTooLarge(
                "File too large",
                details=f"Maximum file size is {self.max_upload_size // (1024 * 1024)} MB",
            )

        if upload.content_type not in self.allowed_mime_types:
            raise ValidationError(
                "File type not allowed",
                details="Allowed: PNG, JPEG, JPG, PDF, GIF, WebP, BMP",
            )

    def _get_owned(self, user_id: int, document_id: int) -> Document:
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.user_id == user_id,
        ).first()

        if not document:
            raise NotFoundError(NOT_FOUND_MESSAGE)

        return document

    def _template_name(self, template_id: Optional[int]) -> Optional[str]:
        if template_id is None:
            return None
        row = self.db.query(Template.name).filter(Template.id == template_id).first()
        return row[0] if row else None

    def _commit(self, action: str, orphan_key: Optional[str] = None) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            if orphan_key:
                logger.error(f"Stored object {orphan_key} is orphaned after failed {action}")
            logger.error(f"Database error during {action}: {e}", exc_info=True)
            raise DependencyError(f"Failed to {action}") from e

    def _delete_object_quietly(self, storage_key: Optional[str]) -> None:
        if not storage_key:
            return
        try:
            self.storage.delete_file(storage_key)
        except DependencyError as e:
            logger.warning(f"Could not delete stored object {storage_key}: {e.__cause__}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        user_id: int,
        template_id: Optional[str],
        title: Optional[str],
        doc_type: Optional[str],
        attributes: DocumentAttributes,
        upload: Optional[UploadedFile],
        logo: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> dict:
        """
        Store a new document.

        Args:
            user_id: Owner
            template_id: Template reference (form text, must be an integer)
            title: Document name
            doc_type: Free-text category, e.g. "Invoice"
            attributes: Business fields parsed from the form
            upload: The binary

        Returns:
            The stored document, formatted for the client

        Raises:
            ValidationError: Missing file or required fields
            PayloadTooLarge: File above the size limit
            DependencyError: Storage or database failure
        """
        self.validate_upload(upload)

        if not template_id or not title or not doc_type:
            raise ValidationError("Missing required fields (templateId, title, type)")

        try:
            template_ref = int(template_id)
        except (TypeError, ValueError):
            raise ValidationError("templateId must be an integer")

        storage_key = build_object_name(user_id, doc_type, upload)
        logger.info(
            f"Document upload - user: {user_id}, type: {doc_type}, "
            f"key: {storage_key}, size: {upload.size} bytes"
        )
        url = self.storage.upload_file(
            upload.data,
            storage_key,
            content_type=upload.content_type,
            metadata={"user_id": str(user_id), "type": doc_type},
        )
        file_hash = compute_hash(upload.data)

        document = Document(
            user_id=user_id,
            template_id=template_ref,
            file_path=url,
            storage_key=storage_key,
            hash=file_hash,
            type=doc_type,
            is_image=upload.is_image,
            name=title,
            logo=logo or None,
            signature=signature or None,
            attributes=attributes.to_storage(),
        )
        self.db.add(document)
        self._commit("save document", orphan_key=storage_key)
        self.db.refresh(document)

        logger.info(f"Document record created with ID: {document.id}")
        return format_document(document)

    def list(self, user_id: int, category: Optional[str] = None) -> List[dict]:
        """Owned documents, newest first, optionally filtered by type."""
        query = (
            self.db.query(Document, Template.name)
            .outerjoin(Template, Template.id == Document.template_id)
            .filter(Document.user_id == user_id)
        )
        if category:
            query = query.filter(Document.type == category)

        rows = query.order_by(Document.created_at.desc(), Document.id.desc()).all()
        return [
            format_document(document, template_name=template_name, with_template=True)
            for document, template_name in rows
        ]

    def get(self, user_id: int, document_id: int) -> dict:
        document = self._get_owned(user_id, document_id)
        return format_document(
            document, template_name=self._template_name(document.template_id), with_template=True
        )

    def update(
        self,
        user_id: int,
        document_id: int,
        patch: DocumentPatch,
        upload: Optional[UploadedFile] = None,
    ) -> dict:
        """
        Merge a partial update into a document, optionally replacing its binary.

        A field overrides the stored value only when it is present in the
        patch. Concurrent updates are last-write-wins.
        """
        self.validate_upload(upload, required=False)
        document = self._get_owned(user_id, document_id)
        present = patch.model_fields_set

        new_type = patch.type if "type" in present else document.type
        if upload is not None:
            old_key = document.storage_key
            self._delete_object_quietly(old_key)

            new_key = build_object_name(user_id, new_type, upload)
            document.file_path = self.storage.upload_file(
                upload.data,
                new_key,
                content_type=upload.content_type,
                metadata={"user_id": str(user_id), "type": new_type},
            )
            document.storage_key = new_key
            document.hash = compute_hash(upload.data)
            document.is_image = upload.is_image
            logger.info(f"Replaced binary of document {document_id}: {old_key} -> {new_key}")

        for field in ("template_id", "name", "type", "logo", "signature"):
            if field in present:
                setattr(document, field, getattr(patch, field))

        stored = DocumentAttributes.from_storage(document.attributes)
        document.attributes = stored.merged_with(patch.attributes).to_storage()
        document.updated_at = utcnow()

        self._commit("update document", orphan_key=document.storage_key if upload else None)
        self.db.refresh(document)

        logger.info(f"Document {document_id} updated")
        return format_document(document)

    def delete(self, user_id: int, document_id: int) -> None:
        """Remove the stored object (best-effort) and then the row."""
        document = self._get_owned(user_id, document_id)

        self._delete_object_quietly(document.storage_key)

        self.db.delete(document)
        self._commit("delete document")
        logger.info(f"Document {document_id} deleted")

    def upload_asset(self, user_id: int, field: Optional[str], upload: Optional[UploadedFile]) -> str:
        """Store a standalone image (logo, signature...) and return its public URL."""
        self.validate_upload(upload)
        if not field:
            raise ValidationError("Missing field name")

        object_name = build_asset_name(user_id, field, upload)
        url = self.storage.upload_file(upload.data, object_name, content_type=upload.content_type)
        logger.info(f"Asset uploaded for user {user_id}: {object_name}")
        return url
