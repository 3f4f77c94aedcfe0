"""
Services package - Business logic and integrations.

Structure:
- app.services.auth_service - Registration, login and profile management
- app.services.template_service - Template catalogue
- app.services.document_service - Document upload, listing, update and deletion
- app.services.storage - Object storage (MinIO/GCS/S3)
"""

from app.services.auth_service import AuthService
from app.services.document_service import DocumentService, UploadedFile
from app.services.storage import (
    StorageService,
    get_storage_service,
)
from app.services.template_service import TemplateService

__all__ = [
    "AuthService",
    "TemplateService",
    "DocumentService",
    "UploadedFile",
    "StorageService",
    "get_storage_service",
]
