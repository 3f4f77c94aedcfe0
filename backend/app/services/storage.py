"""
Storage Service - Multi-backend object storage abstraction.

Supports:
- MinIO/S3 for local development and S3-compatible hosting
- Google Cloud Storage (GCS) for production

The backend is selected based on the STORAGE_BACKEND setting. Stored objects
are addressed by key and exposed through a stable public URL.
"""

import json
import logging
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Optional
from urllib.parse import quote, urlparse

from app.core.config import settings
from app.core.exceptions import DependencyError
from app.core.logging_config import trace_storage_operation

logger = logging.getLogger(__name__)


def public_read_policy(bucket_name: str) -> dict:
    """Anonymous GetObject on every key of the bucket, nothing else."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"AWS": ["*"]},
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket_name}/*"],
            }
        ],
    }


# =============================================================================
# Storage Backend Interface
# =============================================================================


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    bucket: str

    @abstractmethod
    def upload_file(
        self,
        file_data: bytes,
        object_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None,
    ) -> str:
        """Upload a file and return its object key."""
        pass

    @abstractmethod
    def delete_file(self, object_name: str) -> bool:
        """Delete a file from storage."""
        pass

    @abstractmethod
    def file_exists(self, object_name: str) -> bool:
        """Check if a file exists."""
        pass

    @abstractmethod
    def get_public_url(self, object_name: str) -> str:
        """Stable public URL of a stored object."""
        pass


# =============================================================================
# MinIO/S3 Backend
# =============================================================================


class MinIOBackend(StorageBackend):
    """S3-compatible storage backend using MinIO."""

    @staticmethod
    def _normalize_endpoint(endpoint: str, secure: bool) -> tuple[str, bool]:
        """Normalize endpoint to host:port and determine secure flag."""
        value = endpoint.strip()
        if "://" in value:
            parsed = urlparse(value)
            return parsed.netloc, parsed.scheme == "https"

        parsed = urlparse(f"//{value}")
        if parsed.netloc:
            return parsed.netloc, secure

        return value, secure

    def __init__(self, client=None, bucket: Optional[str] = None, public_endpoint: Optional[str] = None):
        """Initialize MinIO client. ``client`` may be injected (tests, custom pools)."""
        if client is None:
            import urllib3
            from minio import Minio

            timeout = settings.STORAGE_TIMEOUT_SECONDS
            http_client = urllib3.PoolManager(
                timeout=urllib3.Timeout(connect=timeout, read=timeout),
                retries=urllib3.Retry(total=3, backoff_factor=0.2),
            )
            client = Minio(
                endpoint=settings.MINIO_ENDPOINT,
                access_key=settings.MINIO_ACCESS_KEY,
                secret_key=settings.MINIO_SECRET_KEY,
                secure=settings.MINIO_SECURE,
                region=settings.MINIO_REGION,
                http_client=http_client,
            )

        self.client = client
        self.bucket = bucket or settings.MINIO_BUCKET

        host, secure = self._normalize_endpoint(
            public_endpoint or settings.MINIO_PUBLIC_ENDPOINT or settings.MINIO_ENDPOINT,
            settings.MINIO_SECURE,
        )
        self.public_base_url = f"{'https' if secure else 'http'}://{host}"

        self._ensure_bucket_exists(self.bucket)
        logger.info(f"MinIO backend initialized with bucket: {self.bucket}")

    def _ensure_bucket_exists(self, bucket_name: str) -> None:
        """Ensure a bucket exists."""
        from minio.error import S3Error

        try:
            if not self.client.bucket_exists(bucket_name=bucket_name):
                self.client.make_bucket(bucket_name=bucket_name)
                self.client.set_bucket_policy(
                    bucket_name=bucket_name,
                    policy=json.dumps(public_read_policy(bucket_name)),
                )
                logger.info(f"Created bucket with public read access: {bucket_name}")
        except S3Error as e:
            logger.error(f"Error ensuring bucket exists: {e}")
            raise

    def upload_file(
        self,
        file_data: bytes,
        object_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None,
    ) -> str:
        file_size = len(file_data)

        with trace_storage_operation(
            operation="upload", bucket=self.bucket, filename=object_name, file_size=file_size
        ):
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=object_name,
                data=BytesIO(file_data),
                length=file_size,
                content_type=content_type,
                metadata=metadata or {},
            )
            logger.info(f"Uploaded: {object_name} ({file_size} bytes)")
            return object_name

    def delete_file(self, object_name: str) -> bool:
        with trace_storage_operation(operation="delete", bucket=self.bucket, filename=object_name):
            self.client.remove_object(bucket_name=self.bucket, object_name=object_name)
            logger.info(f"Deleted: {object_name}")
            return True

    def file_exists(self, object_name: str) -> bool:
        from minio.error import S3Error

        try:
            self.client.stat_object(bucket_name=self.bucket, object_name=object_name)
            return True
        except S3Error as e:
            if e.code == "NoSuchKey":
                return False
            raise

    def get_public_url(self, object_name: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(object_name)}"


# =============================================================================
# Google Cloud Storage Backend
# =============================================================================


class GCSBackend(StorageBackend):
    """Google Cloud Storage backend."""

    def __init__(self, client=None, bucket: Optional[str] = None):
        """Initialize GCS client."""
        if client is None:
            from google.cloud import storage

            client = storage.Client(project=settings.GOOGLE_CLOUD_PROJECT)

        self.client = client
        self.bucket = bucket or settings.GCS_BUCKET or f"{settings.GOOGLE_CLOUD_PROJECT}-documents"
        self.timeout = settings.STORAGE_TIMEOUT_SECONDS

        logger.info(f"GCS backend initialized: bucket={self.bucket}")

    def _get_bucket(self):
        return self.client.bucket(self.bucket)

    def upload_file(
        self,
        file_data: bytes,
        object_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None,
    ) -> str:
        file_size = len(file_data)

        with trace_storage_operation(
            operation="upload", bucket=self.bucket, filename=object_name, file_size=file_size
        ):
            blob = self._get_bucket().blob(object_name)
            if metadata:
                blob.metadata = metadata
            blob.upload_from_string(file_data, content_type=content_type, timeout=self.timeout)
            logger.info(f"Uploaded to GCS: {object_name} ({file_size} bytes)")
            return object_name

    def delete_file(self, object_name: str) -> bool:
        with trace_storage_operation(operation="delete", bucket=self.bucket, filename=object_name):
            self._get_bucket().blob(object_name).delete(timeout=self.timeout)
            logger.info(f"Deleted from GCS: {object_name}")
            return True

    def file_exists(self, object_name: str) -> bool:
        return self._get_bucket().blob(object_name).exists(timeout=self.timeout)

    def get_public_url(self, object_name: str) -> str:
        return self._get_bucket().blob(object_name).public_url


# =============================================================================
# Storage Service (Facade)
# =============================================================================


class StorageService:
    """
    Unified storage service that delegates to the appropriate backend.

    Backend selection is based on the STORAGE_BACKEND setting:
    - 'minio' or 's3': MinIO/S3 backend (default)
    - 'gcs': Google Cloud Storage backend

    Backend exceptions are re-raised as DependencyError so callers deal with a
    single failure type.
    """

    def __init__(self, backend: Optional[StorageBackend] = None):
        """Use ``backend`` when given, otherwise build one from settings."""
        if backend is not None:
            self._backend = backend
        else:
            try:
                if settings.STORAGE_BACKEND.lower() == "gcs":
                    self._backend = GCSBackend()
                    logger.info("Using GCS storage backend")
                else:
                    self._backend = MinIOBackend()
                    logger.info("Using MinIO storage backend")
            except Exception as e:
                logger.error(f"Could not initialize {settings.STORAGE_BACKEND} storage: {e}", exc_info=True)
                raise DependencyError("Object storage unavailable") from e

        self.bucket = self._backend.bucket

    def upload_file(
        self,
        file_data: bytes,
        object_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None,
    ) -> str:
        """Upload a file and return its public URL."""
        try:
            self._backend.upload_file(file_data, object_name, content_type, metadata)
            return self._backend.get_public_url(object_name)
        except Exception as e:
            logger.error(f"Upload of {object_name} failed: {e}", exc_info=True)
            raise DependencyError("Object storage upload failed") from e

    def delete_file(self, object_name: str) -> bool:
        """Delete a file from storage."""
        try:
            return self._backend.delete_file(object_name)
        except Exception as e:
            logger.error(f"Delete of {object_name} failed: {e}", exc_info=True)
            raise DependencyError("Object storage delete failed") from e

    def file_exists(self, object_name: str) -> bool:
        try:
            return self._backend.file_exists(object_name)
        except Exception as e:
            logger.error(f"Lookup of {object_name} failed: {e}", exc_info=True)
            raise DependencyError("Object storage lookup failed") from e

    def get_public_url(self, object_name: str) -> str:
        return self._backend.get_public_url(object_name)


# =============================================================================
# Singleton
# =============================================================================

_instance: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get or create the StorageService singleton (FastAPI dependency)."""
    global _instance
    if _instance is None:
        _instance = StorageService()
    return _instance
