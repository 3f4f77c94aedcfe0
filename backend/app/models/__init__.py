"""Database models."""

from app.models.user import User
from app.models.template import Template
from app.models.document import Document

__all__ = ["User", "Template", "Document"]
