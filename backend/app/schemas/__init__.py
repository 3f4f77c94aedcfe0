"""Pydantic schemas for request/response validation."""

from app.schemas.user import (
    UserRegister,
    UserLogin,
    UserUpdate,
    PasswordChange,
    UserResponse,
    AuthResponse,
    UserEnvelope,
    MessageResponse,
)
from app.schemas.template import (
    TemplateCreate,
    TemplateResponse,
    TemplateContentResponse,
)
from app.schemas.document import (
    DocumentAttributes,
    DocumentPatch,
    SEQUENCE_FIELDS,
    parse_sequence,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserUpdate",
    "PasswordChange",
    "UserResponse",
    "AuthResponse",
    "UserEnvelope",
    "MessageResponse",
    "TemplateCreate",
    "TemplateResponse",
    "TemplateContentResponse",
    "DocumentAttributes",
    "DocumentPatch",
    "SEQUENCE_FIELDS",
    "parse_sequence",
]
