"""Template schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TemplateCreate(BaseModel):
    # Presence is checked by TemplateService so that a missing field is a 400
    name: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str
    content: str
    created_at: Optional[datetime] = None


class TemplateContentResponse(BaseModel):
    content: str
