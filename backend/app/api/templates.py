"""Templates API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user
from app.schemas.template import TemplateContentResponse, TemplateCreate, TemplateResponse
from app.services.template_service import TemplateService

router = APIRouter(dependencies=[Depends(get_current_user)])


def get_template_service(db: Session = Depends(get_db)) -> TemplateService:
    return TemplateService(db)


@router.get("", response_model=List[TemplateResponse])
async def list_templates(
    category: Optional[str] = None,
    service: TemplateService = Depends(get_template_service),
):
    """List templates, newest first."""
    return service.list(category)


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: TemplateCreate,
    service: TemplateService = Depends(get_template_service),
):
    return service.create(template_data.name, template_data.category, template_data.content)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    service: TemplateService = Depends(get_template_service),
):
    return service.get_by_id(template_id)


@router.get("/{template_id}/content", response_model=TemplateContentResponse)
async def get_template_content(
    template_id: int,
    service: TemplateService = Depends(get_template_service),
):
    return {"content": service.get_content(template_id)}
