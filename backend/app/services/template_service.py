"""Template Service - append-only template catalogue."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DependencyError, NotFoundError, ValidationError
from app.models.template import Template

logger = logging.getLogger(__name__)


class TemplateService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, name: Optional[str], category: Optional[str], content: Optional[str]) -> Template:
        missing = [
            field for field, value in (("name", name), ("category", category), ("content", content))
            if not value
        ]
        if missing:
            raise ValidationError("Missing required fields: name, category, content", details=missing)

        template = Template(name=name, category=category, content=content)
        try:
            self.db.add(template)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save template: {e}", exc_info=True)
            raise DependencyError("Failed to save template") from e

        self.db.refresh(template)
        logger.info(f"Template created: {template.id} ({category})")
        return template

    def list(self, category: Optional[str] = None) -> List[Template]:
        """All templates, newest first, optionally limited to one category."""
        query = self.db.query(Template)
        if category:
            query = query.filter(Template.category == category)
        return query.order_by(Template.created_at.desc(), Template.id.desc()).all()

    def get_by_id(self, template_id: int) -> Template:
        template = self.db.get(Template, template_id)
        if template is None:
            raise NotFoundError(f"Template {template_id} does not exist")
        return template

    def get_content(self, template_id: int) -> str:
        return self.get_by_id(template_id).content
