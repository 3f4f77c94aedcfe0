"""Document template model."""

from sqlalchemy import Column, Integer, String, DateTime, Text
from app.core.database import Base, utcnow


class Template(Base):
    """Reusable document template. Append-only."""

    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
