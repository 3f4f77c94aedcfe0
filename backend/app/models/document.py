"""Document model for stored paperwork."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base, utcnow


class Document(Base):
    """Uploaded business document (offer, invoice, contract) and its attribute bag."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Plain reference; template existence is not enforced here
    template_id = Column(Integer, nullable=True, index=True)

    # Document information
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, index=True)  # Invoice, Offer, Contract...
    is_image = Column(Boolean, default=False)
    logo = Column(String, nullable=True)
    signature = Column(String, nullable=True)

    # Object storage
    file_path = Column(String, nullable=False)  # public URL
    storage_key = Column(String, nullable=False, index=True)
    hash = Column(String(64), nullable=False, index=True)  # SHA-256 of the stored binary

    # Business fields, see app.schemas.document.DocumentAttributes
    attributes = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", back_populates="documents")
