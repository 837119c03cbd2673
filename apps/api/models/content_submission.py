"""ContentSubmission model for the append-only credibility ledger."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class ContentSubmission(Base):
    """Immutable record of one analyzed URL."""

    __tablename__ = "content_submissions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    pet_id = Column(String, ForeignKey("pets.id"), nullable=False, index=True)
    url = Column(String, nullable=False)
    credibility_score = Column(Float, nullable=False)
    quality_category = Column(String, nullable=False)
    is_good_content = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="submissions")
    pet = relationship("Pet", back_populates="submissions")
