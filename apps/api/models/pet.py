"""Pet model."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base
from services.scoring import NEUTRAL_HEALTH_SCORE


class Pet(Base):
    """The single Tamedachi owned by a user."""

    __tablename__ = "pets"
    __table_args__ = (
        CheckConstraint("health_score >= 0 AND health_score <= 100", name="ck_pets_health_score_range"),
        CheckConstraint("good_content_count >= 0", name="ck_pets_good_content_count_positive"),
        CheckConstraint("age_years >= 0", name="ck_pets_age_years_positive"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # One pet per user; concurrent hatches are settled by this constraint.
    user_id = Column(String, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    name = Column(String, nullable=False, default="Tamedachi")
    health_score = Column(Float, nullable=False, default=NEUTRAL_HEALTH_SCORE)
    good_content_count = Column(Integer, nullable=False, default=0)
    age_years = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="pet")
    submissions = relationship("ContentSubmission", back_populates="pet")
