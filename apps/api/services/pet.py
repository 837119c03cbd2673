"""
Pet state engine: hatching, lookup and applying scored submissions.

A user has no pet until the first hatch, then exactly one for good. Health is
always the mean credibility of the user's whole ledger; good content ages the
pet one year per hundred submissions.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.content_submission import ContentSubmission
from models.pet import Pet
from services.content_analysis import ContentAnalysisResult
from services.errors import (
    CounterIncrementError,
    HealthUpdateError,
    PetEngineError,
    PetStoreError,
    SubmissionCommitError,
    SubmissionValidationError,
)
from services.scoring import (
    GOOD_CONTENT_PER_YEAR,
    NEUTRAL_HEALTH_SCORE,
    calculate_health_state,
    clamp_score,
    classify_score,
    get_growth_progress,
    get_growth_stage,
)
from services.submissions import calculate_average_score, record_submission

logger = logging.getLogger(__name__)


@dataclass
class PetCreation:
    pet: Pet
    created: bool


@dataclass
class AppliedSubmission:
    pet: Pet
    submission: ContentSubmission


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_pet(user_id: str, db: AsyncSession) -> Optional[Pet]:
    """Return the user's pet, or None when it has not hatched yet."""
    try:
        result = await db.execute(select(Pet).where(Pet.user_id == user_id))
    except SQLAlchemyError as exc:
        logger.error("Database error getting pet: user_id=%s error=%s", user_id, exc)
        raise PetStoreError(f"Failed to get pet: {exc}", context={"user_id": user_id}) from exc
    return result.scalar_one_or_none()


async def create_pet(user_id: str, db: AsyncSession, *, name: Optional[str] = None) -> PetCreation:
    """
    Hatch the user's pet with one constrained INSERT.

    A lost race against another hatch surfaces as the UNIQUE(user_id)
    violation and is returned as ``created=False`` with the winner's pet.
    """
    now = _utcnow()
    pet = Pet(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name=(name or settings.DEFAULT_PET_NAME).strip() or settings.DEFAULT_PET_NAME,
        health_score=NEUTRAL_HEALTH_SCORE,
        good_content_count=0,
        age_years=0,
        created_at=now,
        updated_at=now,
    )
    db.add(pet)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        existing = await get_pet(user_id, db)
        if existing is None:
            logger.error("Integrity error creating pet: user_id=%s error=%s", user_id, exc)
            raise PetStoreError(f"Failed to create pet: {exc.orig}", context={"user_id": user_id}) from exc
        logger.info("Pet already exists for user_id=%s; returning existing pet %s", user_id, existing.id)
        return PetCreation(pet=existing, created=False)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Database error creating pet: user_id=%s error=%s", user_id, exc)
        raise PetStoreError(f"Failed to create pet: {exc}", context={"user_id": user_id}) from exc

    logger.info("Hatched pet %s for user_id=%s", pet.id, user_id)
    return PetCreation(pet=pet, created=True)


def validate_analysis_result(
    analysis_result: Union[ContentAnalysisResult, Mapping[str, Any], None],
) -> ContentAnalysisResult:
    """
    Parse a scored payload and check its labels against the score.

    Category and good-content flag are functions of the credibility score, so a
    payload whose labels disagree with its score is refused.
    """
    result = _parse_analysis_result(analysis_result)
    assessment = classify_score(result.credibility_score)
    errors = []
    if result.quality_category != assessment.category:
        errors.append({
            "field": "quality_category",
            "message": f"expected '{assessment.category.value}' for credibility_score {result.credibility_score:g}",
        })
    if result.is_good_content != assessment.is_good:
        errors.append({
            "field": "is_good_content",
            "message": f"expected {assessment.is_good} for credibility_score {result.credibility_score:g}",
        })
    if errors:
        raise SubmissionValidationError("Analysis result does not match its credibility score", errors=errors)
    return result


def _parse_analysis_result(
    analysis_result: Union[ContentAnalysisResult, Mapping[str, Any], None],
) -> ContentAnalysisResult:
    if isinstance(analysis_result, ContentAnalysisResult):
        return analysis_result
    if not isinstance(analysis_result, Mapping):
        raise SubmissionValidationError(
            "Analysis result is required and must be an object",
            errors=[{"field": "analysis_result", "message": "must be an object"}],
        )
    try:
        return ContentAnalysisResult.model_validate(dict(analysis_result))
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]) or "analysis_result", "message": error["msg"]}
            for error in exc.errors()
        ]
        raise SubmissionValidationError("Analysis result failed validation", errors=errors) from exc


async def _update_health_from_ledger(user_id: str, pet_id: str, db: AsyncSession) -> float:
    try:
        average = await calculate_average_score(user_id, db)
        health_score = clamp_score(average)
        if health_score != average:
            logger.warning("Health score clamped: pet_id=%s original=%s clamped=%s", pet_id, average, health_score)
        await db.execute(
            update(Pet)
            .where(Pet.id == pet_id)
            .values(health_score=health_score, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        logger.error("Database error updating pet health: pet_id=%s error=%s", pet_id, exc)
        raise HealthUpdateError(
            f"Failed to update pet health: {exc}",
            context={"user_id": user_id, "pet_id": pet_id},
        ) from exc
    return health_score


async def _increment_good_content(pet_id: str, db: AsyncSession) -> None:
    # Counter and age move in one statement, computed from the stored value.
    next_count = Pet.good_content_count + 1
    try:
        await db.execute(
            update(Pet)
            .where(Pet.id == pet_id)
            .values(
                good_content_count=next_count,
                age_years=next_count // GOOD_CONTENT_PER_YEAR,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        logger.error("Database error incrementing good content: pet_id=%s error=%s", pet_id, exc)
        raise CounterIncrementError(
            f"Failed to increment good content: {exc}",
            context={"pet_id": pet_id},
        ) from exc


async def apply_analyzed_submission(
    user_id: str,
    db: AsyncSession,
    *,
    pet_id: str,
    analysis_result: Union[ContentAnalysisResult, Mapping[str, Any], None],
) -> Optional[AppliedSubmission]:
    """
    Record a scored URL and fold it into the pet's state.

    Runs as one transaction holding the pet row lock: ledger insert, health
    recomputed from the full ledger, then the good-content increment. Any
    failing step rolls back all of them and raises that step's error. Returns
    None when the user owns no pet with ``pet_id``.
    """
    result = validate_analysis_result(analysis_result)

    try:
        locked = await db.execute(
            select(Pet).where(Pet.id == pet_id, Pet.user_id == user_id).with_for_update()
        )
        pet = locked.scalar_one_or_none()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Database error locking pet: user_id=%s pet_id=%s error=%s", user_id, pet_id, exc)
        raise PetStoreError(f"Failed to fetch pet: {exc}", context={"user_id": user_id, "pet_id": pet_id}) from exc
    if pet is None:
        await db.rollback()
        return None

    try:
        submission = await record_submission(
            user_id,
            db,
            pet_id=pet_id,
            url=result.url,
            credibility_score=result.credibility_score,
            quality_category=result.quality_category.value,
            is_good_content=result.is_good_content,
        )
        await _update_health_from_ledger(user_id, pet_id, db)
        if result.is_good_content:
            await _increment_good_content(pet_id, db)
        await db.commit()
    except PetEngineError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Database error committing submission: user_id=%s pet_id=%s error=%s", user_id, pet_id, exc)
        raise SubmissionCommitError(
            f"Failed to save submission: {exc}",
            context={"user_id": user_id, "pet_id": pet_id},
        ) from exc

    try:
        await db.refresh(pet)
    except SQLAlchemyError as exc:
        logger.error("Database error reloading pet after submission: pet_id=%s error=%s", pet_id, exc)
        raise PetStoreError(
            f"Submission saved but pet could not be reloaded: {exc}",
            persisted=True,
            context={"user_id": user_id, "pet_id": pet_id},
        ) from exc

    logger.info(
        "Applied submission %s to pet %s: score=%s good=%s health=%s count=%s",
        submission.id,
        pet.id,
        submission.credibility_score,
        submission.is_good_content,
        pet.health_score,
        pet.good_content_count,
    )
    return AppliedSubmission(pet=pet, submission=submission)


def serialize_pet(pet: Pet) -> Dict[str, Any]:
    """Pet row plus the display state derived from it."""
    health_score = float(pet.health_score)
    good_content_count = int(pet.good_content_count)
    return {
        "id": pet.id,
        "user_id": pet.user_id,
        "name": pet.name,
        "health_score": health_score,
        "good_content_count": good_content_count,
        "age_years": int(pet.age_years),
        "health_state": calculate_health_state(health_score).model_dump(mode="json"),
        "growth_stage": get_growth_stage(good_content_count).model_dump(mode="json"),
        "growth_progress": get_growth_progress(good_content_count).model_dump(mode="json"),
        "created_at": pet.created_at.isoformat() if pet.created_at else None,
        "updated_at": pet.updated_at.isoformat() if pet.updated_at else None,
    }
