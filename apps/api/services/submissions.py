"""Append-only credibility ledger and the aggregates derived from it."""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.content_submission import ContentSubmission
from services.errors import LedgerIntegrityError, LedgerWriteError
from services.scoring import MAX_SCORE, MIN_SCORE, NEUTRAL_HEALTH_SCORE, QualityCategory

logger = logging.getLogger(__name__)


async def record_submission(
    user_id: str,
    db: AsyncSession,
    *,
    pet_id: str,
    url: str,
    credibility_score: float,
    quality_category: str,
    is_good_content: bool,
) -> ContentSubmission:
    """
    Append one immutable ledger row and flush it into the current transaction.

    Callers clamp the score first; anything outside [0, 100] is refused rather
    than stored. There is no update or delete counterpart.
    """
    try:
        if isinstance(credibility_score, bool):
            raise TypeError("credibility_score must be numeric")
        score = float(credibility_score)
    except (TypeError, ValueError) as exc:
        raise LedgerIntegrityError(
            f"credibility_score {credibility_score!r} is not a number",
            context={"user_id": user_id, "pet_id": pet_id},
        ) from exc
    if math.isnan(score) or score < MIN_SCORE or score > MAX_SCORE:
        raise LedgerIntegrityError(
            f"credibility_score {credibility_score!r} is outside [{MIN_SCORE:g}, {MAX_SCORE:g}]",
            context={"user_id": user_id, "pet_id": pet_id},
        )
    try:
        category = QualityCategory(quality_category).value
    except ValueError as exc:
        raise LedgerIntegrityError(
            f"Unknown quality_category {quality_category!r}",
            context={"user_id": user_id, "pet_id": pet_id},
        ) from exc

    entry = ContentSubmission(
        id=str(uuid.uuid4()),
        user_id=user_id,
        pet_id=pet_id,
        url=url,
        credibility_score=score,
        quality_category=category,
        is_good_content=bool(is_good_content),
        submitted_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error(
            "Database error creating submission: user_id=%s pet_id=%s url=%s error=%s",
            user_id,
            pet_id,
            url,
            exc,
        )
        raise LedgerWriteError(
            f"Failed to create submission: {exc}",
            context={"user_id": user_id, "pet_id": pet_id},
        ) from exc
    return entry


async def calculate_average_score(user_id: str, db: AsyncSession) -> float:
    """Mean credibility over every submission of the user, or the neutral score."""
    result = await db.execute(
        select(func.avg(ContentSubmission.credibility_score)).where(ContentSubmission.user_id == user_id)
    )
    average = result.scalar()
    if average is None:
        return NEUTRAL_HEALTH_SCORE
    return float(average)


async def get_submission_stats(user_id: str, db: AsyncSession) -> Dict[str, Any]:
    result = await db.execute(
        select(
            func.count(ContentSubmission.id),
            func.coalesce(func.sum(case((ContentSubmission.is_good_content.is_(True), 1), else_=0)), 0),
        ).where(ContentSubmission.user_id == user_id)
    )
    total_checks, good_content_count = result.one()
    total_checks = int(total_checks or 0)
    good_content_count = int(good_content_count or 0)
    accuracy_rate = (good_content_count / total_checks) * 100 if total_checks > 0 else 0
    return {
        "total_checks": total_checks,
        "good_content_count": good_content_count,
        "accuracy_rate": accuracy_rate,
    }


async def get_submission_history(
    user_id: str,
    db: AsyncSession,
    limit: Optional[int] = None,
) -> List[ContentSubmission]:
    """Submissions of the user, most recent first."""
    query = (
        select(ContentSubmission)
        .where(ContentSubmission.user_id == user_id)
        .order_by(ContentSubmission.submitted_at.desc(), ContentSubmission.id.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


def serialize_submission(entry: ContentSubmission) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "pet_id": entry.pet_id,
        "url": entry.url,
        "credibility_score": entry.credibility_score,
        "quality_category": entry.quality_category,
        "is_good_content": bool(entry.is_good_content),
        "submitted_at": entry.submitted_at.isoformat() if entry.submitted_at else None,
    }
