"""
Pure scoring rules: credibility classification, pet health state and growth.

Score ranges:
- credibility category: 80-100 excellent, 60-79 good, 40-59 questionable, 0-39 poor
- health state: 80+ very-happy, 60+ healthy, 40+ neutral, 20+ unhappy, else sick
- age: one year per 100 pieces of good content
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel


# Health of a freshly hatched pet and the average of an empty ledger.
NEUTRAL_HEALTH_SCORE = 50.0

GOOD_CONTENT_THRESHOLD = 50.0
GOOD_CONTENT_PER_YEAR = 100
MIN_SCORE = 0.0
MAX_SCORE = 100.0


class QualityCategory(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    QUESTIONABLE = "questionable"
    POOR = "poor"


class PetHealthState(str, Enum):
    VERY_HAPPY = "very-happy"
    HEALTHY = "healthy"
    NEUTRAL = "neutral"
    UNHAPPY = "unhappy"
    SICK = "sick"


class QualityAssessment(BaseModel):
    category: QualityCategory
    message: str
    is_good: bool


class HealthState(BaseModel):
    state: PetHealthState
    message: str


class GrowthStage(BaseModel):
    name: str
    index: int
    min_count: int
    max_count: Optional[int] = None  # None for the open-ended top band


class GrowthProgress(BaseModel):
    age_years: int
    progress_to_next_year: int
    remaining_to_next_year: int


class UrlValidation(BaseModel):
    is_valid: bool
    error: Optional[str] = None


_QUALITY_BANDS: Tuple[Tuple[float, QualityCategory, str], ...] = (
    (80.0, QualityCategory.EXCELLENT, "Excellent source! High credibility."),
    (60.0, QualityCategory.GOOD, "Good source. Generally reliable."),
    (40.0, QualityCategory.QUESTIONABLE, "Questionable source. Be cautious."),
)
_POOR_MESSAGE = "Poor source. Low credibility."

_HEALTH_BANDS: Tuple[Tuple[float, PetHealthState, str], ...] = (
    (80.0, PetHealthState.VERY_HAPPY, "Your Tamedachi is thriving! Keep up the excellent media diet!"),
    (60.0, PetHealthState.HEALTHY, "Your Tamedachi is doing well! Good job choosing quality content."),
    (40.0, PetHealthState.NEUTRAL, "Your Tamedachi is okay, but could use better content."),
    (20.0, PetHealthState.UNHAPPY, "Your Tamedachi is struggling. Try feeding it better sources!"),
)
_SICK_MESSAGE = "Your Tamedachi needs help! Focus on high-quality, credible sources."

GROWTH_STAGES: Tuple[GrowthStage, ...] = (
    GrowthStage(name="Baby", index=0, min_count=0, max_count=99),
    GrowthStage(name="Child", index=1, min_count=100, max_count=199),
    GrowthStage(name="Teen", index=2, min_count=200, max_count=299),
    GrowthStage(name="Adult", index=3, min_count=300, max_count=399),
    GrowthStage(name="Elder", index=4, min_count=400, max_count=None),
)


def clamp_score(value: float, low: float = MIN_SCORE, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def is_good_content(score: float) -> bool:
    return score >= GOOD_CONTENT_THRESHOLD


def classify_score(score: float) -> QualityAssessment:
    """
    Map an already-clamped credibility score to its quality category.

    The good-content flag uses its own threshold (50), so a 55 is
    "questionable" and still feeds the pet.
    """
    for lower_bound, category, message in _QUALITY_BANDS:
        if score >= lower_bound:
            return QualityAssessment(category=category, message=message, is_good=is_good_content(score))
    return QualityAssessment(category=QualityCategory.POOR, message=_POOR_MESSAGE, is_good=is_good_content(score))


def calculate_health_state(health_score: float) -> HealthState:
    """Map a pet health score (0-100) to its mood."""
    for lower_bound, state, message in _HEALTH_BANDS:
        if health_score >= lower_bound:
            return HealthState(state=state, message=message)
    return HealthState(state=PetHealthState.SICK, message=_SICK_MESSAGE)


def calculate_age(good_content_count: int) -> int:
    return good_content_count // GOOD_CONTENT_PER_YEAR


def get_growth_stage(good_content_count: int) -> GrowthStage:
    for stage in GROWTH_STAGES:
        if good_content_count >= stage.min_count and (
            stage.max_count is None or good_content_count <= stage.max_count
        ):
            return stage
    return GROWTH_STAGES[0]


def get_growth_progress(good_content_count: int) -> GrowthProgress:
    progress = good_content_count % GOOD_CONTENT_PER_YEAR
    return GrowthProgress(
        age_years=calculate_age(good_content_count),
        progress_to_next_year=progress,
        remaining_to_next_year=GOOD_CONTENT_PER_YEAR - progress,
    )


def validate_url(url: Optional[str]) -> UrlValidation:
    """Accept only non-empty absolute http(s) URLs."""
    if not url or not url.strip():
        return UrlValidation(is_valid=False, error="Please enter a URL")

    invalid = UrlValidation(is_valid=False, error="Please enter a valid URL (e.g., https://example.com)")
    candidate = url.strip()
    if " " in candidate:
        return invalid
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return invalid
    if not parsed.scheme:
        return invalid

    if parsed.scheme.lower() not in {"http", "https"}:
        return UrlValidation(is_valid=False, error="Only HTTP and HTTPS URLs are supported")
    if not parsed.netloc:
        return invalid

    return UrlValidation(is_valid=True)
