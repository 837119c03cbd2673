"""URL credibility analysis router."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from routers.auth_scope import AuthContext, get_auth_context
from routers.rate_limit import rate_limit
from services.content_analysis import CredibilityScorer
from services.errors import (
    ScorerError,
    ScorerRateLimitError,
    ScorerTimeoutError,
    ScorerUnavailableError,
)
from services.scoring import validate_url

router = APIRouter()
logger = logging.getLogger(__name__)


class AnalyzeContentRequest(BaseModel):
    url: Optional[str] = None


def _scorer_http_error(exc: ScorerError) -> HTTPException:
    if isinstance(exc, ScorerRateLimitError):
        return HTTPException(status_code=429, detail="Too many requests. Please wait a moment and try again.")
    if isinstance(exc, ScorerTimeoutError):
        return HTTPException(status_code=504, detail="Request timed out. Please try again.")
    if isinstance(exc, ScorerUnavailableError):
        return HTTPException(status_code=503, detail="Content analysis is not available right now.")
    return HTTPException(status_code=502, detail="Content analysis failed. Please try again later.")


def get_credibility_scorer(request: Request) -> CredibilityScorer:
    """Return the scorer built at startup."""
    scorer = getattr(request.app.state, "scorer", None)
    if scorer is None:
        raise _scorer_http_error(ScorerUnavailableError("Credibility scorer is not configured"))
    return scorer


@router.post("/analyze-content")
async def analyze_content(
    request: AnalyzeContentRequest,
    _rate_limit: None = Depends(rate_limit("analyze_content", limit=60, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    scorer: CredibilityScorer = Depends(get_credibility_scorer),
):
    validation = validate_url(request.url)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail=validation.error or "Invalid URL format")

    try:
        result = await scorer.analyze(request.url.strip())
    except ScorerError as exc:
        logger.error(
            "Content analysis error: user_id=%s category=%s error=%s",
            auth.user_id,
            exc.category,
            exc,
        )
        raise _scorer_http_error(exc) from exc

    return result.model_dump(mode="json")
