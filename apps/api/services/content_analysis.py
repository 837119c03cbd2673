"""
Credibility scoring of URLs through the OpenAI chat completions API.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field, StrictBool, StrictStr

from config import require_openai_api_key, settings
from services.errors import (
    ScorerError,
    ScorerRateLimitError,
    ScorerResponseError,
    ScorerTimeoutError,
)
from services.scoring import MAX_SCORE, MIN_SCORE, QualityCategory, clamp_score, classify_score

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a media literacy expert who evaluates the credibility of news sources "
    "and online content. Provide objective, balanced assessments."
)

POLICY_REFUSAL_ANALYSIS = "Content could not be analyzed due to policy restrictions."


class ContentAnalysisResult(BaseModel):
    """Scored URL, as produced by the scorer and accepted by the pet engine."""

    url: StrictStr = Field(min_length=1)
    credibility_score: float = Field(ge=MIN_SCORE, le=MAX_SCORE, strict=True)
    quality_category: QualityCategory
    quality_message: Optional[str] = None
    is_good_content: StrictBool
    analysis: str = ""


def build_user_prompt(url: str) -> str:
    return f"""Analyze the credibility and quality of the following URL as a media source: {url}

Please evaluate based on:
- Domain reputation and authority
- Presence of fact-checking and citations
- Potential bias or sensationalism
- Author credentials (if available)
- Overall trustworthiness as a news/information source

Respond in JSON format with:
{{
  "score": <number 0-100>,
  "reasons": [<array of 2-3 brief reasons for the score>],
  "analysis": "<detailed explanation of the assessment>"
}}

Be fair but critical. A score of 50+ indicates generally trustworthy content."""


def build_analysis_result(url: str, raw_score: float, analysis: Optional[str] = None) -> ContentAnalysisResult:
    """Clamp an untrusted score and attach its classification."""
    score = clamp_score(float(raw_score))
    if score != raw_score:
        logger.warning("Credibility score clamped: url=%s original=%s clamped=%s", url, raw_score, score)
    assessment = classify_score(score)
    return ContentAnalysisResult(
        url=url,
        credibility_score=score,
        quality_category=assessment.category,
        quality_message=assessment.message,
        is_good_content=assessment.is_good,
        analysis=analysis or "No detailed analysis provided.",
    )


def _coerce_score(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("score must be numeric")
    score = float(value)
    if math.isnan(score):
        raise ValueError("score is NaN")
    return score


def _is_content_policy_refusal(exc: openai.BadRequestError) -> bool:
    code = str(getattr(exc, "code", "") or "")
    return "content_policy" in code or "content_policy" in str(exc.message or "")


class CredibilityScorer:
    """Black-box URL scorer. Built once at startup and injected into routes."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self.client = client
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.SCORER_TEMPERATURE if temperature is None else temperature

    @classmethod
    def from_settings(cls) -> "CredibilityScorer":
        client = AsyncOpenAI(
            api_key=require_openai_api_key(),
            timeout=settings.SCORER_TIMEOUT_SECONDS,
            max_retries=settings.SCORER_MAX_RETRIES,
        )
        return cls(client)

    async def close(self) -> None:
        await self.client.close()

    async def analyze(self, url: str) -> ContentAnalysisResult:
        """
        Score a URL for credibility.

        Timeouts, rate limits and malformed responses raise tagged ScorerErrors.
        A content-policy refusal is not an error: it yields a poor, zero score.
        """
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(url)},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except openai.APITimeoutError as exc:
            logger.error("OpenAI timeout while scoring url=%s: %s", url, exc)
            raise ScorerTimeoutError("Credibility scorer timed out", url=url) from exc
        except openai.RateLimitError as exc:
            logger.error("OpenAI rate limit while scoring url=%s: %s", url, exc)
            raise ScorerRateLimitError("Credibility scorer rate limit exceeded", url=url) from exc
        except openai.BadRequestError as exc:
            if _is_content_policy_refusal(exc):
                logger.warning("Content policy violation for url=%s", url)
                return build_analysis_result(url, 0.0, POLICY_REFUSAL_ANALYSIS)
            logger.error("OpenAI rejected scoring request for url=%s: %s", url, exc)
            raise ScorerError(f"Content analysis failed: {exc.message}", url=url) from exc
        except openai.APIError as exc:
            logger.error("OpenAI API error while scoring url=%s: %s", url, exc)
            raise ScorerError(f"Content analysis failed: {exc.message}", url=url) from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ScorerResponseError("No response from OpenAI API", url=url)

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse OpenAI response for url=%s: %s", url, exc)
            raise ScorerResponseError("Content analysis failed: Invalid response format", url=url) from exc
        if not isinstance(parsed, dict):
            raise ScorerResponseError("Content analysis failed: Invalid response format", url=url)

        try:
            raw_score = _coerce_score(parsed.get("score"))
        except (TypeError, ValueError) as exc:
            logger.error("Invalid score from OpenAI for url=%s: %r", url, parsed.get("score"))
            raise ScorerResponseError("Invalid score returned from OpenAI API", url=url) from exc

        analysis = parsed.get("analysis")
        return build_analysis_result(url, raw_score, analysis if isinstance(analysis, str) else None)
