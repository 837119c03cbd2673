"""Content submission router: feeding scored URLs to the pet."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from routers.rate_limit import rate_limit
from services.errors import (
    CounterIncrementError,
    HealthUpdateError,
    LedgerWriteError,
    PetEngineError,
    SubmissionValidationError,
)
from services.pet import apply_analyzed_submission, serialize_pet
from services.submissions import get_submission_history, get_submission_stats, serialize_submission

router = APIRouter()
logger = logging.getLogger(__name__)


_STEP_MESSAGES = {
    LedgerWriteError.step: "Failed to save submission. Please try again.",
    HealthUpdateError.step: "Failed to update pet health. Please try again.",
    CounterIncrementError.step: "Failed to update pet progress. Please try again.",
}


class CreateSubmissionRequest(BaseModel):
    pet_id: str = Field(min_length=1)
    # Validated by the pet engine so direct callers get the same field errors.
    analysis_result: Optional[Dict[str, Any]] = None


@router.post("/create", status_code=201)
async def create_submission(
    request: CreateSubmissionRequest,
    _rate_limit: None = Depends(rate_limit("submission_create", limit=120, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        applied = await apply_analyzed_submission(
            auth.user_id,
            db,
            pet_id=request.pet_id,
            analysis_result=request.analysis_result,
        )
    except SubmissionValidationError as exc:
        return JSONResponse(status_code=422, content={"detail": exc.to_dict()})
    except PetEngineError as exc:
        logger.error("Submission creation failed at step=%s: %s", exc.step, exc)
        detail = exc.to_dict()
        detail["message"] = _STEP_MESSAGES.get(exc.step, "Submission creation failed. Please try again later.")
        return JSONResponse(status_code=500, content={"detail": detail})

    if applied is None:
        raise HTTPException(status_code=404, detail="Pet not found")

    return {
        "success": True,
        "submission": serialize_submission(applied.submission),
        "pet": serialize_pet(applied.pet),
        "message": "Content submission created successfully",
    }


@router.get("/stats")
async def submission_stats(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await get_submission_stats(auth.user_id, db)
    except SQLAlchemyError as exc:
        logger.error("Database error fetching submission stats: user_id=%s error=%s", auth.user_id, exc)
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch submission statistics. Please try again later.",
        ) from exc


@router.get("/history")
async def submission_history(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        entries = await get_submission_history(auth.user_id, db, limit=limit)
    except SQLAlchemyError as exc:
        logger.error("Database error fetching submission history: user_id=%s error=%s", auth.user_id, exc)
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch submission history. Please try again later.",
        ) from exc
    return {"submissions": [serialize_submission(entry) for entry in entries]}
