"""Pet hatching and retrieval router."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, ensure_local_user, get_auth_context
from services.errors import PetStoreError
from services.pet import create_pet, get_pet, serialize_pet

router = APIRouter()
logger = logging.getLogger(__name__)


class CreatePetRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=40)


@router.post("/create")
async def hatch_pet(
    request: Optional[CreatePetRequest] = None,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        await ensure_local_user(db, auth)
        creation = await create_pet(auth.user_id, db, name=request.name if request else None)
    except PetStoreError as exc:
        logger.error("Error creating pet: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to create pet. Please try again later.") from exc

    if not creation.created:
        return JSONResponse(
            status_code=409,
            content={
                "success": False,
                "error": "Pet already exists",
                "pet": serialize_pet(creation.pet),
            },
        )
    return {"success": True, "pet": serialize_pet(creation.pet)}


@router.get("")
async def read_pet(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        pet = await get_pet(auth.user_id, db)
    except PetStoreError as exc:
        logger.error("Error getting pet: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to retrieve pet. Please try again later.") from exc

    if pet is None:
        raise HTTPException(status_code=404, detail="Pet not found")
    return {"success": True, "pet": serialize_pet(pet)}
