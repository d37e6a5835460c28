"""Vibe card endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from chayo.api.deps import get_vibe_card_service, require_org_access
from chayo.services.vibe_cards import VibeCardService

router = APIRouter()


@router.get("/organizations/{organization_id}/vibe-card")
async def get_vibe_card(
    organization_id: str = Depends(require_org_access),
    service: VibeCardService = Depends(get_vibe_card_service),
) -> dict:
    card = await service.get_vibe_card(organization_id)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vibe card not found")
    return card.model_dump(mode="json")


@router.put("/organizations/{organization_id}/vibe-card")
async def update_vibe_card(
    updates: dict[str, Any] = Body(...),
    organization_id: str = Depends(require_org_access),
    service: VibeCardService = Depends(get_vibe_card_service),
) -> dict:
    card = await service.update_vibe_card(organization_id, updates)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vibe card not found")
    return card.model_dump(mode="json")


@router.post("/organizations/{organization_id}/vibe-card/regenerate")
async def regenerate_vibe_card(
    organization_id: str = Depends(require_org_access),
    service: VibeCardService = Depends(get_vibe_card_service),
) -> dict:
    card = await service.regenerate_vibe_card(organization_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Could not generate a vibe card from the collected business information",
        )
    return card.model_dump(mode="json")
