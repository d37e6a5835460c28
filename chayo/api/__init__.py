"""API router for v1 endpoints."""

from fastapi import APIRouter

from chayo.api import memory, onboarding, organization_chat, vibe_card

router = APIRouter()

router.include_router(organization_chat.router, tags=["chat"])
router.include_router(onboarding.router, tags=["onboarding"])
router.include_router(memory.router, tags=["memory"])
router.include_router(vibe_card.router, tags=["vibe_card"])
