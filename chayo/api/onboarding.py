"""Onboarding status, reset and website scraping endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from chayo.api.deps import get_chat_service, require_user
from chayo.core.exceptions import OrganizationResolutionError
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import WebsiteScrapingRequest
from chayo.core.schemas_organizations import AuthUser, Organization
from chayo.services.organization_chat import OrganizationChatService

logger = get_logger(__name__)

router = APIRouter()


async def _caller_organization(
    service: OrganizationChatService, user: AuthUser
) -> Organization:
    try:
        return await service.get_or_create_organization(user)
    except OrganizationResolutionError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e


@router.get("/onboarding-status")
async def onboarding_status(
    user: AuthUser = Depends(require_user),
    service: OrganizationChatService = Depends(get_chat_service),
) -> dict:
    organization = await _caller_organization(service, user)
    progress = await service.setup_tracker.get_onboarding_progress(organization.id)
    return {
        "isCompleted": progress.is_completed,
        "pendingQuestions": [
            {
                "fieldName": q.field_name,
                "questionTemplate": q.question_template,
                "fieldType": q.field_type.value,
                "multipleChoices": q.multiple_choices,
                "allowMultiple": q.accepts_multiple,
            }
            for q in progress.pending_questions
        ],
    }


@router.post("/setup/reset")
async def reset_setup(
    user: AuthUser = Depends(require_user),
    service: OrganizationChatService = Depends(get_chat_service),
) -> dict:
    organization = await _caller_organization(service, user)
    await service.setup_tracker.reset_onboarding(organization.id)
    logger.info(f"Onboarding reset by {user.id}", extra={"organization_id": organization.id})
    return {"success": True}


@router.post("/website-scraping")
async def website_scraping(
    body: WebsiteScrapingRequest,
    user: AuthUser = Depends(require_user),
    service: OrganizationChatService = Depends(get_chat_service),
) -> dict:
    organization = await _caller_organization(service, user)
    outcome = await service.handle_website_scraping(str(body.url), organization.id)
    return {
        "success": outcome.success,
        "hasEnoughInfo": outcome.has_enough_info,
        "businessInfo": outcome.business_info,
        "error": outcome.error,
    }
