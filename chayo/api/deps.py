"""FastAPI dependencies: bearer auth and service wiring."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chayo.core.config import get_settings
from chayo.core.exceptions import AuthenticationError
from chayo.core.llm import CompletionClient, OpenAICompletionClient
from chayo.core.logging import get_logger
from chayo.core.prompt_config import PromptConfigLoader
from chayo.core.schemas_organizations import AuthUser
from chayo.db import organizations as organizations_db
from chayo.services.collaborators import (
    FirecrawlWebsiteScraper,
    SupabaseAgentLinkCreator,
    SupabaseAuthProvider,
)
from chayo.services.knowledge_store import BusinessKnowledgeStore
from chayo.services.organization_chat import OrganizationChatService
from chayo.services.vibe_cards import VibeCardService

logger = get_logger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


@lru_cache
def get_completion_client() -> CompletionClient:
    return OpenAICompletionClient(get_settings())


@lru_cache
def get_prompt_loader() -> PromptConfigLoader:
    return PromptConfigLoader()


def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_chat_service(
    token: Optional[str] = Depends(get_access_token),
    completion_client: CompletionClient = Depends(get_completion_client),
    prompt_loader: PromptConfigLoader = Depends(get_prompt_loader),
) -> OrganizationChatService:
    settings = get_settings()
    scraper = (
        FirecrawlWebsiteScraper(completion_client, settings)
        if settings.FIRECRAWL_API_KEY
        else None
    )
    return OrganizationChatService(
        auth=SupabaseAuthProvider(token),
        completion_client=completion_client,
        prompt_loader=prompt_loader,
        agent_links=SupabaseAgentLinkCreator(settings),
        scraper=scraper,
        settings=settings,
    )


def get_knowledge_store(
    completion_client: CompletionClient = Depends(get_completion_client),
) -> BusinessKnowledgeStore:
    return BusinessKnowledgeStore(completion_client)


def get_vibe_card_service(
    completion_client: CompletionClient = Depends(get_completion_client),
) -> VibeCardService:
    return VibeCardService(completion_client)


async def require_user(
    service: OrganizationChatService = Depends(get_chat_service),
) -> AuthUser:
    try:
        return await service.auth.get_current_user()
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e


def require_org_access(organization_id: str, user: AuthUser = Depends(require_user)) -> str:
    """Allow the organization's owner and its active team members."""
    org = organizations_db.get_organization(organization_id)
    if not org:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

    if org.get("owner_id") == user.id:
        return organization_id
    membership = organizations_db.get_membership(organization_id, user.id)
    if membership and membership.get("status") == "active":
        return organization_id

    logger.warning(f"User {user.id} denied access to organization {organization_id}")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
