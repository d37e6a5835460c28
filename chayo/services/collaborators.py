"""External collaborators of the chat engine: auth, agent links, website scraping."""

import re
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from chayo.chains.extract_website_info import extract_website_info
from chayo.core.config import Settings, get_settings
from chayo.core.exceptions import AuthenticationError
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_organizations import AuthUser, Organization
from chayo.db import agents as agents_db
from chayo.db import business_info_fields as fields_db
from chayo.db.supabase_client import get_supabase

logger = get_logger(__name__)

FIRECRAWL_BASE_URL = "https://api.firecrawl.dev/v1"


# ============================================================================
# Auth
# ============================================================================


class AuthProvider(Protocol):
    async def get_current_user(self) -> AuthUser: ...


class SupabaseAuthProvider:
    """Resolves a bearer token through Supabase auth."""

    def __init__(self, access_token: str | None):
        self.access_token = access_token

    async def get_current_user(self) -> AuthUser:
        if not self.access_token:
            raise AuthenticationError()
        try:
            response = get_supabase().auth.get_user(self.access_token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError() from e

        user = getattr(response, "user", None)
        if not user:
            raise AuthenticationError()
        return AuthUser(id=str(user.id), email=getattr(user, "email", None))


class StaticAuthProvider:
    """Always returns the same user; ``None`` means unauthenticated."""

    def __init__(self, user: AuthUser | None):
        self.user = user

    async def get_current_user(self) -> AuthUser:
        if self.user is None:
            raise AuthenticationError()
        return self.user


# ============================================================================
# Agent chat links
# ============================================================================


class AgentLinkCreator(Protocol):
    async def maybe_create_agent_chat_link_if_threshold_met(
        self, organization: Organization
    ) -> dict | None: ...


class SupabaseAgentLinkCreator:
    """Creates the organization's public agent once enough is known about it."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def maybe_create_agent_chat_link_if_threshold_met(
        self, organization: Organization
    ) -> dict | None:
        answered = fields_db.count_answered_questions(organization.id)
        if answered < self.settings.AGENT_LINK_MIN_ANSWERS:
            logger.debug(
                f"Agent link threshold not met ({answered}/{self.settings.AGENT_LINK_MIN_ANSWERS})",
                extra={"organization_id": organization.id},
            )
            return None

        if agents_db.get_agent_for_organization(organization.id):
            return None

        slug = organization.slug or slugify(organization.name) or organization.id
        agent = agents_db.create_agent(organization.id, f"{organization.name} Assistant", slug)
        logger.info("Agent chat link created", extra={"organization_id": organization.id})
        return agent


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


# ============================================================================
# Website scraping
# ============================================================================


class ScrapeResult(BaseModel):
    success: bool
    business_info: dict[str, Any] | None = None
    raw_content: str | None = None
    error: str | None = None


class WebsiteScraper(Protocol):
    async def scrape_and_extract_business_info(self, url: str) -> ScrapeResult: ...


class FirecrawlWebsiteScraper:
    """Scrapes a site with Firecrawl and extracts business facts with an LLM."""

    def __init__(self, completion_client: CompletionClient, settings: Settings | None = None):
        self.completion_client = completion_client
        self.settings = settings or get_settings()

    async def scrape(self, url: str) -> dict[str, Any]:
        """
        Scrape ``url`` into markdown.

        Raises:
            ValueError: If FIRECRAWL_API_KEY is not configured
            httpx.HTTPStatusError: If the API request fails
        """
        if not self.settings.FIRECRAWL_API_KEY:
            raise ValueError("FIRECRAWL_API_KEY not configured")

        async with httpx.AsyncClient(timeout=self.settings.FIRECRAWL_TIMEOUT) as client:
            logger.info(f"Scraping website: {url}")
            response = await client.post(
                f"{FIRECRAWL_BASE_URL}/scrape",
                headers={"Authorization": f"Bearer {self.settings.FIRECRAWL_API_KEY}"},
                json={"url": url, "formats": ["markdown"], "onlyMainContent": True},
            )
            response.raise_for_status()
            data = response.json().get("data", {})
            return {
                "markdown": data.get("markdown", ""),
                "metadata": data.get("metadata", {}),
            }

    async def scrape_and_extract_business_info(self, url: str) -> ScrapeResult:
        try:
            page = await self.scrape(url)
        except ValueError as e:
            logger.warning(f"Firecrawl not configured: {e}")
            return ScrapeResult(success=False, error=str(e))
        except httpx.HTTPStatusError as e:
            logger.warning(f"Firecrawl HTTP error for {url}: {e.response.status_code}")
            return ScrapeResult(success=False, error=f"HTTP {e.response.status_code}")
        except httpx.TimeoutException:
            logger.warning(f"Firecrawl timeout for {url}")
            return ScrapeResult(success=False, error="Timed out while scraping the website")
        except httpx.HTTPError as e:
            logger.warning(f"Firecrawl error for {url}: {e}")
            return ScrapeResult(success=False, error=str(e))

        markdown = page["markdown"]
        if not markdown.strip():
            return ScrapeResult(success=False, error="The website returned no readable content")

        info = await extract_website_info(self.completion_client, url, markdown)
        if info is None or not info.has_enough_info:
            return ScrapeResult(
                success=False,
                raw_content=markdown,
                error="Not enough business information found on the website",
            )

        return ScrapeResult(
            success=True,
            business_info=info.model_dump(),
            raw_content=info.extracted_content or markdown,
        )
