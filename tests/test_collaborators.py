"""Tests for auth, agent link and website scraping collaborators."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from chayo.core.config import get_settings
from chayo.core.exceptions import AuthenticationError
from chayo.core.schemas_organizations import Organization
from chayo.services.collaborators import (
    FirecrawlWebsiteScraper,
    StaticAuthProvider,
    SupabaseAgentLinkCreator,
    SupabaseAuthProvider,
    slugify,
)
from tests.fakes.fake_llm import WEBSITE


def _extraction(has_enough_info=True):
    return {
        "has_enough_info": has_enough_info,
        "business_name": "Luna",
        "business_type": "Bakery",
        "description": "Bread",
        "phone": "",
        "email": "",
        "address": "",
        "confidence": 0.8,
        "extracted_content": "Luna bakes bread daily",
    }


class TestAuth:
    @pytest.mark.asyncio
    async def test_supabase_token_resolves_user(self, fake_db):
        fake_db.auth.add_user("token-1", "user-1", "ana@example.com")

        user = await SupabaseAuthProvider("token-1").get_current_user()

        assert user.id == "user-1"
        assert user.email == "ana@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "bad-token"])
    async def test_missing_or_invalid_token(self, fake_db, token):
        with pytest.raises(AuthenticationError):
            await SupabaseAuthProvider(token).get_current_user()

    @pytest.mark.asyncio
    async def test_static_provider_without_user(self):
        with pytest.raises(AuthenticationError):
            await StaticAuthProvider(None).get_current_user()


class TestAgentLinks:
    def _org(self, row):
        return Organization.model_validate(row)

    def _answer(self, fake_db, org_id, count):
        for i in range(count):
            fake_db.seed(
                "business_info_fields",
                organization_id=org_id,
                field_name=f"f{i}",
                question_template=f"q{i}",
                is_answered=True,
                field_value="x",
            )

    @pytest.mark.asyncio
    async def test_below_threshold_creates_nothing(self, fake_db, organization_row):
        self._answer(fake_db, organization_row["id"], 2)

        agent = await SupabaseAgentLinkCreator().maybe_create_agent_chat_link_if_threshold_met(
            self._org(organization_row)
        )

        assert agent is None
        assert fake_db.rows("agents") == []

    @pytest.mark.asyncio
    async def test_creates_agent_once(self, fake_db, organization_row):
        self._answer(fake_db, organization_row["id"], 3)
        creator = SupabaseAgentLinkCreator()
        org = self._org(organization_row)

        first = await creator.maybe_create_agent_chat_link_if_threshold_met(org)
        second = await creator.maybe_create_agent_chat_link_if_threshold_met(org)

        assert first["slug"] == organization_row["slug"]
        assert second is None
        assert len(fake_db.rows("agents")) == 1


def test_slugify():
    assert slugify("Ana's Organization!") == "ana-s-organization"


class TestFirecrawlScraper:
    @pytest.mark.asyncio
    async def test_extracts_business_info(self, llm):
        llm.script(WEBSITE, _extraction())
        scraper = FirecrawlWebsiteScraper(llm, get_settings())

        with patch.object(
            scraper, "scrape", AsyncMock(return_value={"markdown": "# Luna", "metadata": {}})
        ):
            result = await scraper.scrape_and_extract_business_info("https://luna.mx")

        assert result.success
        assert result.business_info["business_name"] == "Luna"
        assert result.raw_content == "Luna bakes bread daily"

    @pytest.mark.asyncio
    async def test_not_enough_info(self, llm):
        llm.script(WEBSITE, _extraction(has_enough_info=False))
        scraper = FirecrawlWebsiteScraper(llm, get_settings())

        with patch.object(
            scraper, "scrape", AsyncMock(return_value={"markdown": "# Hi", "metadata": {}})
        ):
            result = await scraper.scrape_and_extract_business_info("https://luna.mx")

        assert not result.success
        assert result.raw_content == "# Hi"

    @pytest.mark.asyncio
    async def test_empty_page(self, llm):
        scraper = FirecrawlWebsiteScraper(llm, get_settings())

        with patch.object(
            scraper, "scrape", AsyncMock(return_value={"markdown": "  ", "metadata": {}})
        ):
            result = await scraper.scrape_and_extract_business_info("https://luna.mx")

        assert not result.success
        assert llm.structured_calls == []

    @pytest.mark.asyncio
    async def test_timeout(self, llm):
        scraper = FirecrawlWebsiteScraper(llm, get_settings())

        with patch.object(
            scraper, "scrape", AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        ):
            result = await scraper.scrape_and_extract_business_info("https://luna.mx")

        assert not result.success
        assert "Timed out" in result.error

    @pytest.mark.asyncio
    async def test_missing_api_key(self, llm):
        settings = get_settings().model_copy(update={"FIRECRAWL_API_KEY": None})
        scraper = FirecrawlWebsiteScraper(llm, settings)

        result = await scraper.scrape_and_extract_business_info("https://luna.mx")

        assert not result.success
        assert "FIRECRAWL_API_KEY" in result.error
