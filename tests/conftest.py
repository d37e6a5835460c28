"""Pytest configuration and fixtures."""

import os

import pytest

# Settings are read lazily, but test modules import the app at collection time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("CHAYO_ENV", "test")

from chayo.core.config import get_settings  # noqa: E402
from chayo.core.schemas_organizations import AuthUser  # noqa: E402
from chayo.services.business_info import BusinessInfoService  # noqa: E402
from chayo.services.collaborators import StaticAuthProvider  # noqa: E402
from chayo.services.knowledge_store import BusinessKnowledgeStore  # noqa: E402
from chayo.services.organization_chat import OrganizationChatService  # noqa: E402
from chayo.services.setup_completion import SetupCompletionService  # noqa: E402
from chayo.services.vibe_cards import VibeCardService  # noqa: E402
from tests.fakes.fake_llm import FakeCompletionClient, FakeEmbedder  # noqa: E402
from tests.fakes.fake_supabase import FakeSupabase  # noqa: E402

DB_MODULES = [
    "chayo.db.organizations",
    "chayo.db.business_info_fields",
    "chayo.db.setup_completion",
    "chayo.db.conversation_embeddings",
    "chayo.db.vibe_cards",
    "chayo.db.agents",
    "chayo.services.collaborators",
]


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["CHAYO_ENV"] = "test"
    get_settings.cache_clear()


@pytest.fixture
def fake_db(monkeypatch):
    """Route every ``get_supabase()`` call to one in-memory database."""
    db = FakeSupabase()
    for module in DB_MODULES:
        monkeypatch.setattr(f"{module}.get_supabase", lambda: db)
    return db


@pytest.fixture
def llm():
    return FakeCompletionClient()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def user():
    return AuthUser(id="user-1", email="ana@example.com")


@pytest.fixture
def organization_row(fake_db, user):
    org = fake_db.seed(
        "organizations",
        name="ana's Organization",
        slug="anas-organization-abc123",
        owner_id=user.id,
        website_scraping_state=None,
    )
    fake_db.seed(
        "team_members",
        organization_id=org["id"],
        user_id=user.id,
        role="owner",
        status="active",
    )
    return org


@pytest.fixture
def make_chat_service(fake_db, llm, embedder, user):
    """Build an ``OrganizationChatService`` wired to the fakes."""

    def _make(auth_user=user, scraper=None, agent_links=None, prompt_loader=None):
        business_info = BusinessInfoService()
        store = BusinessKnowledgeStore(llm, embedder=embedder)
        tracker = SetupCompletionService(
            VibeCardService(llm), agent_links=agent_links, business_info=business_info
        )
        return OrganizationChatService(
            auth=StaticAuthProvider(auth_user),
            completion_client=llm,
            prompt_loader=prompt_loader,
            knowledge_store=store,
            business_info=business_info,
            setup_tracker=tracker,
            agent_links=agent_links,
            scraper=scraper,
        )

    return _make
