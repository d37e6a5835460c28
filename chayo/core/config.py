"""Configuration management for the Chayo chat engine."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass

DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    CHAYO_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    DEFAULT_LOCALE: str = Field(default="es", description="Locale used when none or unknown")

    # Conversation turn generation
    CHAT_MODEL: str = Field(default="gpt-4o-mini", description="Model for chat turns")
    CHAT_TEMPERATURE: float = Field(default=0.7, description="Temperature for chat turns")
    CHAT_MAX_TOKENS: int = Field(default=1000, description="Max tokens for chat turns")

    # Answer validation
    VALIDATION_MODEL: str = Field(default="gpt-4o-mini", description="Model for answer validation")
    VALIDATION_TEMPERATURE: float = Field(default=0.1, description="Answer validation temperature")
    VALIDATION_MAX_TOKENS: int = Field(default=200, description="Answer validation max tokens")

    # Relevance classifier and question extraction
    CLASSIFIER_MODEL: str = Field(default="gpt-4o-mini", description="Model for relevance gate")
    EXTRACTION_MODEL: str = Field(
        default="gpt-4o-mini", description="Model for question text extraction"
    )

    # Vibe card synthesis
    VIBE_MODEL: str = Field(default="gpt-4o", description="Model for vibe card synthesis")
    VIBE_TEMPERATURE: float = Field(default=0.8, description="Vibe card synthesis temperature")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")

    # Memory retrieval and conflict policy
    MEMORY_MATCH_THRESHOLD: float = Field(default=0.8, description="Default search threshold")
    MEMORY_MATCH_COUNT: int = Field(default=5, description="Default search result cap")
    MEMORY_CONFLICT_THRESHOLD: float = Field(
        default=0.85, description="Similarity at which a new memory conflicts with an old one"
    )
    MEMORY_REPLACE_CONFIDENCE: float = Field(
        default=0.9, description="Confidence above which a conflicting memory replaces"
    )
    MEMORY_REPLACE_SIMILARITY: float = Field(
        default=0.9, description="Similarity above which a conflicting memory replaces"
    )
    MEMORY_DEFAULT_CONFIDENCE: float = Field(
        default=0.8, description="Confidence assumed when a memory update omits one"
    )
    KNOWLEDGE_SUMMARY_LIMIT: int = Field(
        default=10, description="Recent segments injected as training context"
    )

    # Prompt configuration
    PROMPTS_DIR: Path = Field(
        default=DEFAULT_PROMPTS_DIR, description="Directory holding onboarding/business YAML"
    )

    # Website scraping (optional)
    FIRECRAWL_API_KEY: str | None = Field(default=None, description="Firecrawl API key")
    FIRECRAWL_TIMEOUT: int = Field(default=30, description="Firecrawl request timeout (s)")

    # Agent chat link creation
    AGENT_LINK_MIN_ANSWERS: int = Field(
        default=3, description="Answered questions required before an agent link is created"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
