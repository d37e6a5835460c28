"""Pydantic schemas for organizations and the records they own."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enums
# ============================================================================


class FieldType(str, Enum):
    """Input type expected for a ledger question."""
    TEXT = "text"
    MULTIPLE_CHOICE = "multiple_choice"
    BOOLEAN = "boolean"
    NUMBER = "number"


class SetupStatus(str, Enum):
    """Onboarding status of an organization."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class WebsiteScrapingState(str, Enum):
    """Whether the website scraping shortcut was offered to the organization."""
    OFFERED = "offered"


class VibeAesthetic(str, Enum):
    """Aesthetics a vibe card can take."""
    BOHO_CHIC = "Boho-chic"
    MINIMALIST = "Minimalist"
    VINTAGE = "Vintage"
    MODERN = "Modern"
    RUSTIC = "Rustic"
    ECLECTIC = "Eclectic"
    INDUSTRIAL = "Industrial"
    COASTAL = "Coastal"
    ARTISAN = "Artisan"
    LUXURY = "Luxury"


# ============================================================================
# Organization
# ============================================================================


class Organization(BaseModel):
    """Tenant root."""
    id: str
    name: str
    slug: Optional[str] = None
    owner_id: Optional[str] = None
    website_scraping_state: Optional[str] = None
    mobile_access_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthUser(BaseModel):
    """Identity returned by the auth provider."""
    id: str
    email: Optional[str] = None


# ============================================================================
# Question ledger
# ============================================================================


class QuestionSpec(BaseModel):
    """A question to insert into the ledger."""
    field_name: str = Field(..., min_length=1)
    question_template: str = Field(..., min_length=1)
    field_type: FieldType = FieldType.TEXT
    multiple_choices: Optional[list[str]] = None
    allow_multiple: bool = False


class QuestionRecord(BaseModel):
    """One asked question, scoped to an organization."""
    id: Optional[str] = None
    organization_id: str
    field_name: str
    question_template: str
    field_type: FieldType = FieldType.TEXT
    multiple_choices: Optional[list[str]] = None
    allow_multiple: bool = False
    is_answered: bool = False
    field_value: Optional[str] = None
    confidence: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("field_type", mode="before")
    @classmethod
    def _unknown_type_is_text(cls, value: Any) -> Any:
        if value in {t.value for t in FieldType} or isinstance(value, FieldType):
            return value
        return FieldType.TEXT

    @property
    def accepts_multiple(self) -> bool:
        """Multiple-choice questions always render as multi-select."""
        return self.allow_multiple or self.field_type == FieldType.MULTIPLE_CHOICE


# ============================================================================
# Setup completion
# ============================================================================


class SetupCompletion(BaseModel):
    """Per-organization onboarding status."""
    id: Optional[str] = None
    organization_id: str
    setup_status: SetupStatus = SetupStatus.IN_PROGRESS
    completed_at: Optional[datetime] = None
    total_questions: int = 0
    answered_questions: int = 0
    completion_data: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.setup_status == SetupStatus.COMPLETED


class OnboardingProgress(BaseModel):
    """Snapshot returned to callers deciding the chat mode."""
    is_completed: bool = False
    pending_questions: list[QuestionRecord] = Field(default_factory=list)


# ============================================================================
# Memory
# ============================================================================


class MemoryRecord(BaseModel):
    """Stored conversation segment."""
    id: Optional[str] = None
    organization_id: str
    conversation_segment: str
    segment_type: str = "conversation"
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class MemoryMatch(BaseModel):
    """Search hit; ``distance`` is a similarity score where higher is closer."""
    id: str
    conversation_segment: str
    segment_type: str = "conversation"
    metadata: dict[str, Any] = Field(default_factory=dict)
    distance: float


class MemoryUpdate(BaseModel):
    """Candidate memory write."""
    text: str = Field(..., min_length=1)
    type: str = "conversation"
    metadata: dict[str, Any] = Field(default_factory=dict)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    reason: Optional[str] = None


class ConflictAction(str, Enum):
    REPLACE = "replace"
    KEEP_BOTH = "keep_both"


class ConflictResolution(BaseModel):
    action: ConflictAction
    confidence: float
    reason: str


class MemoryUpdateResult(BaseModel):
    """Outcome of ``BusinessKnowledgeStore.update_memory``."""
    success: bool
    action: str
    memory_id: str = ""
    conflicts: list[MemoryMatch] = Field(default_factory=list)
    resolution: Optional[ConflictResolution] = None


# ============================================================================
# Vibe card
# ============================================================================


DEFAULT_VIBE_COLORS = {"primary": "#8B7355", "secondary": "#A8956F", "accent": "#E6D7C3"}


class VibeColors(BaseModel):
    primary: str = DEFAULT_VIBE_COLORS["primary"]
    secondary: str = DEFAULT_VIBE_COLORS["secondary"]
    accent: str = DEFAULT_VIBE_COLORS["accent"]


class ContactInfo(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None


class VibeCard(BaseModel):
    """Branded summary synthesized from onboarding answers."""
    organization_id: Optional[str] = None
    business_name: str = "Business"
    business_type: str = "Business"
    origin_story: str = ""
    value_badges: list[str] = Field(default_factory=list)
    personality_traits: list[str] = Field(default_factory=list)
    vibe_colors: VibeColors = Field(default_factory=VibeColors)
    vibe_aesthetic: VibeAesthetic = VibeAesthetic.BOHO_CHIC
    why_different: str = ""
    perfect_for: list[str] = Field(default_factory=list)
    customer_love: str = ""
    location: Optional[str] = None
    website: Optional[str] = None
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    ai_generated_image_url: Optional[str] = None

    @field_validator("value_badges", "personality_traits", "perfect_for", mode="before")
    @classmethod
    def _decode_list(cls, value: Any) -> Any:
        # jsonb arrays sometimes come back as encoded strings
        if value is None:
            return []
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except ValueError:
                return [item.strip() for item in value.split(",") if item.strip()]
            return decoded if isinstance(decoded, list) else [str(decoded)]
        return value

    def to_row(self) -> dict[str, Any]:
        """Flatten into the ``vibe_cards`` column layout."""
        data = self.model_dump(mode="json", exclude={"contact_info"})
        data["contact_phone"] = self.contact_info.phone
        data["contact_email"] = self.contact_info.email
        return data

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "VibeCard":
        data = dict(row)
        data["contact_info"] = {
            "phone": data.pop("contact_phone", None),
            "email": data.pop("contact_email", None),
        }
        data["vibe_colors"] = data.get("vibe_colors") or DEFAULT_VIBE_COLORS
        data["vibe_aesthetic"] = data.get("vibe_aesthetic") or VibeAesthetic.BOHO_CHIC
        return cls.model_validate(data)
