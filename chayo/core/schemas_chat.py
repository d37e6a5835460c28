"""Chat request/response models and structured-output contracts.

The JSON schemas below are sent as ``response_format`` so the completion
endpoint guarantees the shape; the pydantic models validate what comes back.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator

from chayo.core.schemas_organizations import FieldType, Organization, VibeAesthetic

# ============================================================================
# Chat messages
# ============================================================================

MAX_MESSAGE_CHARS = 4000
MAX_TOTAL_CHARS = 32000
SUPPORTED_LOCALES = ("en", "es")


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A single chat message."""

    role: ChatRole
    content: str

    def as_openai(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ChatResponse(BaseModel):
    """What a chat turn returns to its caller."""

    ai_message: str
    multiple_choices: Optional[list[str]] = None
    allow_multiple: bool = False
    status_signal: Optional[str] = None
    setup_completed: bool = False
    organization: Optional[Organization] = None

    def to_api(self) -> dict[str, Any]:
        return {
            "aiMessage": self.ai_message,
            "multipleChoices": self.multiple_choices,
            "allowMultiple": self.allow_multiple,
            "setupCompleted": self.setup_completed,
        }


# ============================================================================
# Structured turn payloads
# ============================================================================


class OnboardingTurn(BaseModel):
    """Structured reply generated during onboarding."""

    message: str
    status: str = "onboarding_in_progress"
    field_name: str = ""
    field_type: FieldType = FieldType.TEXT
    question_template: str = ""
    multiple_choices: list[str] = Field(default_factory=list)
    allow_multiple: bool = False


class BusinessQuestion(BaseModel):
    field_name: str = ""
    field_type: FieldType = FieldType.TEXT
    question_template: str = ""
    multiple_choices: list[str] = Field(default_factory=list)
    allow_multiple: bool = False


class BusinessTurn(BaseModel):
    """Structured reply generated once setup is complete."""

    message: str
    status: str = "conversation"
    question: Optional[BusinessQuestion] = None


class AnswerValidation(BaseModel):
    """Verdict on whether a message answered a pending question."""

    answered: bool = False
    answer: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def is_usable(self) -> bool:
        return bool(self.answered and self.answer and self.confidence)


class BusinessInfoExtraction(BaseModel):
    """Business facts pulled from a scraped website."""

    has_enough_info: bool = False
    business_name: str = ""
    business_type: str = ""
    description: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    confidence: float = 0.5
    extracted_content: str = ""


VIBE_MAX_BADGES = 6
VIBE_MAX_TRAITS = 5
VIBE_MAX_AUDIENCES = 4


class VibeSynthesis(BaseModel):
    """Raw AI output for a vibe card."""

    business_name: str
    business_type: str
    enhanced_origin_story: str
    value_badges: list[str]
    personality_traits: list[str]
    perfect_for: list[str]
    vibe_colors: dict[str, str]
    vibe_aesthetic: VibeAesthetic
    why_different: str
    customer_love: str


# ============================================================================
# JSON schemas for response_format
# ============================================================================

_FIELD_TYPES = [t.value for t in FieldType]
_HEX = "^#[0-9A-Fa-f]{6}$"


def _json_schema(name: str, schema: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": True, "schema": schema},
    }


_QUESTION_PROPERTIES: dict[str, Any] = {
    "field_name": {
        "type": "string",
        "description": "Stable snake_case key for the business information being collected",
    },
    "field_type": {
        "type": "string",
        "enum": _FIELD_TYPES,
        "description": "Type of input expected",
    },
    "question_template": {
        "type": "string",
        "description": "The actual question being asked, extracted from the message",
    },
    "multiple_choices": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Choices for multiple choice questions; empty array otherwise",
    },
    "allow_multiple": {
        "type": "boolean",
        "description": "Whether several choices can be selected; false for other field types",
    },
}

ONBOARDING_SCHEMA = _json_schema(
    "onboarding_question",
    {
        "type": "object",
        "properties": {
            "message": {
                "type": "string",
                "description": "The conversational message to display to the user",
            },
            "status": {
                "type": "string",
                "enum": ["onboarding_in_progress", "setup_complete"],
                "description": "Current onboarding status",
            },
            **_QUESTION_PROPERTIES,
        },
        "required": ["message", "status", *_QUESTION_PROPERTIES.keys()],
        "additionalProperties": False,
    },
)

BUSINESS_SCHEMA = _json_schema(
    "business_question",
    {
        "type": "object",
        "properties": {
            "message": {
                "type": "string",
                "description": "The conversational message to display to the business owner",
            },
            "status": {
                "type": "string",
                "enum": ["conversation", "question"],
                "description": "Whether this turn asks a new business question",
            },
            "question": {
                "type": "object",
                "properties": dict(_QUESTION_PROPERTIES),
                "required": list(_QUESTION_PROPERTIES.keys()),
                "additionalProperties": False,
            },
        },
        "required": ["message", "status", "question"],
        "additionalProperties": False,
    },
)

VALIDATION_SCHEMA = _json_schema(
    "answer_validation",
    {
        "type": "object",
        "properties": {
            "answered": {"type": "boolean", "description": "Whether the question was answered"},
            "answer": {
                "type": ["string", "null"],
                "description": "Extracted answer, null when not answered",
            },
            "confidence": {
                "type": ["number", "null"],
                "description": "Confidence 0.0-1.0, null when not answered",
            },
        },
        "required": ["answered", "answer", "confidence"],
        "additionalProperties": False,
    },
)

VIBE_CARD_SCHEMA = _json_schema(
    "vibe_creation",
    {
        "type": "object",
        "properties": {
            "business_name": {"type": "string", "description": "Enhanced business name"},
            "business_type": {"type": "string", "description": "Refined business type"},
            "enhanced_origin_story": {"type": "string", "description": "Polished origin story"},
            "value_badges": {
                "type": "array",
                "items": {"type": "string"},
                "description": f"Key value propositions, at most {VIBE_MAX_BADGES}",
            },
            "personality_traits": {
                "type": "array",
                "items": {"type": "string"},
                "description": f"Brand personality traits, at most {VIBE_MAX_TRAITS}",
            },
            "perfect_for": {
                "type": "array",
                "items": {"type": "string"},
                "description": f"Ideal customer types, at most {VIBE_MAX_AUDIENCES}",
            },
            "vibe_colors": {
                "type": "object",
                "properties": {
                    "primary": {"type": "string", "pattern": _HEX},
                    "secondary": {"type": "string", "pattern": _HEX},
                    "accent": {"type": "string", "pattern": _HEX},
                },
                "required": ["primary", "secondary", "accent"],
                "additionalProperties": False,
            },
            "vibe_aesthetic": {
                "type": "string",
                "enum": [a.value for a in VibeAesthetic],
                "description": "The overall aesthetic vibe",
            },
            "why_different": {"type": "string", "description": "What sets the business apart"},
            "customer_love": {
                "type": "string",
                "description": "A short testimonial-style line from a happy customer",
            },
        },
        "required": [
            "business_name",
            "business_type",
            "enhanced_origin_story",
            "value_badges",
            "personality_traits",
            "perfect_for",
            "vibe_colors",
            "vibe_aesthetic",
            "why_different",
            "customer_love",
        ],
        "additionalProperties": False,
    },
)

BUSINESS_INFO_EXTRACTION_SCHEMA = _json_schema(
    "business_info_extraction",
    {
        "type": "object",
        "properties": {
            "has_enough_info": {"type": "boolean"},
            "business_name": {"type": "string"},
            "business_type": {"type": "string"},
            "description": {"type": "string"},
            "phone": {"type": "string"},
            "email": {"type": "string"},
            "address": {"type": "string"},
            "confidence": {"type": "number"},
            "extracted_content": {"type": "string"},
        },
        "required": [
            "has_enough_info",
            "business_name",
            "business_type",
            "description",
            "phone",
            "email",
            "address",
            "confidence",
            "extracted_content",
        ],
        "additionalProperties": False,
    },
)

RelevanceContext = Literal["embedding_storage", "question_generation", "general"]


# ============================================================================
# HTTP request bodies
# ============================================================================


class OrganizationChatRequest(BaseModel):
    """Body of ``POST /v1/organization-chat``."""

    messages: list[ChatMessage] = Field(default_factory=list)
    locale: str = "es"

    @field_validator("messages")
    @classmethod
    def _check_messages(cls, messages: list[ChatMessage]) -> list[ChatMessage]:
        cleaned = []
        total = 0
        for message in messages:
            content = message.content.strip()
            if not content:
                raise ValueError("Message content cannot be empty")
            if len(content) > MAX_MESSAGE_CHARS:
                raise ValueError(f"Message exceeds {MAX_MESSAGE_CHARS} characters")
            total += len(content)
            cleaned.append(ChatMessage(role=message.role, content=content))

        if total > MAX_TOTAL_CHARS:
            raise ValueError(f"Conversation exceeds {MAX_TOTAL_CHARS} characters")
        if cleaned and not any(m.role == ChatRole.USER for m in cleaned):
            raise ValueError("At least one user message is required")
        return cleaned

    @field_validator("locale")
    @classmethod
    def _check_locale(cls, locale: str) -> str:
        locale = locale.strip().lower()
        if locale not in SUPPORTED_LOCALES:
            raise ValueError(f"Unsupported locale '{locale}'")
        return locale


class WebsiteScrapingRequest(BaseModel):
    url: HttpUrl


class MemoryUpdateRequest(BaseModel):
    text: str = Field(..., min_length=1)
    type: str = "conversation"
    metadata: dict[str, Any] = Field(default_factory=dict)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    reason: Optional[str] = None
    strategy: Literal["auto", "manual"] = "auto"
