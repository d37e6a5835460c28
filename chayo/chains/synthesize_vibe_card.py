"""LLM chain synthesizing a vibe card from onboarding answers."""

from typing import Any

from pydantic import ValidationError

from chayo.core.config import get_settings
from chayo.core.exceptions import AICallError
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import (
    VIBE_CARD_SCHEMA,
    VIBE_MAX_AUDIENCES,
    VIBE_MAX_BADGES,
    VIBE_MAX_TRAITS,
    VibeSynthesis,
)

logger = get_logger(__name__)

# ruff: noqa: E501
SYSTEM_PROMPT = f"""You are an expert brand strategist creating compelling vibe cards for local businesses.

Based on the provided business information, create a COMPLETE vibe card by:

1. **Enhanced Business Identity**: Polish the business name and type for maximum appeal
2. **Perfect Color Palette**: Choose three hex colors that reflect the business type
3. **Enhanced Storytelling**: Polish the origin story into something magnetic and authentic
4. **Value Badges**: Key values customers care about (at most {VIBE_MAX_BADGES})
5. **Personality**: Brand personality traits (at most {VIBE_MAX_TRAITS})
6. **Customer Connection**: Ideal customer types (at most {VIBE_MAX_AUDIENCES})
7. **Aesthetic Vibe**: The aesthetic that matches the business personality
8. **Why Different** and a short testimonial-style **Customer Love** line"""


CORE_FIELDS = {"business_name", "business_type", "origin_story", "value_badges", "perfect_for"}


class VibeSynthesisError(Exception):
    """The AI response could not be turned into a vibe card."""


def build_user_prompt(business_info: dict[str, Any]) -> str:
    lines = [
        "Create a compelling vibe card for this business:",
        "",
        f"Business Name: {business_info.get('business_name') or 'Business'}",
        f"Business Type: {business_info.get('business_type') or 'Business'}",
    ]
    if business_info.get("origin_story"):
        lines.append(f"Origin Story: {business_info['origin_story']}")
    if business_info.get("value_badges"):
        lines.append(f"Value Badges: {', '.join(business_info['value_badges'])}")
    if business_info.get("perfect_for"):
        lines.append(f"Perfect For: {', '.join(business_info['perfect_for'])}")

    extra = {k: v for k, v in business_info.items() if k not in CORE_FIELDS and v}
    if extra:
        lines.append("")
        lines.append("Other details:")
        lines.extend(f"- {k}: {v}" for k, v in extra.items())

    return "\n".join(lines)


async def synthesize_vibe_card(
    client: CompletionClient,
    business_info: dict[str, Any],
) -> VibeSynthesis:
    """
    Make one structured call and return a capped ``VibeSynthesis``.

    Raises:
        VibeSynthesisError: If the call fails or the payload is malformed
    """
    settings = get_settings()
    try:
        raw = await client.structured(
            system_prompt=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_user_prompt(business_info)}],
            response_format=VIBE_CARD_SCHEMA,
            model=settings.VIBE_MODEL,
            temperature=settings.VIBE_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS,
        )
        synthesis = VibeSynthesis.model_validate(raw)
    except (AICallError, ValidationError) as e:
        raise VibeSynthesisError(str(e)) from e

    synthesis.value_badges = synthesis.value_badges[:VIBE_MAX_BADGES]
    synthesis.personality_traits = synthesis.personality_traits[:VIBE_MAX_TRAITS]
    synthesis.perfect_for = synthesis.perfect_for[:VIBE_MAX_AUDIENCES]
    return synthesis
