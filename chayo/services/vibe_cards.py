"""Vibe card generation and editing."""

import json
from typing import Any

from chayo.chains.synthesize_vibe_card import VibeSynthesisError, synthesize_vibe_card
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_organizations import ContactInfo, VibeCard
from chayo.db import business_info_fields as fields_db
from chayo.db import vibe_cards as vibe_cards_db

logger = get_logger(__name__)

# Fields the owner may edit after generation
EDITABLE_FIELDS = {
    "business_name",
    "business_type",
    "origin_story",
    "value_badges",
    "personality_traits",
    "vibe_colors",
    "vibe_aesthetic",
    "why_different",
    "perfect_for",
    "customer_love",
    "location",
    "website",
    "contact_info",
}


def _decode_value(value: str) -> Any:
    # Only structured answers (lists, objects) are stored JSON-encoded
    if not value.lstrip().startswith(("[", "{")):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(value)]


def _as_text(value: Any) -> str | None:
    if not value:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def collect_fields(rows: list[dict]) -> dict[str, Any]:
    """Flatten answered ledger rows into ``{field_name: value}``."""
    fields: dict[str, Any] = {}
    for row in rows:
        if row.get("field_value"):
            fields[row["field_name"]] = _decode_value(row["field_value"])
    return fields


class VibeCardService:
    def __init__(self, completion_client: CompletionClient):
        self.completion_client = completion_client

    async def generate_from_business_info(self, organization_id: str) -> VibeCard | None:
        """Synthesize a card from answered questions; None when nothing is answered."""
        fields = collect_fields(fields_db.list_answered_questions(organization_id))
        if not fields:
            logger.info(
                "No answered business fields, skipping vibe card",
                extra={"organization_id": organization_id},
            )
            return None

        business_info = {
            **{k: v for k, v in fields.items() if isinstance(v, (str, int, float))},
            "business_name": _as_text(fields.get("business_name")) or "Business",
            "business_type": _as_text(fields.get("business_type")) or "Business",
            "origin_story": _as_text(fields.get("origin_story")) or "",
            "value_badges": _as_list(fields.get("value_badges")),
            "perfect_for": _as_list(fields.get("perfect_for")),
        }

        synthesis = await synthesize_vibe_card(self.completion_client, business_info)

        return VibeCard(
            organization_id=organization_id,
            business_name=business_info["business_name"],
            business_type=business_info["business_type"],
            origin_story=synthesis.enhanced_origin_story or business_info["origin_story"],
            value_badges=synthesis.value_badges or business_info["value_badges"],
            personality_traits=synthesis.personality_traits,
            vibe_colors=synthesis.vibe_colors,
            vibe_aesthetic=synthesis.vibe_aesthetic,
            why_different=synthesis.why_different,
            perfect_for=synthesis.perfect_for or business_info["perfect_for"],
            customer_love=synthesis.customer_love,
            location=_as_text(fields.get("location")),
            website=_as_text(fields.get("website")),
            contact_info=ContactInfo(
                phone=_as_text(fields.get("phone") or fields.get("contact_phone")),
                email=_as_text(fields.get("email") or fields.get("contact_email")),
            ),
        )

    async def complete_onboarding_with_vibe_card(self, organization_id: str) -> VibeCard:
        """
        Generate and upsert the organization's card.

        Raises:
            VibeSynthesisError: If there is nothing to synthesize or the AI call fails
        """
        card = await self.generate_from_business_info(organization_id)
        if card is None:
            raise VibeSynthesisError("No answered business information")

        vibe_cards_db.upsert_vibe_card(organization_id, card.to_row())
        logger.info("Vibe card stored", extra={"organization_id": organization_id})
        return card

    async def get_vibe_card(self, organization_id: str) -> VibeCard | None:
        row = vibe_cards_db.get_vibe_card(organization_id)
        return VibeCard.from_row(row) if row else None

    async def regenerate_vibe_card(self, organization_id: str) -> VibeCard | None:
        try:
            return await self.complete_onboarding_with_vibe_card(organization_id)
        except VibeSynthesisError as e:
            logger.warning(f"Vibe card regeneration failed for {organization_id}: {e}")
            return None

    async def update_vibe_card(
        self, organization_id: str, updates: dict[str, Any]
    ) -> VibeCard | None:
        """Apply a partial edit; unknown keys are ignored."""
        current = await self.get_vibe_card(organization_id)
        if current is None:
            return None

        edits = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
        if not edits:
            return current

        merged = VibeCard.model_validate({**current.model_dump(), **edits})
        vibe_cards_db.update_vibe_card(organization_id, merged.to_row())
        return merged
