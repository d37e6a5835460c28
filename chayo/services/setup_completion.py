"""Per-organization onboarding completion tracking.

Status only moves forward (``in_progress`` → ``completed``). The only way
back is ``reset_onboarding``, an administrative operation.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from chayo.core.logging import get_logger, log_with_context
from chayo.core.schemas_organizations import (
    OnboardingProgress,
    Organization,
    SetupCompletion,
)
from chayo.core.tasks import spawn_best_effort
from chayo.db import business_info_fields as fields_db
from chayo.db import organizations as organizations_db
from chayo.db import setup_completion as setup_db
from chayo.services.business_info import BusinessInfoService
from chayo.services.collaborators import AgentLinkCreator
from chayo.services.vibe_cards import VibeCardService

logger = get_logger(__name__)

SETUP_COMPLETE_SIGNAL = "setup_complete"
COMPLETION_SIGNALS = {"setup_complete", "onboarding_complete", "onboarding_completed", "completed"}


def normalize_status_signal(signal: str | None) -> str | None:
    """Collapse every completion-equivalent status into ``setup_complete``."""
    if not signal:
        return None
    if signal.strip().lower() in COMPLETION_SIGNALS:
        return SETUP_COMPLETE_SIGNAL
    return None


class SetupCompletionService:
    def __init__(
        self,
        vibe_cards: VibeCardService,
        agent_links: AgentLinkCreator | None = None,
        business_info: BusinessInfoService | None = None,
    ):
        self.vibe_cards = vibe_cards
        self.agent_links = agent_links
        self.business_info = business_info or BusinessInfoService()

    async def get_or_create(self, organization_id: str) -> SetupCompletion:
        row = setup_db.get_setup_completion(organization_id)
        if row is None:
            row = setup_db.create_setup_completion(organization_id)
            logger.info("Setup completion row created", extra={"organization_id": organization_id})
        return SetupCompletion.model_validate(row)

    async def is_completed(self, organization_id: str) -> bool:
        return (await self.get_or_create(organization_id)).is_completed

    async def get_onboarding_progress(self, organization_id: str) -> OnboardingProgress:
        completion = await self.get_or_create(organization_id)
        pending = await self.business_info.get_pending_questions(organization_id)
        return OnboardingProgress(
            is_completed=completion.is_completed,
            pending_questions=pending,
        )

    async def mark_completed(
        self,
        organization_id: str,
        completion_data: dict[str, Any] | None = None,
    ) -> SetupCompletion:
        """
        Complete onboarding, generating the vibe card on the way.

        Idempotent: an already completed organization is returned unchanged.
        A failed vibe card never blocks completion; it is flagged in
        ``completion_data`` instead.
        """
        current = await self.get_or_create(organization_id)
        if current.is_completed:
            logger.debug("Setup already completed", extra={"organization_id": organization_id})
            return current

        data = {**current.completion_data, **(completion_data or {})}
        try:
            await self.vibe_cards.complete_onboarding_with_vibe_card(organization_id)
            data["vibe_card_generated_at"] = datetime.now(timezone.utc).isoformat()
        except Exception as e:
            logger.warning(
                f"Vibe card generation failed, completing without it: {e}",
                extra={"organization_id": organization_id},
            )
            data["vibe_card_generation_failed"] = True
            data["vibe_card_error"] = str(e)

        answered = fields_db.count_answered_questions(organization_id)
        setup_db.update_setup_completion(organization_id, {"answered_questions": answered})
        setup_db.mark_setup_completed(organization_id, data)
        log_with_context(
            logger,
            logging.INFO,
            "Onboarding completed",
            organization_id=organization_id,
            answered_questions=answered,
            vibe_card=not data.get("vibe_card_generation_failed", False),
        )

        self._schedule_agent_link(organization_id)
        return await self.get_or_create(organization_id)

    def _schedule_agent_link(self, organization_id: str) -> None:
        if self.agent_links is None:
            return
        spawn_best_effort(
            self._link_agent(organization_id), label=f"agent-link:{organization_id}"
        )

    async def _link_agent(self, organization_id: str) -> None:
        row = organizations_db.get_organization(organization_id)
        if not row:
            logger.warning(f"Organization {organization_id} not found, skipping agent link")
            return
        await self.agent_links.maybe_create_agent_chat_link_if_threshold_met(
            Organization.model_validate(row)
        )

    async def update_onboarding_progress(
        self, organization_id: str, status_signal: str | None
    ) -> bool:
        """Mark completed when ``status_signal`` means so; return the final state."""
        if normalize_status_signal(status_signal) != SETUP_COMPLETE_SIGNAL:
            return await self.is_completed(organization_id)
        completion = await self.mark_completed(organization_id, {"source": "ai_signal"})
        return completion.is_completed

    async def reset_onboarding(self, organization_id: str) -> None:
        """Administrative reset: every answer is cleared and status reverts."""
        cleared = fields_db.reset_answers(organization_id)
        await self.get_or_create(organization_id)
        setup_db.update_setup_completion(
            organization_id,
            {
                "setup_status": "in_progress",
                "completed_at": None,
                "answered_questions": 0,
                "completion_data": {},
            },
        )
        logger.info(
            f"Onboarding reset ({cleared} questions cleared)",
            extra={"organization_id": organization_id},
        )
