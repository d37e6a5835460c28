"""Chat orchestration for an organization.

A turn runs a two-state machine (``ChatMode.ONBOARDING`` and
``ChatMode.BUSINESS``). The onboarding handler may delegate to the business
handler once; the business handler always handles the turn itself.
"""

import inspect
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from chayo.chains.extract_question import extract_question
from chayo.chains.validate_answer import validate_answer
from chayo.core.config import Settings, get_settings
from chayo.core.exceptions import (
    AI_ERROR_MESSAGES,
    AICallError,
    OrganizationResolutionError,
    PromptConfigError,
)
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.prompt_config import ChatMode, PromptConfigLoader
from chayo.core.schemas_chat import (
    BUSINESS_SCHEMA,
    ONBOARDING_SCHEMA,
    BusinessTurn,
    ChatMessage,
    ChatResponse,
    ChatRole,
    OnboardingTurn,
)
from chayo.core.schemas_organizations import (
    AuthUser,
    FieldType,
    Organization,
    QuestionRecord,
    QuestionSpec,
    WebsiteScrapingState,
)
from chayo.core.tasks import run_best_effort
from chayo.db import organizations as organizations_db
from chayo.services.business_info import BusinessInfoService
from chayo.services.collaborators import (
    AgentLinkCreator,
    AuthProvider,
    WebsiteScraper,
    slugify,
)
from chayo.services.knowledge_store import BusinessKnowledgeStore
from chayo.services.setup_completion import (
    SETUP_COMPLETE_SIGNAL,
    SetupCompletionService,
    normalize_status_signal,
)
from chayo.services.vibe_cards import VibeCardService

logger = get_logger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], Any]

WEBSITE_SCRAPING_OFFERED = "website_scraping_offered"

WELCOME_SCRAPING_OFFER = (
    "¡Bienvenido! Soy Chayo, tu asistente de IA para negocios. 🎉\n\n"
    "Para empezar rápidamente, puedo extraer información del sitio web de tu negocio "
    "para personalizar tu experiencia y acelerar el proceso de configuración.\n\n"
    "¿Tienes un sitio web de tu negocio que me gustaría analizar? Si lo tienes, te "
    "proporcionaré una forma sencilla de compartirlo conmigo. Si no, no te preocupes - "
    "te guiaré a través de nuestras preguntas de configuración estándar."
)

KNOWLEDGE_UNAVAILABLE = (
    "Lo siento, pero no pude recuperar el conocimiento de tu negocio en este momento. "
    "Por favor intenta más tarde o contacta a soporte si el problema persiste."
)

ANSWERED_CONTEXT_TEMPLATE = (
    "CONTEXT: The following onboarding questions have already been answered:\n\n"
    "{answered}\n\n"
    "Based on this context, generate the next appropriate onboarding question. "
    "DO NOT repeat any of the above questions."
)


@dataclass
class ChatContext:
    organization: Organization
    locale: str
    progress_callback: ProgressCallback | None = None


@dataclass
class AITurn:
    """One generated reply, before it is turned into a ``ChatResponse``."""

    ai_message: str
    multiple_choices: list[str] | None = None
    allow_multiple: bool = False
    status_signal: str | None = None


@dataclass
class TurnOutcome:
    """Result of a mode handler: a response, or a hand-off to another mode."""

    response: ChatResponse | None = None
    delegate_to: ChatMode | None = None

    @classmethod
    def handled(cls, response: ChatResponse) -> "TurnOutcome":
        return cls(response=response)

    @classmethod
    def delegate(cls, mode: ChatMode) -> "TurnOutcome":
        return cls(delegate_to=mode)


class WebsiteScrapingOutcome(BaseModel):
    success: bool
    has_enough_info: bool = False
    business_info: dict[str, Any] | None = None
    raw_content: str | None = None
    error: str | None = None


class OrganizationChatService:
    """Entry point for a chat turn."""

    def __init__(
        self,
        auth: AuthProvider,
        completion_client: CompletionClient,
        prompt_loader: PromptConfigLoader | None = None,
        knowledge_store: BusinessKnowledgeStore | None = None,
        business_info: BusinessInfoService | None = None,
        setup_tracker: SetupCompletionService | None = None,
        agent_links: AgentLinkCreator | None = None,
        scraper: WebsiteScraper | None = None,
        settings: Settings | None = None,
    ):
        self.auth = auth
        self.completion_client = completion_client
        self.settings = settings or get_settings()
        self.prompt_loader = prompt_loader or PromptConfigLoader()
        self.knowledge_store = knowledge_store or BusinessKnowledgeStore(completion_client)
        self.business_info = business_info or BusinessInfoService()
        self.setup_tracker = setup_tracker or SetupCompletionService(
            VibeCardService(completion_client),
            agent_links=agent_links,
            business_info=self.business_info,
        )
        self.scraper = scraper

    # ------------------------------------------------------------------
    # Turn entry point
    # ------------------------------------------------------------------

    async def process_chat(
        self,
        messages: list[ChatMessage],
        locale: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ChatResponse:
        """
        Run one chat turn.

        Raises:
            AuthenticationError: If the caller cannot be identified
            OrganizationResolutionError: If the organization cannot be resolved
        """
        user = await self.auth.get_current_user()
        organization = await self.get_or_create_organization(user)
        ctx = ChatContext(
            organization=organization,
            locale=locale or self.settings.DEFAULT_LOCALE,
            progress_callback=progress_callback,
        )

        await self._emit(ctx, "initializing")
        completed = await self.setup_tracker.is_completed(organization.id)
        mode = ChatMode.BUSINESS if completed else ChatMode.ONBOARDING
        logger.info(
            f"Chat turn in {mode.value} mode ({len(messages)} messages)",
            extra={"organization_id": organization.id},
        )

        await self._emit(ctx, "checkingExistingQuestion")
        response = await self.run_turn(messages, ctx, mode)

        await run_best_effort(
            self.knowledge_store.store_exchange(organization.id, messages),
            label=f"store-exchange:{organization.id}",
        )
        await self._emit(ctx, "done")

        response.organization = self._refresh_organization(organization)
        return response

    async def run_turn(
        self, messages: list[ChatMessage], ctx: ChatContext, mode: ChatMode
    ) -> ChatResponse:
        """Drive the state machine; at most one ONBOARDING → BUSINESS hand-off."""
        outcome = await self.handle_turn(messages, ctx, mode)
        if outcome.delegate_to is not None:
            transition = {"from": mode.value, "to": outcome.delegate_to.value}
            await self._emit(ctx, "switchingMode", **transition)
            outcome = await self.handle_turn(messages, ctx, outcome.delegate_to)
        if outcome.response is None:
            raise RuntimeError(f"{outcome.delegate_to} handler delegated twice")
        return outcome.response

    async def handle_turn(
        self, messages: list[ChatMessage], ctx: ChatContext, mode: ChatMode
    ) -> TurnOutcome:
        """Transition function of the chat state machine."""
        org = ctx.organization
        setup_completed = mode == ChatMode.BUSINESS

        pending = await self.resolve_pending_question(messages, org)
        if pending is not None:
            return TurnOutcome.handled(
                ChatResponse(
                    ai_message=pending.question_template,
                    multiple_choices=pending.multiple_choices or None,
                    allow_multiple=pending.accepts_multiple,
                    setup_completed=setup_completed,
                )
            )

        if mode == ChatMode.ONBOARDING:
            # A concurrent turn may have completed onboarding meanwhile
            if await self.setup_tracker.is_completed(org.id):
                return TurnOutcome.delegate(ChatMode.BUSINESS)

            if await self._should_offer_website_scraping(org, messages):
                return TurnOutcome.handled(
                    ChatResponse(
                        ai_message=WELCOME_SCRAPING_OFFER,
                        status_signal=WEBSITE_SCRAPING_OFFERED,
                        setup_completed=False,
                    )
                )

        turn = await self.generate_ai_turn(messages, ctx, mode)
        signal = normalize_status_signal(turn.status_signal)

        if mode == ChatMode.ONBOARDING and signal == SETUP_COMPLETE_SIGNAL:
            completed = await self._complete_onboarding(org)
            if completed:
                await self._emit(ctx, "switchingMode", **{"from": "onboarding", "to": "business"})
                business_turn = await self.generate_ai_turn(messages, ctx, ChatMode.BUSINESS)
                return TurnOutcome.handled(
                    ChatResponse(
                        ai_message=business_turn.ai_message,
                        multiple_choices=business_turn.multiple_choices,
                        allow_multiple=business_turn.allow_multiple,
                        status_signal=business_turn.status_signal,
                        setup_completed=True,
                    )
                )

        return TurnOutcome.handled(
            ChatResponse(
                ai_message=turn.ai_message,
                multiple_choices=turn.multiple_choices,
                allow_multiple=turn.allow_multiple,
                status_signal=turn.status_signal,
                setup_completed=setup_completed,
            )
        )

    async def _complete_onboarding(self, org: Organization) -> bool:
        try:
            return await self.setup_tracker.update_onboarding_progress(
                org.id, SETUP_COMPLETE_SIGNAL
            )
        except Exception as e:
            logger.error(
                f"Failed to mark onboarding completed: {e}",
                extra={"organization_id": org.id},
                exc_info=True,
            )
            return False

    # ------------------------------------------------------------------
    # Organization resolution
    # ------------------------------------------------------------------

    async def get_or_create_organization(self, user: AuthUser) -> Organization:
        """Owned organization, then active membership, then a new organization."""
        try:
            owned = organizations_db.get_organization_by_owner(user.id)
            if owned:
                self._ensure_owner_membership(owned["id"], user.id)
                return Organization.model_validate(owned)

            membership = organizations_db.get_active_membership(user.id)
            if membership:
                org = organizations_db.get_organization(membership["organization_id"])
                if org:
                    return Organization.model_validate(org)

            prefix = (user.email or "").split("@")[0] or "user"
            name = f"{prefix}'s Organization"
            slug = f"{slugify(name) or 'organization'}-{uuid.uuid4().hex[:6]}"
            org_id = organizations_db.create_organization_with_owner(name, slug, user.id)

            created = organizations_db.get_organization(org_id)
            if not created:
                raise OrganizationResolutionError(
                    f"Failed to fetch created organization {org_id}"
                )
            return Organization.model_validate(created)
        except OrganizationResolutionError:
            raise
        except Exception as e:
            logger.error(f"Failed to resolve organization for user {user.id}: {e}")
            raise OrganizationResolutionError(f"Failed to create organization: {e}") from e

    def _ensure_owner_membership(self, organization_id: str, user_id: str) -> None:
        try:
            if not organizations_db.get_membership(organization_id, user_id):
                organizations_db.add_owner_membership(organization_id, user_id)
        except Exception as e:
            logger.warning(
                f"Could not add owner membership: {e}",
                extra={"organization_id": organization_id},
            )

    def _refresh_organization(self, organization: Organization) -> Organization:
        try:
            row = organizations_db.get_organization(organization.id)
        except Exception as e:
            logger.warning(f"Could not refresh organization {organization.id}: {e}")
            return organization
        return Organization.model_validate(row) if row else organization

    # ------------------------------------------------------------------
    # Pending question resolver
    # ------------------------------------------------------------------

    async def resolve_pending_question(
        self, messages: list[ChatMessage], organization: Organization
    ) -> QuestionRecord | None:
        """
        Check the oldest unanswered question against the last user message.

        Returns:
            The pending question when it is still unanswered, else None
        """
        try:
            pending = await self.business_info.get_oldest_pending_question(organization.id)
            if pending is None:
                return None

            last_user = next(
                (
                    m.content
                    for m in reversed(messages)
                    if m.role == ChatRole.USER and m.content.strip()
                ),
                None,
            )
            if last_user is None:
                return pending

            verdict = await validate_answer(
                self.completion_client, last_user, pending.question_template
            )
            if verdict.is_usable:
                await self.business_info.update_question_as_answered(
                    organization.id, pending.field_name, verdict.answer, verdict.confidence
                )
                logger.info(
                    f"Pending question '{pending.field_name}' answered",
                    extra={"organization_id": organization.id, "confidence": verdict.confidence},
                )
                return None

            return pending
        except Exception as e:
            logger.error(
                f"Pending question check failed: {e}",
                extra={"organization_id": organization.id},
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------
    # AI turn generation
    # ------------------------------------------------------------------

    async def generate_ai_turn(
        self, messages: list[ChatMessage], ctx: ChatContext, mode: ChatMode
    ) -> AITurn:
        org = ctx.organization
        history = [m.as_openai() for m in messages]

        if not messages and mode == ChatMode.ONBOARDING:
            await self._emit(ctx, "buildingContext")
            answered = await self.business_info.get_answered_questions(org.id)
            if answered:
                previous = "\n\n".join(
                    f"Q: {q.question_template}\nA: {q.field_value}" for q in answered
                )
                context_message = ANSWERED_CONTEXT_TEMPLATE.format(answered=previous)
                history = [{"role": "system", "content": context_message}]

        await self._emit(ctx, "buildingPrompt", mode=mode.value)
        training_context = await self._training_context(org.id)
        try:
            system_prompt = self.prompt_loader.build(mode, ctx.locale, training_context)
        except PromptConfigError as e:
            logger.error(f"Prompt config unavailable, aborting turn: {e}")
            return AITurn(ai_message=KNOWLEDGE_UNAVAILABLE)

        await self._emit(ctx, "callingAI")
        schema = ONBOARDING_SCHEMA if mode == ChatMode.ONBOARDING else BUSINESS_SCHEMA
        try:
            raw = await self.completion_client.structured(
                system_prompt=system_prompt,
                messages=history,
                response_format=schema,
                model=self.settings.CHAT_MODEL,
                temperature=self.settings.CHAT_TEMPERATURE,
                max_tokens=self.settings.CHAT_MAX_TOKENS,
            )
            if mode == ChatMode.ONBOARDING:
                onboarding = OnboardingTurn.model_validate(raw)
                message, status = onboarding.message, onboarding.status
                question_fields = onboarding.model_dump(exclude={"message", "status"})
            else:
                business = BusinessTurn.model_validate(raw)
                message, status = business.message, business.status
                question_fields = business.question.model_dump() if business.question else {}
        except AICallError as e:
            logger.warning(f"AI call failed ({e.category})", extra={"organization_id": org.id})
            return AITurn(ai_message=e.user_message)
        except ValidationError as e:
            logger.error(f"AI response did not match schema: {e}")
            return AITurn(ai_message=AI_ERROR_MESSAGES["other"])

        question = await self._question_from_fields(message, question_fields)
        turn = AITurn(ai_message=message, status_signal=status)
        if question is not None:
            if question.field_type == FieldType.MULTIPLE_CHOICE and question.multiple_choices:
                turn.multiple_choices = question.multiple_choices
                turn.allow_multiple = question.allow_multiple
            await self._store_question(messages, ctx, question)

        return turn

    async def _training_context(self, organization_id: str) -> str:
        try:
            return await self.knowledge_store.get_business_knowledge_summary(organization_id)
        except Exception as e:
            logger.warning(f"Training context unavailable: {e}")
            return ""

    async def _question_from_fields(
        self, message: str, fields: dict[str, Any]
    ) -> QuestionSpec | None:
        field_name = (fields.get("field_name") or "").strip()
        if not field_name or not fields.get("field_type"):
            return None

        template = (fields.get("question_template") or "").strip()
        if not template:
            template = await extract_question(self.completion_client, message)
        if not template:
            return None

        return QuestionSpec(
            field_name=field_name,
            question_template=template,
            field_type=fields["field_type"],
            multiple_choices=fields.get("multiple_choices") or None,
            allow_multiple=bool(fields.get("allow_multiple")),
        )

    async def _store_question(
        self, messages: list[ChatMessage], ctx: ChatContext, question: QuestionSpec
    ) -> None:
        org = ctx.organization
        await self._emit(ctx, "updatingProfile", field=question.field_name)
        try:
            await self.business_info.store_business_question(org.id, question)
        except Exception as e:
            logger.error(
                f"Failed to store question '{question.field_name}': {e}",
                extra={"organization_id": org.id},
            )
            return
        # The conversation may already contain the answer
        await self.resolve_pending_question(messages, org)

    # ------------------------------------------------------------------
    # Website scraping
    # ------------------------------------------------------------------

    async def _should_offer_website_scraping(
        self, organization: Organization, messages: list[ChatMessage]
    ) -> bool:
        if self.scraper is None:
            return False
        try:
            row = organizations_db.get_organization(organization.id)
            if not row or row.get("website_scraping_state") is not None:
                return False

            user_messages = sum(1 for m in messages if m.role == ChatRole.USER)
            if user_messages > 1:
                return False

            organizations_db.set_website_scraping_state(
                organization.id, WebsiteScrapingState.OFFERED.value
            )
            logger.info("Offering website scraping", extra={"organization_id": organization.id})
            return True
        except Exception as e:
            logger.warning(f"Website scraping check failed: {e}")
            return False

    async def handle_website_scraping(
        self,
        url: str,
        organization_id: str,
        progress_callback: ProgressCallback | None = None,
    ) -> WebsiteScrapingOutcome:
        """Scrape ``url`` and store what was learned in the organization's memory."""
        if self.scraper is None:
            return WebsiteScrapingOutcome(success=False, error="Website scraping is not configured")

        await self._call_progress(progress_callback, "scrapingWebsite", {"url": url})
        try:
            result = await self.scraper.scrape_and_extract_business_info(url)
        except Exception as e:
            logger.error(f"Website scraping error for {url}: {e}")
            return WebsiteScrapingOutcome(success=False, error=str(e))

        if not result.success:
            return WebsiteScrapingOutcome(success=False, error=result.error)

        has_enough_info = bool(result.business_info)
        if has_enough_info and result.raw_content:
            await self._call_progress(progress_callback, "storingBusinessInfo", {})
            content = (
                f"Business Information extracted from website ({url}):\n\n{result.raw_content}"
            )
            try:
                await self.knowledge_store.process_business_conversations(
                    organization_id, [content], segment_type="website"
                )
            except Exception as e:
                logger.error(
                    f"Failed to store website business info: {e}",
                    extra={"organization_id": organization_id},
                )
                return WebsiteScrapingOutcome(success=False, error=str(e))
            logger.info("Website business info stored", extra={"organization_id": organization_id})

        return WebsiteScrapingOutcome(
            success=True,
            has_enough_info=has_enough_info,
            business_info=result.business_info,
            raw_content=result.raw_content,
        )

    # ------------------------------------------------------------------
    # Progress side channel
    # ------------------------------------------------------------------

    async def _emit(self, ctx: ChatContext, phase: str, **data: Any) -> None:
        await self._call_progress(ctx.progress_callback, phase, data)

    async def _call_progress(
        self, callback: ProgressCallback | None, phase: str, data: dict[str, Any]
    ) -> None:
        if callback is None:
            return
        try:
            result = callback(phase, data)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Progress callback failed on '{phase}': {e}")
