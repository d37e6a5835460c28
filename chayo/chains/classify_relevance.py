"""Binary gate deciding whether an exchange carries business information."""

from chayo.core.config import get_settings
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import RelevanceContext

logger = get_logger(__name__)

_CONTEXT_INSTRUCTIONS: dict[str, str] = {
    "embedding_storage": (
        "Decide whether this exchange should be stored in the business's long-term "
        "memory. Store it only if the user shared facts about the business: products, "
        "services, prices, customers, schedule, location, policies, history or goals."
    ),
    "question_generation": (
        "Decide whether this exchange contains business information that should shape "
        "the next onboarding question."
    ),
    "general": "Decide whether this exchange contains information about the business.",
}

SYSTEM_PROMPT = """You classify conversation exchanges for a business assistant.

{instructions}

Small talk, greetings, thanks, complaints about the assistant, errors and
questions about how the assistant works are NOT relevant.

Reply with exactly one word: RELEVANT or IRRELEVANT."""


async def is_business_relevant(
    client: CompletionClient,
    user_message: str,
    assistant_message: str = "",
    context: RelevanceContext = "general",
) -> bool:
    """
    Classify an assistant→user exchange.

    Returns True on failure or unparseable output so user-provided
    information is never dropped silently.
    """
    if not user_message or not user_message.strip():
        return False

    settings = get_settings()
    instructions = _CONTEXT_INSTRUCTIONS.get(context, _CONTEXT_INSTRUCTIONS["general"])
    exchange = f"Assistant: {assistant_message}\nUser: {user_message}"

    try:
        verdict = await client.complete(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT.format(instructions=instructions)},
                {"role": "user", "content": exchange},
            ],
            model=settings.CLASSIFIER_MODEL,
            temperature=0,
            max_tokens=5,
        )
    except Exception as e:
        logger.warning(f"Relevance classification failed ({context}), defaulting to relevant: {e}")
        return True

    normalized = verdict.strip().upper()
    if normalized.startswith("IRRELEVANT") or normalized.startswith("NOT"):
        return False
    if normalized.startswith("RELEVANT"):
        return True

    logger.warning(f"Unparseable relevance verdict '{verdict}', defaulting to relevant")
    return True
