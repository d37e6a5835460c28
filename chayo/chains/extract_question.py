"""Pull the bare question out of a conversational assistant message."""

from chayo.core.config import get_settings
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "Extract only the core question from the message. Remove greetings, "
    "acknowledgements and explanations. Return the question text only, "
    "in the same language as the message."
)


async def extract_question(client: CompletionClient, full_message: str) -> str:
    """Return the core question, or ``full_message`` if extraction fails."""
    if not full_message.strip():
        return full_message

    try:
        extracted = await client.complete(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": full_message},
            ],
            model=get_settings().EXTRACTION_MODEL,
            temperature=0,
            max_tokens=150,
        )
    except Exception as e:
        logger.warning(f"Question extraction failed, keeping full message: {e}")
        return full_message

    extracted = extracted.strip().strip('"').strip()
    return extracted or full_message
