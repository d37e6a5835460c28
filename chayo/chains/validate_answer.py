"""LLM chain deciding whether a message answered a pending question."""

from pydantic import ValidationError

from chayo.core.config import get_settings
from chayo.core.exceptions import AICallError
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import VALIDATION_SCHEMA, AnswerValidation

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a precise validation assistant. Analyze conversations to determine "
    "if specific questions were answered. Always follow the exact JSON schema requirements."
)

# ruff: noqa: E501
VALIDATION_PROMPT = """You are a precise validator. Analyze if the user's conversation answered the specific question.

Question:
\"\"\"
{question}
\"\"\"

Conversation (may include both assistant and user messages):
\"\"\"
{conversation}
\"\"\"

Instructions:
- Set answered to true ONLY if the conversation contains a clear, direct answer to the question
- If answered is true, extract the answer concisely and set confidence between 0.0-1.0
- If answered is false, set both answer and confidence to null"""

# Used when the model answers without scoring itself
DEFAULT_CONFIDENCE = 0.5


async def validate_answer(
    client: CompletionClient,
    conversation_text: str,
    question_text: str,
) -> AnswerValidation:
    """
    Decide whether ``conversation_text`` answers ``question_text``.

    Never raises: any failure is reported as not answered, so the question is
    simply asked again.
    """
    if not conversation_text or not conversation_text.strip():
        return AnswerValidation(answered=False)

    settings = get_settings()
    try:
        raw = await client.structured(
            system_prompt=SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": VALIDATION_PROMPT.format(
                        question=question_text, conversation=conversation_text
                    ),
                }
            ],
            response_format=VALIDATION_SCHEMA,
            model=settings.VALIDATION_MODEL,
            temperature=settings.VALIDATION_TEMPERATURE,
            max_tokens=settings.VALIDATION_MAX_TOKENS,
        )
        result = AnswerValidation.model_validate(raw)
    except (AICallError, ValidationError) as e:
        logger.warning(f"Answer validation failed, treating as unanswered: {e}")
        return AnswerValidation(answered=False)
    except Exception as e:
        logger.error(f"Unexpected answer validation error: {e}", exc_info=True)
        return AnswerValidation(answered=False)

    if not result.answered:
        return AnswerValidation(answered=False)

    answer = result.answer.strip() if result.answer else None
    confidence = result.confidence if result.confidence is not None else DEFAULT_CONFIDENCE
    logger.debug(f"Question answered with confidence {confidence}")
    return AnswerValidation(answered=bool(answer), answer=answer, confidence=confidence)
