"""LLM chain extracting business facts from scraped website markdown."""

from pydantic import ValidationError

from chayo.core.config import get_settings
from chayo.core.exceptions import AICallError
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import BUSINESS_INFO_EXTRACTION_SCHEMA, BusinessInfoExtraction

logger = get_logger(__name__)

# Keep the prompt well under the model's context window
MAX_CONTENT_CHARS = 12000

SYSTEM_PROMPT = """You extract business information from website content.

Fill every field you can find. Use empty strings for anything missing.
Set has_enough_info to true only when at least the business name and what the
business does are clear. extracted_content is a concise plain-text summary of
everything a customer service assistant should know about the business."""


async def extract_website_info(
    client: CompletionClient,
    url: str,
    markdown: str,
) -> BusinessInfoExtraction | None:
    """Return extracted info, or None when the call or payload fails."""
    if not markdown.strip():
        return None

    try:
        raw = await client.structured(
            system_prompt=SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": f"Website: {url}\n\n{markdown[:MAX_CONTENT_CHARS]}",
                }
            ],
            response_format=BUSINESS_INFO_EXTRACTION_SCHEMA,
            model=get_settings().EXTRACTION_MODEL,
            temperature=0.2,
            max_tokens=1500,
        )
        return BusinessInfoExtraction.model_validate(raw)
    except (AICallError, ValidationError) as e:
        logger.warning(f"Website info extraction failed for {url}: {e}")
        return None
