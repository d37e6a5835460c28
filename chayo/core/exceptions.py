"""Exception taxonomy for the chat engine.

Only ``AuthenticationError`` and ``OrganizationResolutionError`` are allowed to
leave ``OrganizationChatService.process_chat``. Everything else is turned into
a conversational reply or a log line at the call site.
"""


class ChayoError(Exception):
    """Base class for chat engine errors."""


class AuthenticationError(ChayoError):
    """The caller could not be identified."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class OrganizationResolutionError(ChayoError):
    """The caller's organization could not be fetched or created."""


class PromptConfigError(ChayoError):
    """A declarative prompt configuration is missing or malformed."""


# User-facing apologies per AI failure category
AI_ERROR_MESSAGES: dict[str, str] = {
    "quota": (
        "I apologize, but I'm currently experiencing high demand and cannot process "
        "your request right now. Please try again in a few minutes, or contact support "
        "if this issue persists."
    ),
    "auth": (
        "I apologize, but there's a configuration issue with my AI service. "
        "Please contact support for assistance."
    ),
    "bad_request": (
        "I apologize, but there was an issue with your request. "
        "Please try rephrasing your message."
    ),
    "other": (
        "I apologize, but I'm experiencing technical difficulties right now. "
        "Please try again in a moment."
    ),
}


class AICallError(ChayoError):
    """An AI completion failed; carries the apology to show the user."""

    def __init__(self, category: str, detail: str | None = None):
        if category not in AI_ERROR_MESSAGES:
            category = "other"
        self.category = category
        self.user_message = AI_ERROR_MESSAGES[category]
        self.detail = detail
        super().__init__(detail or self.user_message)
