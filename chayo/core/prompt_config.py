"""Declarative prompt configuration for the two chat modes.

Each mode ("onboarding", "business") has a YAML file under ``PROMPTS_DIR``.
``PromptConfigLoader`` turns one of them into the final system prompt.
"""

from enum import Enum
from pathlib import Path
from typing import Protocol

import yaml
from pydantic import BaseModel, Field, ValidationError

from chayo.core.config import get_settings
from chayo.core.exceptions import PromptConfigError
from chayo.core.logging import get_logger

logger = get_logger(__name__)


class ChatMode(str, Enum):
    ONBOARDING = "onboarding"
    BUSINESS = "business"


class PromptConfig(BaseModel):
    """Typed view of a mode's YAML file."""

    identity: str
    objective: str
    behavior: str
    rules: str
    dynamics: str = ""
    refinement_mode: str = ""
    completion: str = ""
    completion_signal: str = ""
    language: dict[str, str] = Field(default_factory=dict)


class PromptConfigSource(Protocol):
    def load(self, mode: ChatMode) -> PromptConfig: ...


class YamlPromptConfigSource:
    """Reads ``<mode>.yaml`` from a directory, cached per mode."""

    def __init__(self, prompts_dir: Path | str | None = None):
        self.prompts_dir = Path(prompts_dir or get_settings().PROMPTS_DIR)
        self._cache: dict[ChatMode, PromptConfig] = {}

    def load(self, mode: ChatMode) -> PromptConfig:
        if mode in self._cache:
            return self._cache[mode]

        path = self.prompts_dir / f"{mode.value}.yaml"
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except OSError as e:
            raise PromptConfigError(f"Prompt config not found: {path}") from e
        except yaml.YAMLError as e:
            raise PromptConfigError(f"Malformed prompt config {path}: {e}") from e

        if not isinstance(raw, dict):
            raise PromptConfigError(f"Prompt config {path} must be a mapping")

        try:
            config = PromptConfig.model_validate(raw)
        except ValidationError as e:
            raise PromptConfigError(f"Invalid prompt config {path}: {e}") from e

        logger.info(f"Loaded {mode.value} prompt config from {path}")
        self._cache[mode] = config
        return config

    def reload(self) -> None:
        self._cache.clear()


class StaticPromptConfigSource:
    """Fixed configs, keyed by mode."""

    def __init__(self, configs: dict[ChatMode, PromptConfig]):
        self.configs = configs

    def load(self, mode: ChatMode) -> PromptConfig:
        try:
            return self.configs[mode]
        except KeyError:
            raise PromptConfigError(f"No prompt config for mode {mode.value}") from None


LOCALE_INSTRUCTIONS: dict[str, str] = {
    "en": (
        "Respond in English. Keep a warm, professional tone and use clear, "
        "simple language a busy business owner can answer quickly."
    ),
    "es": (
        "Responde siempre en español. Mantén un tono cálido y profesional y usa "
        "un lenguaje claro y sencillo que un dueño de negocio ocupado pueda "
        "contestar rápidamente."
    ),
}


FALLBACK_LOCALE = "es"


def resolve_locale(locale: str | None) -> str:
    """Return a supported locale, falling back to the configured default."""
    if locale and locale.lower() in LOCALE_INSTRUCTIONS:
        return locale.lower()
    default = get_settings().DEFAULT_LOCALE.lower()
    if default not in LOCALE_INSTRUCTIONS:
        logger.warning(f"Unsupported DEFAULT_LOCALE '{default}', using '{FALLBACK_LOCALE}'")
        return FALLBACK_LOCALE
    return default


def build_system_prompt(
    config: PromptConfig,
    locale: str | None,
    training_context: str = "",
    is_setup_completed: bool = False,
) -> str:
    """Concatenate the config sections into a system prompt."""
    locale = resolve_locale(locale)
    language_section = (
        config.language.get(locale) or config.language.get("en") or LOCALE_INSTRUCTIONS[locale]
    )

    sections = [config.identity, config.objective]
    if not is_setup_completed and config.completion:
        sections.append(f"## ONBOARDING COMPLETION CRITERIA\n{config.completion}")
        if config.completion_signal:
            sections.append(config.completion_signal)
    sections.extend(
        [
            config.behavior,
            config.refinement_mode,
            config.rules,
            config.dynamics,
            f"## LANGUAGE INSTRUCTIONS\n{LOCALE_INSTRUCTIONS[locale]}",
            f"## ADDITIONAL CONTEXT INSTRUCTIONS\n{language_section}",
        ]
    )
    if training_context:
        sections.append(f"## BUSINESS KNOWLEDGE\n{training_context}")
    sections.append(
        "## RESPONSE FORMAT\n"
        "Response structure is enforced by the structured output schema. "
        "Focus on providing helpful, accurate content."
    )

    return "\n\n".join(s.strip() for s in sections if s and s.strip())


class PromptConfigLoader:
    """Builds system prompts from a ``PromptConfigSource``."""

    def __init__(self, source: PromptConfigSource | None = None):
        self.source = source or YamlPromptConfigSource()

    def build(self, mode: ChatMode, locale: str | None, training_context: str = "") -> str:
        config = self.source.load(mode)
        return build_system_prompt(
            config,
            locale,
            training_context=training_context,
            is_setup_completed=mode == ChatMode.BUSINESS,
        )
