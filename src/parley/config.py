import logging
import os
from dataclasses import dataclass, field

from parley.errors import ConfigError

logger = logging.getLogger(__name__)

OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openrouter/deepseek/deepseek-chat-v3-0324:free"

MODEL_ALIASES = {
    "deepseek": DEFAULT_MODEL,
    "4o": "openrouter/openai/gpt-4o",
    "4o-mini": "openrouter/openai/gpt-4o-mini",
    "sonnet": "openrouter/anthropic/claude-sonnet-4",
    "flash": "openrouter/google/gemini-2.5-flash",
}

MAX_MESSAGE_LENGTH = 1000

SYSTEM_PROMPT = (
    "You are the AI assistant on this website. "
    "If the user asks about the website or about this AI, "
    "answer that the website uses a model such as GPT-4. "
    "Answer in a friendly way."
)


def resolve_model_alias(name: str) -> str:
    return MODEL_ALIASES.get(name.lower(), name)


def get_optional_env(name: str, default: str) -> str:
    return os.environ.get(name) or default


def _timeout_from_env() -> float | None:
    raw = os.environ.get("PARLEY_TIMEOUT")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"PARLEY_TIMEOUT must be a number, got {raw!r}") from e


@dataclass
class ChatConfig:
    model: str = field(
        default_factory=lambda: resolve_model_alias(get_optional_env("PARLEY_MODEL", DEFAULT_MODEL))
    )
    api_base: str = field(
        default_factory=lambda: get_optional_env("PARLEY_API_BASE", OPENROUTER_API_BASE)
    )
    api_key: str | None = field(default_factory=lambda: os.environ.get("OPENROUTER_API_KEY"))
    data_dir: str = field(
        default_factory=lambda: get_optional_env("PARLEY_DATA_DIR", ".parley")
    )
    timeout: float | None = field(default_factory=_timeout_from_env)
    temperature: float | None = None
    max_tokens: int | None = None
    max_message_length: int = MAX_MESSAGE_LENGTH
    system_prompt: str = SYSTEM_PROMPT

    @classmethod
    def from_env(cls, model: str | None = None, data_dir: str | None = None) -> "ChatConfig":
        config = cls()
        if model:
            config.model = resolve_model_alias(model)
        if data_dir:
            config.data_dir = data_dir
        if not config.api_key:
            logger.warning("OPENROUTER_API_KEY is not set; requests will likely be rejected")
        return config

    def validate(self) -> None:
        if not self.model:
            raise ConfigError("model must not be empty")
        if self.max_message_length < 1:
            raise ConfigError("max_message_length must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0 when set")
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ConfigError("temperature must be between 0 and 2")
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ConfigError("max_tokens must be at least 1 when set")
        if not self.system_prompt.strip():
            raise ConfigError("system_prompt must not be empty")
