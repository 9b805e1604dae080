"""AI provider configuration loaded from the environment."""

import hashlib
import json
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from epub_digest.errors import AIConfigError

ENV_PREFIX = "EPUB_DIGEST_AI_"

SUPPORTED_PROVIDERS = ("openai", "claude", "zhipu", "qianwen", "custom", "gemini-cli")

# Providers that authenticate without an API key
KEYLESS_PROVIDERS = ("gemini-cli",)

PROVIDER_DEFAULTS: dict[str, dict[str, str | None]] = {
    "openai": {"model": "gpt-4o-mini", "base_url": None},
    "claude": {"model": "claude-3-5-sonnet-20241022", "base_url": None},
    "zhipu": {"model": "glm-4-flash", "base_url": "https://open.bigmodel.cn/api/paas/v4/"},
    "qianwen": {
        "model": "qwen-plus",
        "base_url": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    },
    "custom": {"model": "gpt-3.5-turbo", "base_url": None},
    "gemini-cli": {"model": "gemini-2.5-pro", "base_url": None},
}


class AISettings(BaseModel):
    """Active language-model configuration."""

    enabled: bool = False
    provider: str = "openai"
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    temperature: float = 0.7
    max_tokens: int = 2000

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "AISettings":
        """Read ``EPUB_DIGEST_AI_*`` variables, loading a .env file first."""
        load_dotenv(env_file)

        def get(name: str) -> str | None:
            value = os.getenv(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        data: dict = {
            "enabled": (get("ENABLED") or "false").lower() in ("1", "true", "yes", "on"),
            "provider": (get("PROVIDER") or "openai").lower(),
            "api_key": get("API_KEY"),
            "model": get("MODEL"),
            "base_url": get("BASE_URL"),
        }
        if get("TEMPERATURE"):
            data["temperature"] = get("TEMPERATURE")
        if get("MAX_TOKENS"):
            data["max_tokens"] = get("MAX_TOKENS")

        try:
            return cls(**data)
        except ValidationError as e:
            fields = ", ".join(ENV_PREFIX + str(err["loc"][0]).upper() for err in e.errors())
            raise AIConfigError(f"Invalid value for {fields}") from e

    @property
    def effective_model(self) -> str:
        """Configured model, or the provider default."""
        if self.model:
            return self.model
        defaults = PROVIDER_DEFAULTS.get(self.provider, {})
        return defaults.get("model") or "unknown"

    @property
    def effective_base_url(self) -> str | None:
        if self.base_url:
            return self.base_url
        return PROVIDER_DEFAULTS.get(self.provider, {}).get("base_url")

    def config_hash(self) -> str:
        """Fingerprint of the settings that select a provider instance."""
        payload = json.dumps(
            {
                "enabled": self.enabled,
                "provider": self.provider,
                "api_key": self.api_key,
                "model": self.effective_model,
                "base_url": self.base_url,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            },
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
