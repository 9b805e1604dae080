"""Language-model providers behind a single ``invoke(prompt) -> str`` call."""

import logging
import subprocess
from typing import Protocol

from epub_digest.config import KEYLESS_PROVIDERS, SUPPORTED_PROVIDERS, AISettings
from epub_digest.errors import AIConfigError, ProviderError

log = logging.getLogger(__name__)


class LLMProvider(Protocol):
    """Anything that turns a prompt into text."""

    name: str
    model: str

    def invoke(self, prompt: str) -> str: ...


class OpenAICompatibleProvider:
    """OpenAI chat completions, also used for OpenAI-compatible endpoints."""

    def __init__(self, settings: AISettings, name: str = "openai"):
        from openai import OpenAI

        self.name = name
        self.model = settings.effective_model
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens
        self.client = OpenAI(api_key=settings.api_key, base_url=settings.effective_base_url)

    def invoke(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""


class AnthropicProvider:
    """Claude models through the Anthropic messages API."""

    def __init__(self, settings: AISettings):
        import anthropic

        self.name = "claude"
        self.model = settings.effective_model
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens
        kwargs = {"api_key": settings.api_key}
        if settings.base_url:
            kwargs["base_url"] = settings.base_url
        self.client = anthropic.Anthropic(**kwargs)

    def invoke(self, prompt: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )


class GeminiCliProvider:
    """Gemini through the local ``gemini`` command line tool."""

    TIMEOUT_SECONDS = 300  # 5 minutes

    def __init__(self, settings: AISettings):
        self.name = "gemini-cli"
        self.model = settings.effective_model

    def invoke(self, prompt: str) -> str:
        cmd = ["gemini", "-m", self.model, prompt]

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.TIMEOUT_SECONDS,
            )
        except subprocess.TimeoutExpired:
            raise ProviderError(
                "TIMEOUT", f"Request timed out after {self.TIMEOUT_SECONDS}s"
            )
        except FileNotFoundError:
            raise ProviderError("CLI_MISSING", "gemini executable not found on PATH")

        if result.returncode != 0:
            error_msg = result.stderr or result.stdout or "Unknown error"
            raise ProviderError("CLI_ERROR", error_msg.strip(), result.returncode)

        return result.stdout.strip()


def validate_settings(settings: AISettings) -> None:
    """Raise ``AIConfigError`` unless the settings can build a provider."""
    if not settings.enabled:
        raise AIConfigError("AI features are disabled")

    if settings.provider not in SUPPORTED_PROVIDERS:
        supported = ", ".join(SUPPORTED_PROVIDERS)
        raise AIConfigError(
            f"Unsupported AI provider: {settings.provider}. Supported providers: {supported}"
        )

    if settings.provider not in KEYLESS_PROVIDERS and not settings.api_key:
        raise AIConfigError("API key is not configured")

    if settings.provider == "custom" and not settings.base_url:
        raise AIConfigError("Custom provider requires a base URL")


def create_provider(settings: AISettings) -> LLMProvider:
    """Create the provider selected by the settings."""
    validate_settings(settings)
    log.debug(
        "Creating %s provider (model=%s, base_url=%s)",
        settings.provider,
        settings.effective_model,
        settings.effective_base_url,
    )

    if settings.provider == "claude":
        return AnthropicProvider(settings)
    if settings.provider == "gemini-cli":
        return GeminiCliProvider(settings)
    return OpenAICompatibleProvider(settings, name=settings.provider)
