"""
LLM Provider Abstraction Layer
Supports Google Gemini, Anthropic Claude and OpenAI GPT models
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from .config import LLMProviderConfig, llm_config
from .errors import ModelUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMCompletion:
    """Raw text reply from a provider plus bookkeeping."""

    content: str
    model: str
    provider: str
    usage: Dict[str, Any] = field(default_factory=dict)


class LLMProvider(ABC):
    """Base class for LLM providers"""

    name = "base"

    def __init__(
        self,
        api_key: str,
        model: str,
        config: LLMProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError(
                f"{self.name} API key not configured. Set {self.name.upper()}_API_KEY environment variable."
            )
        self.api_key = api_key
        self.model = model
        self.config = config
        self.transport = transport

    async def complete(self, prompt: str) -> LLMCompletion:
        """
        Send a single prompt and return the model's text reply

        Raises:
            ModelUnavailableError: Transport failure, HTTP error status or unexpected payload
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self.transport
            ) as client:
                response = await self._post(client, prompt)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("%s API error: %s", self.name, e)
            raise ModelUnavailableError(f"{self.name} API request failed: {e}") from e
        except ValueError as e:
            logger.error("%s API returned a non-JSON body", self.name)
            raise ModelUnavailableError(f"{self.name} API returned an invalid body") from e

        try:
            content = self._extract_text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ModelUnavailableError(f"{self.name} API response had an unexpected shape") from e

        return LLMCompletion(
            content=content,
            model=self.model,
            provider=self.name,
            usage=self._extract_usage(data),
        )

    @abstractmethod
    async def _post(self, client: httpx.AsyncClient, prompt: str) -> httpx.Response:
        raise NotImplementedError

    @abstractmethod
    def _extract_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def _extract_usage(self, data: Dict[str, Any]) -> Dict[str, Any]:
        usage = data.get("usage") if isinstance(data, dict) else None
        return usage if isinstance(usage, dict) else {}


class GeminiProvider(LLMProvider):
    """Google Gemini generateContent API provider"""

    name = "gemini"

    def __init__(
        self,
        model: Optional[str] = None,
        config: LLMProviderConfig = llm_config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config.gemini_api_key, model or config.gemini_model, config, transport)

    async def _post(self, client: httpx.AsyncClient, prompt: str) -> httpx.Response:
        url = f"{self.config.gemini_base_url}/models/{self.model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        return await client.post(
            url,
            params={"key": self.api_key},
            headers={"content-type": "application/json"},
            json=payload,
        )

    def _extract_text(self, data: Dict[str, Any]) -> str:
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)

    def _extract_usage(self, data: Dict[str, Any]) -> Dict[str, Any]:
        usage = data.get("usageMetadata") if isinstance(data, dict) else None
        return usage if isinstance(usage, dict) else {}


class ClaudeProvider(LLMProvider):
    """Anthropic Claude API provider"""

    name = "claude"

    def __init__(
        self,
        model: Optional[str] = None,
        config: LLMProviderConfig = llm_config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config.claude_api_key, model or config.claude_model, config, transport)
        self.max_tokens = config.claude_max_tokens

    async def _post(self, client: httpx.AsyncClient, prompt: str) -> httpx.Response:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        return await client.post(
            "https://api.anthropic.com/v1/messages",
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            json=payload,
        )

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return "".join(
            block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
        )


class ChatGPTProvider(LLMProvider):
    """OpenAI Chat Completions API provider"""

    name = "openai"

    def __init__(
        self,
        model: Optional[str] = None,
        config: LLMProviderConfig = llm_config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config.openai_api_key, model or config.openai_model, config, transport)
        self.max_tokens = config.openai_max_tokens

    async def _post(self, client: httpx.AsyncClient, prompt: str) -> httpx.Response:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        return await client.post(
            "https://api.openai.com/v1/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"] or ""


class LLMProviderFactory:
    """Factory to create appropriate LLM provider"""

    ALIASES = {
        "google": "gemini",
        "anthropic": "claude",
        "chatgpt": "openai",
        "gpt": "openai",
    }

    @staticmethod
    def create(
        provider_name: Optional[str] = None,
        config: LLMProviderConfig = llm_config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> LLMProvider:
        """
        Create LLM provider instance

        Args:
            provider_name: Provider key, alias or model identifier; defaults to LLM_PROVIDER

        Returns:
            Configured LLM provider instance

        Raises:
            ValueError: Unknown provider or missing API key
        """
        raw = provider_name or config.default_provider
        normalized = (raw or "").strip().lower()
        normalized = LLMProviderFactory.ALIASES.get(normalized, normalized)

        if normalized == "gemini":
            return GeminiProvider(config=config, transport=transport)
        if normalized == "claude":
            return ClaudeProvider(config=config, transport=transport)
        if normalized == "openai":
            return ChatGPTProvider(config=config, transport=transport)

        if normalized.startswith("gemini"):
            return GeminiProvider(model=raw, config=config, transport=transport)
        if normalized.startswith("claude"):
            return ClaudeProvider(model=raw, config=config, transport=transport)
        if normalized.startswith("gpt"):
            return ChatGPTProvider(model=raw, config=config, transport=transport)

        raise ValueError(f"Unknown LLM provider: {raw}")
