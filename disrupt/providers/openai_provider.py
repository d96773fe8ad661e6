"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from disrupt.models import ModelResponse
from disrupt.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI chat-completions provider via openai SDK."""

    _label = "OpenAI"

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        messages = []
        if self._config.persona:
            messages.append({"role": "system", "content": self._config.persona})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str, timeout_sec: float | None = None) -> ModelResponse:
        timeout = timeout_sec or self._config.timeout_sec
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=self._messages(prompt),
                    max_tokens=self._config.max_tokens,
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {timeout}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("%s (%s): %.2fs, %s tokens", self._label, self._config.name, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
