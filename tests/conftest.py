"""Shared pytest fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from config.config_loader import PromptsConfig
from disrupt.channel import InMemoryLog
from disrupt.models import ChannelMessage, ModelResponse
from disrupt.participants import ParticipantRegistry
from disrupt.providers.base import AIProvider


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        opener="You're {name} debating {others}. Topic: {topic}\n{article}Open the debate.",
        turn="You're {name} debating {others}. Topic: {topic}\n\n{transcript}\n{human_highlight}{article}Respond.",
        human_highlight="A human ({author}) said: {content}\n",
        article="Article:\n{article}\n",
        consensus="Topic: {topic}\nTranscript:\n{transcript}\nAnswer CONSENSUS: or NO_CONSENSUS:",
    )


@pytest.fixture
def registry() -> ParticipantRegistry:
    return ParticipantRegistry(["Claude", "ChatGPT", "Gemini"])


@pytest.fixture
def abc_registry() -> ParticipantRegistry:
    return ParticipantRegistry(["A", "B", "C"])


@pytest.fixture
def log() -> InMemoryLog:
    return InMemoryLog()


def make_message(author: str, text: str, *, is_bot: bool = True, from_self: bool = False) -> ChannelMessage:
    return ChannelMessage(
        author=author,
        text=text,
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        is_bot=is_bot,
        from_self=from_self,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str, timeout_sec: float | None = None) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(
            provider=self._name,
            model="mock-model",
            content=self._response_content,
            latency_sec=0.1,
            token_count=10,
        )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()
