"""Abstract base for all AI model providers."""

import logging
from abc import ABC, abstractmethod

from disrupt.models import ModelResponse

logger = logging.getLogger(__name__)

# Retry once on timeout with this multiple of the configured timeout
_RETRY_TIMEOUT_FACTOR = 1.5


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """One model backend speaking with one persona.

    Personalities are configuration (the persona text sent as system prompt),
    not subclasses.
    """

    @abstractmethod
    def name(self) -> str:
        """Return the bot identifier this provider speaks for (e.g. 'Claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, timeout_sec: float | None = None) -> ModelResponse:
        """Generate a response for the given prompt.

        Args:
            prompt: The full prompt text to send.
            timeout_sec: Override for the configured request timeout.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...

    def timeout_sec(self) -> float | None:
        """Configured request timeout, if the provider has one."""
        cfg = getattr(self, "_config", None)
        return getattr(cfg, "timeout_sec", None)

    async def ask(self, prompt: str) -> ModelResponse | ProviderError:
        """Call the model, retrying once on timeout with 1.5x the timeout.

        Never raises. Returns ProviderError on permanent failure.
        """
        try:
            return await self.generate(prompt)
        except ProviderError as exc:
            if "timed out" not in str(exc).lower():
                logger.warning("Provider %s failed: %s", self.name(), exc)
                return exc
            first_error = exc
        except Exception as exc:
            logger.warning("Provider %s unexpected failure: %s", self.name(), exc)
            return ProviderError(self.name(), f"Unexpected error: {exc}")

        base_timeout = self.timeout_sec()
        retry_timeout = base_timeout * _RETRY_TIMEOUT_FACTOR if base_timeout else None
        logger.warning(
            "Provider %s timed out (%s), retrying with %ss",
            self.name(), first_error, retry_timeout,
        )
        try:
            return await self.generate(prompt, timeout_sec=retry_timeout)
        except ProviderError as retry_exc:
            logger.warning("Provider %s failed after retry: %s", self.name(), retry_exc)
            return retry_exc
        except Exception as retry_exc:
            logger.warning("Provider %s unexpected failure after retry: %s", self.name(), retry_exc)
            return ProviderError(self.name(), f"Unexpected error on retry: {retry_exc}")
