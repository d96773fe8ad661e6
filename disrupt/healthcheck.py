"""Ping a bot's model before it joins the channel."""

import asyncio
import logging
from dataclasses import dataclass

from disrupt.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


@dataclass
class HealthResult:
    bot: str
    model: str
    ok: bool
    detail: str     # latency on success, first error line on failure


async def _check_one(name: str, provider: AIProvider) -> HealthResult:
    try:
        response = await asyncio.wait_for(provider.generate(_PING_PROMPT), timeout=_TIMEOUT_SEC)
    except asyncio.TimeoutError:
        return HealthResult(name, provider.model_string(), False, f"no reply within {_TIMEOUT_SEC:g}s")
    except Exception as exc:
        first_line = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        return HealthResult(name, provider.model_string(), False, first_line[:120])

    if not response.content.strip():
        return HealthResult(name, provider.model_string(), False, "empty reply")
    return HealthResult(name, response.model, True, f"{response.latency_sec:.1f}s")


async def run_health_checks(providers: dict[str, AIProvider]) -> dict[str, HealthResult]:
    """Ping all providers in parallel, keyed by bot name."""
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    for result in results:
        if not result.ok:
            logger.debug("Health check failed for %s: %s", result.bot, result.detail)
    return {r.bot: r for r in results}
