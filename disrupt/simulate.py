"""Run a whole debate in one process over an in-memory channel log.

Every appended message is delivered to every driver, one handler at a time,
in append order, the same way separate bot processes would see it.
"""

import logging
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from disrupt.channel import InMemoryLog
from disrupt.debate import TurnDriver
from disrupt.models import ChannelMessage, TurnOutcome

logger = logging.getLogger(__name__)

_DEFAULT_MAX_EVENTS = 200


@dataclass
class LocalDebateResult:
    messages: list[ChannelMessage]
    outcomes: list[tuple[str, TurnOutcome]] = field(default_factory=list)

    @property
    def ended(self) -> bool:
        return any(outcome is TurnOutcome.ENDED for _, outcome in self.outcomes)

    @property
    def stalled(self) -> bool:
        return any(outcome is TurnOutcome.STALLED for _, outcome in self.outcomes)


async def run_local_debate(
    drivers: Sequence[TurnDriver],
    log: InMemoryLog,
    topic: str,
    rounds: int | None = None,
    *,
    initiator: TurnDriver,
    article_context: str | None = None,
    max_events: int = _DEFAULT_MAX_EVENTS,
    on_message: Callable[[ChannelMessage], None] | None = None,
) -> LocalDebateResult:
    """Start a debate with ``initiator`` and deliver messages until the log goes quiet."""
    pending: deque[ChannelMessage] = deque()
    log.subscribe(pending.append)

    result = LocalDebateResult(messages=[])
    outcome = await initiator.start_debate(topic, rounds, article_context)
    result.outcomes.append((initiator.identifier, outcome))

    events = 0
    while pending and events < max_events:
        msg = pending.popleft()
        events += 1
        if on_message:
            on_message(msg)
        for driver in drivers:
            outcome = await driver.handle_message(
                replace(msg, from_self=(msg.author == driver.identifier))
            )
            if outcome is not TurnOutcome.IGNORED:
                result.outcomes.append((driver.identifier, outcome))

    if pending:
        logger.warning("Stopped after %d events with %d undelivered messages", events, len(pending))

    result.messages = log.messages
    return result
