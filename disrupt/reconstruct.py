"""Rebuild the current debate from a bounded window of channel history.

The channel is the only shared store, so every triggering event replays the
window from scratch. Nothing here touches the network.
"""

import logging
import math
from collections.abc import Sequence

from disrupt.models import ChannelMessage, DebateState, HumanInterjection, Turn
from disrupt.participants import ParticipantRegistry
from disrupt.protocol import parse_start, parse_turn

logger = logging.getLogger(__name__)


def current_round(participant_turns: int, participant_count: int) -> int:
    """Round of the next participant turn, derived only from how many have happened."""
    return math.ceil((participant_turns + 1) / participant_count)


def completed_round(participant_turns: int, participant_count: int) -> int:
    """Round of the most recent participant turn (1 before anyone has spoken)."""
    return max(1, math.ceil(participant_turns / participant_count))


def reconstruct(
    messages: Sequence[ChannelMessage],
    registry: ParticipantRegistry,
) -> DebateState | None:
    """Replay ``messages`` (oldest first) into the state of the latest debate.

    Returns None when no start marker is present in the window.
    """
    state: DebateState | None = None

    for msg in messages:
        start = parse_start(msg.text)
        if start:
            # A newer start marker discards everything from the previous debate
            state = DebateState(
                topic=start.topic,
                total_rounds=start.total_rounds,
                current_round=1,
                article_context=start.article_context,
            )
            continue

        if state is None:
            continue

        turn = parse_turn(msg.text)
        if turn:
            state.history.append(turn)
        elif not msg.is_bot:
            state.history.append(HumanInterjection(author=msg.author, content=msg.text.strip()))

    if state is None:
        logger.debug("No debate start marker in %d messages", len(messages))
        return None

    state.participant_turns = sum(
        1 for h in state.history if isinstance(h, Turn) and h.speaker in registry
    )
    last = state.last_turn
    if last is not None and last.next is None:
        # Finished debate: nobody speaks next, report the final round
        state.current_round = completed_round(state.participant_turns, len(registry))
    else:
        state.current_round = current_round(state.participant_turns, len(registry))
    return state
