"""Consensus check run by the moderator between rounds.

The judge model must answer with one of two literal prefixes. Anything that
is not a CONSENSUS verdict keeps the debate going, including model errors.
"""

import logging
from dataclasses import dataclass

from config.config_loader import PromptsConfig
from disrupt.models import DebateState, Turn
from disrupt.participants import ParticipantRegistry
from disrupt.protocol import make_turn
from disrupt.providers.base import AIProvider, ProviderError
from disrupt.reconstruct import completed_round

logger = logging.getLogger(__name__)

CONSENSUS_PREFIX = "CONSENSUS:"
NO_CONSENSUS_PREFIX = "NO_CONSENSUS:"


@dataclass
class Verdict:
    consensus: bool
    summary: str
    error: str | None = None


def build_transcript(state: DebateState) -> str:
    """One "<speaker>: <content>" line per turn. Human interjections are left out."""
    return "\n".join(f"{t.speaker}: {t.content}" for t in state.turns)


def classify_verdict(text: str) -> Verdict:
    """Classify a judge response by case-sensitive prefix on the trimmed text."""
    reply = text.strip()
    if reply.startswith(CONSENSUS_PREFIX):
        return Verdict(consensus=True, summary=reply[len(CONSENSUS_PREFIX):].strip())
    if reply.startswith(NO_CONSENSUS_PREFIX):
        return Verdict(consensus=False, summary=reply[len(NO_CONSENSUS_PREFIX):].strip())

    logger.warning("Judge reply matched neither verdict format, treating as no consensus: %r", reply[:200])
    return Verdict(consensus=False, summary=reply)


async def judge(provider: AIProvider, state: DebateState, prompts: PromptsConfig) -> Verdict:
    """Ask the judge model whether the debaters agree. Never raises."""
    prompt = prompts.consensus.format(
        topic=state.topic,
        transcript=build_transcript(state),
    )

    logger.info("Running consensus check via %s", provider.name())
    result = await provider.ask(prompt)
    if isinstance(result, ProviderError):
        return Verdict(consensus=False, summary="", error=result.message)
    return classify_verdict(result.content)


def moderator_turn(
    registry: ParticipantRegistry,
    moderator: str,
    state: DebateState,
    verdict: Verdict,
) -> Turn:
    """Turn the moderator posts after judging the round that just closed.

    CONSENSUS ends the debate regardless of the round budget; otherwise the
    next round starts with the first participant unless the budget is spent.
    """
    round_number = completed_round(state.participant_turns, len(registry))

    if verdict.error:
        reason = f"⚠️ Couldn't check for consensus ({verdict.error})."
    elif verdict.consensus:
        return make_turn(
            registry, moderator, f"🤝 **Consensus reached:** {verdict.summary}", round_number, None,
        )
    else:
        reason = f"⚖️ **No consensus:** {verdict.summary}"

    if round_number + 1 > state.total_rounds:
        return make_turn(registry, moderator, reason, round_number, None)

    content = f"{reason}\nRound {round_number + 1}, {registry.first} opens."
    return make_turn(registry, moderator, content, round_number + 1, registry.first)
