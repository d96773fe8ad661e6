"""Deterministic turn scheduling: who speaks after whom, and when the debate ends."""

from disrupt.participants import ParticipantRegistry, UnknownParticipantError


def next_participant(
    registry: ParticipantRegistry,
    current: str,
    round_number: int,
    total_rounds: int,
) -> str | None:
    """Return the identifier that speaks after ``current``, or None at end of debate.

    Raises:
        UnknownParticipantError: If ``current`` is not registered.
    """
    index = registry.index_of(current)
    if index is None:
        raise UnknownParticipantError(current)

    if index + 1 < len(registry):
        return registry.at(index + 1)

    # current closed the round
    if round_number >= total_rounds:
        return None
    return registry.at(0)


def closes_round(registry: ParticipantRegistry, current: str) -> bool:
    """True if ``current`` is the last speaker of every round."""
    index = registry.index_of(current)
    if index is None:
        raise UnknownParticipantError(current)
    return index == len(registry) - 1
