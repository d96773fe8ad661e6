"""Fixed, ordered list of debate participants. Pure lookups, no state."""

import re
from collections.abc import Iterable, Iterator

END_MARKER = "END"

_IDENTIFIER_RE = re.compile(r"^\w+$")


class UnknownParticipantError(ValueError):
    """Raised when an identifier is not a registered participant."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Unknown debate participant: {identifier!r}")


def validate_identifier(identifier: str) -> None:
    """Raise ValueError unless identifier can travel in a NEXT field."""
    if not _IDENTIFIER_RE.match(identifier):
        raise ValueError(f"Participant identifier must be a single word: {identifier!r}")
    if identifier == END_MARKER:
        raise ValueError(f"{END_MARKER!r} is reserved and cannot name a participant")


class ParticipantRegistry:
    """Immutable ordered participant list shared identically by every bot process."""

    def __init__(self, identifiers: Iterable[str]) -> None:
        ids = tuple(identifiers)
        if not ids:
            raise ValueError("A debate needs at least one participant")
        for identifier in ids:
            validate_identifier(identifier)
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate participant identifiers: {list(ids)}")
        self._ids = ids

    def index_of(self, identifier: str) -> int | None:
        """Return the 0-based position of identifier, or None if unregistered."""
        try:
            return self._ids.index(identifier)
        except ValueError:
            return None

    def at(self, index: int) -> str:
        return self._ids[index]

    def ordinal(self, identifier: str) -> int:
        """1-indexed turn ordinal within a round; 0 for non-participants."""
        index = self.index_of(identifier)
        return 0 if index is None else index + 1

    def others(self, identifier: str) -> list[str]:
        return [p for p in self._ids if p != identifier]

    @property
    def first(self) -> str:
        return self._ids[0]

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __repr__(self) -> str:
        return f"ParticipantRegistry({list(self._ids)!r})"
