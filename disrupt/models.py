"""Pure dataclasses for the debate protocol. No I/O, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class DebateStart:
    topic: str
    total_rounds: int
    first_speaker: str      # identifier written in the NEXT field of the marker
    article_context: str | None = None


@dataclass
class Turn:
    speaker: str
    content: str
    round: int
    turn: int               # 1-indexed position of speaker in its round, 0 for non-participants
    next: str | None        # None means END


@dataclass
class HumanInterjection:
    author: str
    content: str


@dataclass
class ChannelMessage:
    author: str
    text: str
    timestamp: datetime
    is_bot: bool
    from_self: bool = False
    message_id: int | None = None


@dataclass
class ModelResponse:
    provider: str           # bot identifier that made the call
    model: str              # actual model string used
    content: str
    latency_sec: float
    token_count: int | None


@dataclass
class DebateState:
    topic: str
    total_rounds: int
    current_round: int
    history: list[Turn | HumanInterjection] = field(default_factory=list)
    article_context: str | None = None
    participant_turns: int = 0

    @property
    def turns(self) -> list[Turn]:
        return [h for h in self.history if isinstance(h, Turn)]

    @property
    def last_turn(self) -> Turn | None:
        turns = self.turns
        return turns[-1] if turns else None

    def interjection_since(self, speaker: str) -> HumanInterjection | None:
        """Latest human message posted after ``speaker``'s own most recent turn."""
        for entry in reversed(self.history):
            if isinstance(entry, HumanInterjection):
                return entry
            if entry.speaker == speaker:
                return None
        return None


class TurnOutcome(Enum):
    IGNORED = "ignored"         # event does not concern this bot
    NO_DEBATE = "no_debate"     # start marker not found in the history window
    POSTED = "posted"           # a turn (or start marker) was appended
    ENDED = "ended"             # a turn with NEXT: END was appended
    STALLED = "stalled"         # model failed, error posted without a turn marker
