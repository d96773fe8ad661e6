"""Debate wire format: start and turn markers embedded in human-readable chat text.

Every bot process reads and writes the same two markers, so they must stay
bit-exact across independently built processes:

    [DEBATE_START | Topic: <topic> | Rounds: <n> | NEXT: <identifier>]
    [DEBATE_TURN | Round: <r> | Turn: <t> | NEXT: <identifier|END>]

Decoders tolerate extra whitespace around the separators but not reordering.
"""

import re
from collections.abc import Iterable

from disrupt.models import DebateStart, Turn
from disrupt.participants import END_MARKER, ParticipantRegistry

CONTENT_LIMIT = 1900
TOPIC_LIMIT = 200
ARTICLE_LIMIT = 1200

_START_RE = re.compile(
    r"\[DEBATE_START\s*\|\s*Topic:\s*(?P<topic>.+?)\s*\|\s*Rounds:\s*(?P<rounds>\d+)"
    r"\s*\|\s*NEXT:\s*(?P<next>\w+)\s*\]"
)
_TURN_RE = re.compile(
    r"\[DEBATE_TURN\s*\|\s*Round:\s*(?P<round>\d+)\s*\|\s*Turn:\s*(?P<turn>\d+)"
    r"\s*\|\s*NEXT:\s*(?P<next>\w+)\s*\]"
)
_SPEAKER_RE = re.compile(r"^\*\*(?P<speaker>\w+):\*\*[ \t]*", re.MULTILINE)
_ARTICLE_RE = re.compile(r"\*\*Article context:\*\*\n```\n(?P<article>.*?)\n```", re.DOTALL)
_BANNER_RE = re.compile(r"\s*🏁 \*\*Debate Complete!\*\*(?: \(\d+ rounds?\))?\s*$")


def make_start(
    topic: str,
    total_rounds: int,
    first_speaker: str,
    article_context: str | None = None,
) -> DebateStart:
    """Build a DebateStart whose fields survive the wire format unchanged."""
    topic = " ".join(topic.split())[:TOPIC_LIMIT].strip()
    article = None
    if article_context and article_context.strip():
        article = article_context.strip().replace("```", "'''")[:ARTICLE_LIMIT].strip()
    return DebateStart(
        topic=topic,
        total_rounds=total_rounds,
        first_speaker=first_speaker,
        article_context=article,
    )


def make_turn(
    registry: ParticipantRegistry,
    speaker: str,
    content: str,
    round_number: int,
    next_speaker: str | None,
) -> Turn:
    """Build a Turn with its ordinal derived from the registry."""
    return Turn(
        speaker=speaker,
        content=content.strip()[:CONTENT_LIMIT].strip(),
        round=round_number,
        turn=registry.ordinal(speaker),
        next=next_speaker,
    )


def format_start(start: DebateStart, participants: Iterable[str]) -> str:
    lines = [
        "🎙️ **AI Debate Starting!**",
        "",
        f"**Topic:** {start.topic}",
        f"**Rounds:** {start.total_rounds}",
        f"**Participants:** {', '.join(participants)}",
        "",
        "_Jump in! Your messages will be included._",
    ]
    if start.article_context:
        lines += ["", "**Article context:**", "```", start.article_context, "```"]
    lines += [
        "",
        f"[DEBATE_START | Topic: {start.topic} | Rounds: {start.total_rounds} | NEXT: {start.first_speaker}]",
    ]
    return "\n".join(lines)


def parse_start(text: str) -> DebateStart | None:
    match = _START_RE.search(text)
    if not match:
        return None
    rounds = int(match.group("rounds"))
    if rounds < 1:
        return None

    article = None
    article_match = _ARTICLE_RE.search(text, 0, match.start())
    if article_match:
        article = article_match.group("article")

    return DebateStart(
        topic=match.group("topic"),
        total_rounds=rounds,
        first_speaker=match.group("next"),
        article_context=article,
    )


def format_turn(turn: Turn, total_rounds: int | None = None) -> str:
    msg = f"**{turn.speaker}:** {turn.content[:CONTENT_LIMIT]}"
    if turn.next is None:
        suffix = f" ({total_rounds} rounds)" if total_rounds else ""
        msg += f"\n\n🏁 **Debate Complete!**{suffix}"
    msg += (
        f"\n[DEBATE_TURN | Round: {turn.round} | Turn: {turn.turn} | "
        f"NEXT: {turn.next or END_MARKER}]"
    )
    return msg


def parse_turn(text: str) -> Turn | None:
    speaker_match = _SPEAKER_RE.search(text)
    if not speaker_match:
        return None
    marker_match = _TURN_RE.search(text, speaker_match.end())
    if not marker_match:
        return None

    next_speaker: str | None = marker_match.group("next")
    if next_speaker == END_MARKER:
        next_speaker = None

    content = text[speaker_match.end():marker_match.start()]
    if next_speaker is None:
        content = _BANNER_RE.sub("", content)

    return Turn(
        speaker=speaker_match.group("speaker"),
        content=content.strip(),
        round=int(marker_match.group("round")),
        turn=int(marker_match.group("turn")),
        next=next_speaker,
    )


def format_error(speaker: str, error: str) -> str:
    """Error-annotated message. Carries no turn marker, so it names no next speaker."""
    return f"**{speaker}:** ❌ {error}"[:CONTENT_LIMIT]


def fit_message(text: str, limit: int) -> str:
    """Shorten text to ``limit`` chars, keeping a trailing marker line intact."""
    if len(text) <= limit:
        return text
    body, sep, last_line = text.rpartition("\n")
    if sep and (_TURN_RE.fullmatch(last_line.strip()) or _START_RE.fullmatch(last_line.strip())):
        room = limit - len(last_line) - 1
        if room > 0:
            return body[:room].rstrip() + "\n" + last_line
    return text[:limit]
