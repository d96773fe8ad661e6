"""Rich console output and markdown transcript save for debates."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule

from disrupt.models import ChannelMessage, DebateState, Turn
from disrupt.protocol import parse_start, parse_turn

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def print_message(msg: ChannelMessage) -> None:
    """Print one channel message, styled by what the protocol makes of it."""
    start = parse_start(msg.text)
    if start:
        console.print(Rule(f"[bold cyan]Debate: {start.topic}[/bold cyan]"))
        console.print(f"[dim]{start.total_rounds} rounds, {start.first_speaker} opens[/dim]")
        return

    turn = parse_turn(msg.text)
    if turn:
        console.print(
            Panel(
                Markdown(turn.content),
                title=f"[bold]{turn.speaker}[/bold]",
                subtitle=f"Round {turn.round} | next: {turn.next or 'END'}",
                border_style="green" if turn.next is None else "dim",
            )
        )
        return

    style = "red" if msg.is_bot else "yellow"
    console.print(Panel(msg.text, title=f"[bold]{msg.author}[/bold]", border_style=style))


def print_summary(state: DebateState | None, stalled: bool) -> None:
    if state is None:
        console.print("[bold red]No debate found in the channel.[/bold red]")
        return
    last = state.last_turn
    if stalled:
        status = "[red]stalled[/red] (a model call failed, nobody was named next)"
    elif last is not None and last.next is None:
        status = "[green]complete[/green]"
    else:
        status = "[yellow]unfinished[/yellow]"
    console.print(Rule("[bold]Summary[/bold]"))
    console.print(
        f"Topic: [italic]{state.topic}[/italic] | Turns: {len(state.turns)} | "
        f"Rounds: {state.total_rounds} | Status: {status}"
    )


def save_transcript(
    state: DebateState,
    messages: list[ChannelMessage],
    output_dir: Path,
) -> Path:
    """Save the debate as a markdown file.

    Args:
        state: Reconstructed state of the debate.
        messages: Raw channel log, oldest first, used for errors and authors.
        output_dir: Directory to save the file in.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = _slug(state.topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    speakers = sorted({t.speaker for t in state.turns})
    lines: list[str] = [
        f"# AI Debate: {state.topic[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Rounds:** {state.total_rounds}",
        f"**Speakers:** {', '.join(speakers)}",
        "",
    ]
    if state.article_context:
        lines += ["## Article", "", state.article_context, ""]
    lines += ["---", ""]

    current_round = 0
    for entry in state.history:
        if isinstance(entry, Turn):
            if entry.round != current_round:
                current_round = entry.round
                lines += [f"## Round {current_round}", ""]
            lines += [f"### {entry.speaker}", "", entry.content, ""]
        else:
            lines += [f"> **{entry.author}** (human): {entry.content}", ""]

    errors = [m for m in messages if m.is_bot and "❌" in m.text and parse_turn(m.text) is None]
    if errors:
        lines += ["## Errors", ""]
        lines += [f"- {m.text}" for m in errors]
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath
