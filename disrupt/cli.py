"""Click CLI: serve, simulate and check commands."""

import asyncio
import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, load_config
from disrupt.channel import Channel, InMemoryChannel, InMemoryLog
from disrupt.debate import TurnDriver
from disrupt.discord_channel import DebateBot
from disrupt.healthcheck import HealthResult, run_health_checks
from disrupt.output import print_message, print_summary, save_transcript
from disrupt.participants import ParticipantRegistry
from disrupt.providers.anthropic import AnthropicProvider
from disrupt.providers.base import AIProvider
from disrupt.providers.gemini import GeminiProvider
from disrupt.providers.openai_provider import OpenAIProvider
from disrupt.providers.xai import XAIProvider
from disrupt.reconstruct import reconstruct
from disrupt.simulate import run_local_debate

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "xai": XAIProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build providers for every bot with an API key. Returns dict keyed by bot name."""
    providers: dict[str, AIProvider] = {}
    for name in sorted(config.available_providers):
        bot_cfg = config.bots[name]
        if bot_cfg.sdk not in PROVIDER_CLASSES:
            logging.warning("Bot '%s' uses unknown sdk '%s', skipping", name, bot_cfg.sdk)
            continue
        try:
            providers[name] = PROVIDER_CLASSES[bot_cfg.sdk](bot_cfg)
        except Exception as exc:
            logging.warning("Failed to instantiate provider for '%s': %s", name, exc)
    return providers


def _make_driver(
    config: AppConfig,
    registry: ParticipantRegistry,
    name: str,
    provider: AIProvider,
    channel: Channel,
    moderator: str | None,
) -> TurnDriver:
    return TurnDriver(
        name,
        registry,
        provider,
        channel,
        config.prompts,
        history_window=config.defaults.history_window,
        default_rounds=config.defaults.rounds,
        max_rounds=config.defaults.max_rounds,
        moderator=moderator,
    )


def _print_health(results: dict[str, HealthResult]) -> list[str]:
    """Print health check results and return the bots that failed."""
    failed: list[str] = []
    for name in sorted(results):
        result = results[name]
        if result.ok:
            console.print(f"  [green]OK  [/green] {name} [dim]({result.model}, {result.detail})[/dim]")
        else:
            console.print(f"  [red]FAIL[/red] {name}: {result.detail}")
            failed.append(name)
    return failed


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Disrupt -- AI personalities debating each other in a shared channel.

    \b
    Examples:
      disrupt serve Claude
      disrupt simulate "Is remote work here to stay?" --rounds 2
      disrupt check
    """
    # Model replies carry emoji and other non-ASCII text
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        ctx.obj = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("bot")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.pass_obj
def serve(config: AppConfig, bot: str, skip_health_check: bool) -> None:
    """Run one bot process on Discord."""
    if bot not in config.bots:
        console.print(f"[bold red]Error:[/bold red] Unknown bot '{bot}'. Known: {', '.join(config.bots)}")
        sys.exit(1)

    bot_cfg = config.bots[bot]
    token = os.environ.get(bot_cfg.token_env or "", "").strip()
    if not token:
        console.print(f"[bold red]Error:[/bold red] {bot_cfg.token_env} is required!")
        sys.exit(1)

    providers = _build_all_providers(config)
    if bot not in providers:
        console.print(f"[bold red]Error:[/bold red] No model provider for {bot}. Check {bot_cfg.api_key_env} in .env.")
        sys.exit(1)
    provider = providers[bot]

    if not skip_health_check:
        console.print("\n[bold]Checking provider...[/bold]")
        failed = _print_health(asyncio.run(run_health_checks({bot: provider})))
        if failed and not click.confirm("Provider check failed. Start anyway?", default=False):
            sys.exit(1)

    registry = ParticipantRegistry(config.debate.participants)
    moderator = config.debate.moderator
    if bot not in registry and bot != moderator:
        console.print(f"[bold red]Error:[/bold red] {bot} is neither a debate participant nor the moderator.")
        sys.exit(1)
    guild_id = os.environ.get(config.guild_id_env, "").strip()

    client = DebateBot(
        bot,
        lambda channel: _make_driver(config, registry, bot, provider, channel, moderator),
        guild_id=int(guild_id) if guild_id else None,
        debate_command=bot in (moderator, registry.first),
    )
    console.print(f"🚀 Starting {bot} bot...")
    client.run(token, log_handler=None)


@main.command()
@click.argument("topic")
@click.option("--rounds", default=None, type=int, help="Number of debate rounds (default: from config)")
@click.option("--article", "article_file", type=click.Path(exists=True), help="Article text file to debate")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Do not write a markdown transcript")
@click.pass_obj
def simulate(
    config: AppConfig,
    topic: str,
    rounds: int | None,
    article_file: str | None,
    output_path: str | None,
    no_save: bool,
) -> None:
    """Run a full debate locally, all bots sharing one in-memory channel."""
    providers = _build_all_providers(config)
    registry = ParticipantRegistry(config.debate.participants)

    missing = [p for p in registry if p not in providers]
    if missing:
        console.print(
            f"[bold red]Error:[/bold red] No provider for participant(s): {', '.join(missing)}. "
            "Check API keys in .env."
        )
        sys.exit(1)

    moderator = config.debate.moderator
    if moderator and moderator not in providers:
        logger.warning("Moderator %s unavailable, debating without consensus checks", moderator)
        moderator = None

    log = InMemoryLog()
    names = [*registry, *([moderator] if moderator else [])]
    drivers = [
        _make_driver(config, registry, name, providers[name], InMemoryChannel(log, name), moderator)
        for name in names
    ]
    article = Path(article_file).read_text(encoding="utf-8") if article_file else None

    console.print(f"\n[bold cyan]Disrupt[/bold cyan]: {', '.join(registry)}"
                  + (f", moderated by {moderator}" if moderator else ""))

    result = asyncio.run(
        run_local_debate(
            drivers,
            log,
            topic,
            rounds,
            initiator=drivers[-1],
            article_context=article,
            on_message=print_message,
        )
    )

    state = reconstruct(result.messages, registry)
    print_summary(state, result.stalled)

    if state is not None and not no_save:
        output_dir = Path(output_path) if output_path else config.defaults.output_dir
        saved = save_transcript(state, result.messages, output_dir)
        console.print(f"\n[dim]Saved to: {saved}[/dim]")


@main.command()
@click.pass_obj
def check(config: AppConfig) -> None:
    """Ping every configured model provider."""
    providers = _build_all_providers(config)
    if not providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)

    console.print("\n[bold]Checking providers...[/bold]")
    failed = _print_health(asyncio.run(run_health_checks(providers)))
    if failed:
        console.print(f"\n[yellow]{len(failed)} provider(s) failed:[/yellow] {', '.join(failed)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
