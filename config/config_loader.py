"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str               # bot identifier, e.g. "Claude"
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    persona: str = ""
    token_env: str | None = None    # Discord bot token variable


@dataclass
class PromptsConfig:
    opener: str
    turn: str
    human_highlight: str
    article: str
    consensus: str


@dataclass
class DebateConfig:
    participants: list[str]
    moderator: str | None = None


@dataclass
class DefaultsConfig:
    rounds: int
    max_rounds: int
    history_window: int
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    debate: DebateConfig
    bots: dict[str, ModelConfig]
    prompts: PromptsConfig
    guild_id_env: str = "DISCORD_GUILD_ID"
    available_providers: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if the debate
    section names a bot that is not configured.
    Logs warnings for missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        rounds=int(defaults_raw["rounds"]),
        max_rounds=int(defaults_raw["max_rounds"]),
        history_window=int(defaults_raw.get("history_window", 50)),
        output_dir=Path(defaults_raw["output_dir"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        opener=prompts_raw["opener"],
        turn=prompts_raw["turn"],
        human_highlight=prompts_raw["human_highlight"],
        article=prompts_raw["article"],
        consensus=prompts_raw["consensus"],
    )

    personas_raw = raw.get("personas") or {}
    bots: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for bot_name, bot_raw in raw["bots"].items():
        bots[bot_name] = ModelConfig(
            name=bot_name,
            sdk=bot_raw["sdk"],
            model=bot_raw["model"],
            api_key_env=bot_raw["api_key_env"],
            timeout_sec=int(bot_raw["timeout_sec"]),
            max_tokens=int(bot_raw["max_tokens"]),
            base_url=bot_raw.get("base_url"),
            persona=str(personas_raw.get(bot_name, "")).strip(),
            token_env=bot_raw.get("token_env"),
        )

        api_key = os.environ.get(bot_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(bot_name)
            logger.info("Provider available: %s", bot_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                bot_name,
                bot_raw["api_key_env"],
            )

    debate_raw = raw["debate"]
    debate = DebateConfig(
        participants=[str(p) for p in debate_raw["participants"]],
        moderator=debate_raw.get("moderator"),
    )
    for name in [*debate.participants, *([debate.moderator] if debate.moderator else [])]:
        if name not in bots:
            raise ValueError(f"Debate names unknown bot '{name}', add it under 'bots'")
    if debate.moderator in debate.participants:
        raise ValueError(f"Moderator '{debate.moderator}' cannot also be a participant")

    return AppConfig(
        defaults=defaults,
        debate=debate,
        bots=bots,
        prompts=prompts,
        guild_id_env=str(raw.get("discord", {}).get("guild_id_env", "DISCORD_GUILD_ID")),
        available_providers=available_providers,
    )
