"""Turn driver: decide whether this bot owns the next turn, then take it.

Each bot process runs one TurnDriver. It keeps no debate state between events:
every event that names this bot triggers a fresh replay of the channel window.
"""

import logging

from config.config_loader import PromptsConfig
from disrupt.channel import Channel
from disrupt.consensus import judge, moderator_turn
from disrupt.models import ChannelMessage, DebateState, HumanInterjection, Turn, TurnOutcome
from disrupt.participants import ParticipantRegistry, validate_identifier
from disrupt.protocol import format_error, format_start, format_turn, make_start, make_turn, parse_start, parse_turn
from disrupt.providers.base import AIProvider, ProviderError
from disrupt.reconstruct import reconstruct
from disrupt.scheduler import closes_round, next_participant

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 50


class TurnDriver:
    """Per-process debate state machine: Idle -> Evaluating -> Idle."""

    def __init__(
        self,
        identifier: str,
        registry: ParticipantRegistry,
        provider: AIProvider,
        channel: Channel,
        prompts: PromptsConfig,
        *,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        default_rounds: int = 2,
        max_rounds: int = 5,
        moderator: str | None = None,
    ) -> None:
        validate_identifier(identifier)
        if moderator is not None and moderator in registry:
            raise ValueError(f"Moderator '{moderator}' cannot also be a participant")
        if identifier not in registry and identifier != moderator:
            raise ValueError(f"'{identifier}' is neither a debate participant nor the moderator")

        self.identifier = identifier
        self._registry = registry
        self._provider = provider
        self._channel = channel
        self._prompts = prompts
        self._history_window = history_window
        self._default_rounds = default_rounds
        self._max_rounds = max_rounds
        self._moderator = moderator

    @property
    def is_moderator(self) -> bool:
        return self.identifier == self._moderator

    def _is_addressed(self, text: str) -> bool:
        turn = parse_turn(text)
        if turn is not None:
            return turn.next == self.identifier
        start = parse_start(text)
        return start is not None and start.first_speaker == self.identifier

    async def handle_message(self, message: ChannelMessage) -> TurnOutcome:
        """React to one new channel message."""
        if message.from_self or not self._is_addressed(message.text):
            return TurnOutcome.IGNORED

        logger.info("%s's turn in debate", self.identifier)

        window = await self._channel.fetch(self._history_window)
        state = reconstruct(window, self._registry)
        if state is None:
            logger.info(
                "Could not find debate topic in %d messages, skipping turn", len(window)
            )
            return TurnOutcome.NO_DEBATE

        if self.is_moderator:
            return await self._moderate(state)
        return await self._take_turn(state)

    async def start_debate(
        self,
        topic: str,
        rounds: int | None = None,
        article_context: str | None = None,
    ) -> TurnOutcome:
        """Post a start marker and, if this bot opens the debate, its first turn.

        Raises:
            ValueError: If the topic is empty.
        """
        total_rounds = min(self._max_rounds, max(1, rounds or self._default_rounds))
        start = make_start(topic, total_rounds, self._registry.first, article_context)
        if not start.topic:
            raise ValueError("A debate needs a topic")

        await self._channel.append(format_start(start, self._registry))
        logger.info(
            "%s started a %d-round debate on %r", self.identifier, total_rounds, start.topic
        )

        if self.identifier != self._registry.first:
            return TurnOutcome.POSTED

        state = DebateState(
            topic=start.topic,
            total_rounds=start.total_rounds,
            current_round=1,
            article_context=start.article_context,
        )
        return await self._take_turn(state)

    def build_prompt(self, state: DebateState) -> str:
        article = ""
        if state.article_context:
            article = self._prompts.article.format(article=state.article_context)
        others = ", ".join(self._registry.others(self.identifier))

        if not state.history:
            return self._prompts.opener.format(
                name=self.identifier,
                others=others,
                topic=state.topic,
                article=article,
            )

        lines: list[str] = []
        for entry in state.history:
            if isinstance(entry, Turn):
                lines.append(f"{entry.speaker}: {entry.content}\n")
            else:
                lines.append(f"[HUMAN] {entry.author}: {entry.content}\n")

        human_highlight = ""
        latest_human: HumanInterjection | None = state.interjection_since(self.identifier)
        if latest_human:
            human_highlight = self._prompts.human_highlight.format(
                author=latest_human.author,
                content=latest_human.content,
            )

        return self._prompts.turn.format(
            name=self.identifier,
            others=others,
            topic=state.topic,
            transcript="\n".join(lines),
            human_highlight=human_highlight,
            article=article,
        )

    def _next_speaker(self, round_number: int, total_rounds: int) -> str | None:
        next_speaker = next_participant(self._registry, self.identifier, round_number, total_rounds)
        if self._moderator and closes_round(self._registry, self.identifier):
            # The moderator judges every closed round, including the last one
            return self._moderator
        return next_speaker

    async def _take_turn(self, state: DebateState) -> TurnOutcome:
        prompt = self.build_prompt(state)
        result = await self._provider.ask(prompt)

        if isinstance(result, ProviderError):
            await self._channel.append(format_error(self.identifier, result.message))
            logger.warning(
                "Debate stalled: %s could not answer round %d and named no next speaker (%s)",
                self.identifier,
                state.current_round,
                result.message,
            )
            return TurnOutcome.STALLED

        round_number = state.current_round
        turn = make_turn(
            self._registry,
            self.identifier,
            result.content,
            round_number,
            self._next_speaker(round_number, state.total_rounds),
        )
        await self._channel.append(format_turn(turn, state.total_rounds))
        logger.info(
            "%s posted round %d turn %d, next: %s",
            self.identifier, turn.round, turn.turn, turn.next or "END",
        )
        return TurnOutcome.ENDED if turn.next is None else TurnOutcome.POSTED

    async def _moderate(self, state: DebateState) -> TurnOutcome:
        verdict = await judge(self._provider, state, self._prompts)
        if verdict.error:
            logger.warning("Consensus check failed, continuing debate: %s", verdict.error)

        turn = moderator_turn(self._registry, self.identifier, state, verdict)
        await self._channel.append(format_turn(turn, state.total_rounds))
        logger.info(
            "Moderator verdict: %s, next: %s",
            "consensus" if verdict.consensus else "no consensus",
            turn.next or "END",
        )
        return TurnOutcome.ENDED if turn.next is None else TurnOutcome.POSTED
