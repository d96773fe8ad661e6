"""Tests for disrupt/consensus.py."""

import logging
from unittest.mock import AsyncMock

import pytest

from disrupt.consensus import Verdict, build_transcript, classify_verdict, judge, moderator_turn
from disrupt.models import DebateState, HumanInterjection, ModelResponse, Turn
from disrupt.providers.base import ProviderError
from tests.conftest import MockProvider


def _state(participant_turns: int, total_rounds: int) -> DebateState:
    speakers = ["A", "B", "C"]
    history: list = [
        Turn(speakers[i % 3], f"point {i}", i // 3 + 1, i % 3 + 1, "X")
        for i in range(participant_turns)
    ]
    return DebateState(
        topic="Pizza toppings",
        total_rounds=total_rounds,
        current_round=participant_turns // 3 + 1,
        history=history,
        participant_turns=participant_turns,
    )


def test_build_transcript_skips_humans():
    state = DebateState(
        topic="t",
        total_rounds=1,
        current_round=1,
        history=[
            Turn("A", "I think so.", 1, 1, "B"),
            HumanInterjection("alice", "no way"),
            Turn("B", "I disagree.", 1, 2, "C"),
        ],
    )
    assert build_transcript(state) == "A: I think so.\nB: I disagree."


@pytest.mark.parametrize(
    "reply, consensus, summary",
    [
        ("CONSENSUS: Everyone likes cheese.", True, "Everyone likes cheese."),
        ("  NO_CONSENSUS: They split on pineapple.\n", False, "They split on pineapple."),
        ("consensus: lowercase does not count", False, "consensus: lowercase does not count"),
        ("I think they mostly agree.", False, "I think they mostly agree."),
    ],
)
def test_classify_verdict(reply, consensus, summary):
    verdict = classify_verdict(reply)
    assert verdict.consensus is consensus
    assert verdict.summary == summary


def test_classify_verdict_warns_on_malformed_reply(caplog):
    with caplog.at_level(logging.WARNING):
        classify_verdict("Maybe?")
    assert any("matched neither verdict format" in msg for msg in caplog.messages)


async def test_judge_sends_transcript(sample_prompts_config):
    provider = MockProvider("Mod", "CONSENSUS: all agree")
    verdict = await judge(provider, _state(3, 2), sample_prompts_config)
    assert verdict == Verdict(consensus=True, summary="all agree")
    prompt = provider.generate.call_args.args[0]
    assert "Pizza toppings" in prompt
    assert "A: point 0" in prompt


async def test_judge_model_error_fails_open(sample_prompts_config):
    provider = MockProvider("Mod")
    provider.generate = AsyncMock(side_effect=ProviderError("Mod", "API error: 529"))
    verdict = await judge(provider, _state(3, 2), sample_prompts_config)
    assert verdict.consensus is False
    assert verdict.error == "API error: 529"


def test_consensus_overrides_round_budget(abc_registry):
    turn = moderator_turn(abc_registry, "Mod", _state(3, 5), Verdict(True, "They agree."))
    assert turn.next is None
    assert turn.round == 1
    assert turn.turn == 0
    assert "They agree." in turn.content


def test_no_consensus_starts_next_round(abc_registry):
    turn = moderator_turn(abc_registry, "Mod", _state(3, 2), Verdict(False, "Still split."))
    assert turn.next == "A"
    assert turn.round == 2


def test_no_consensus_after_last_round_ends(abc_registry):
    turn = moderator_turn(abc_registry, "Mod", _state(6, 2), Verdict(False, "Still split."))
    assert turn.next is None
    assert turn.round == 2


def test_judge_error_continues_debate(abc_registry):
    turn = moderator_turn(abc_registry, "Mod", _state(3, 3), Verdict(False, "", error="timeout"))
    assert turn.next == "A"
    assert turn.round == 2
    assert "timeout" in turn.content


async def test_judge_reply_is_classified_from_response_content(sample_prompts_config):
    provider = MockProvider("Mod")
    provider.generate = AsyncMock(
        return_value=ModelResponse("Mod", "m", "NO_CONSENSUS: A and C disagree.", 0.1, 5)
    )
    verdict = await judge(provider, _state(3, 2), sample_prompts_config)
    assert verdict == Verdict(consensus=False, summary="A and C disagree.")
