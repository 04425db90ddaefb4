from __future__ import annotations

import asyncio
import json

import pytest

from mapmind.api.models import SessionPhase
from mapmind.connection import ViewerConnection
from mapmind.dispatcher import ProtocolDispatcher, parse_command
from mapmind.rounds.singleton import get_rounds


@pytest.fixture()
def dispatcher(sink, fixed_provider, fast_settings) -> ProtocolDispatcher:
    return ProtocolDispatcher(
        connection=ViewerConnection(sink),
        deck=get_rounds(),
        settings=fast_settings,
        provider_factory=lambda **_: fixed_provider,
    )


def _cmd(kind: str, **extra: object) -> str:
    return json.dumps({"type": kind, **extra})


@pytest.mark.parametrize(
    "raw",
    ["not json", "[1, 2]", '{"kind": "start_game"}', '{"type": 5}', '{"type": ""}'],
)
def test_parse_command_rejects_malformed(raw: str | bytes) -> None:
    assert parse_command(raw) is None


def test_parse_command_keeps_extra_payload() -> None:
    cmd = parse_command('{"type": "start_game", "mode": "demo"}')
    assert cmd is not None
    assert cmd.type == "start_game"
    assert cmd.model_extra == {"mode": "demo"}


async def test_malformed_and_unknown_frames_are_ignored(dispatcher, sink) -> None:
    await dispatcher.handle("not json")
    await dispatcher.handle(_cmd("launch_missiles"))
    await dispatcher.handle(_cmd("request_results"))
    await dispatcher.handle(_cmd("next_round"))

    assert sink.frames == []
    assert dispatcher.session is None


async def test_handlers_without_a_game_raise_value_error(dispatcher) -> None:
    with pytest.raises(ValueError):
        await dispatcher._request_results()
    with pytest.raises(ValueError):
        await dispatcher._next_round()


async def test_scoreboard_before_any_game_is_all_zeros(dispatcher, sink) -> None:
    await dispatcher.handle(_cmd("show_scoreboard"))

    assert dispatcher.session is None
    assert sink.frames == [
        {
            "type": "final_scoreboard",
            "leaderboard": [
                {"id": "atlas", "name": "Atlas", "color": "#4f8cff", "totalDistance": 0, "roundWins": 0},
                {"id": "nova", "name": "Nova", "color": "#ff5fa2", "totalDistance": 0, "roundWins": 0},
            ],
        }
    ]


async def test_invalid_command_for_phase_is_a_noop(dispatcher, sink, wait_until) -> None:
    await dispatcher.handle(_cmd("start_game"))
    session = dispatcher.session
    assert session is not None
    await wait_until(lambda: session.phase == SessionPhase.analyzing)

    before = len(sink.frames)
    await dispatcher.handle(_cmd("next_round"))
    assert session.round_index == 1

    await wait_until(lambda: session.phase == SessionPhase.results_pending)
    # Everything emitted since was stream traffic, nothing from next_round.
    assert {f["type"] for f in sink.frames[before:]} <= {"ai_stream", "analysis_complete"}

    await dispatcher.close()


async def test_next_round_after_last_round_is_silent(dispatcher, sink, fast_settings, wait_until) -> None:
    await dispatcher.handle(_cmd("start_game"))
    session = dispatcher.session
    assert session is not None

    for n in range(1, fast_settings.max_rounds + 1):
        await wait_until(lambda: session.phase == SessionPhase.results_pending)
        await dispatcher.handle(_cmd("request_results"))
        if n < fast_settings.max_rounds:
            await dispatcher.handle(_cmd("next_round"))

    frames_before = len(sink.frames)
    totals_before = dict(session.total_distance)
    await dispatcher.handle(_cmd("next_round"))
    await asyncio.sleep(0.02)

    assert len(sink.frames) == frames_before
    assert session.round_index == session.total_rounds
    assert session.total_distance == totals_before
    assert session.phase == SessionPhase.showing_results

    await dispatcher.handle(_cmd("show_scoreboard"))
    assert sink.frames[-1]["type"] == "final_scoreboard"
    assert sum(session.round_wins.values()) + session.tied_rounds == 5

    await dispatcher.close()


async def test_request_results_twice_only_scores_once(dispatcher, sink, wait_until) -> None:
    await dispatcher.handle(_cmd("start_game"))
    session = dispatcher.session
    assert session is not None
    await wait_until(lambda: session.phase == SessionPhase.results_pending)

    await dispatcher.handle(_cmd("request_results"))
    totals = dict(session.total_distance)
    await dispatcher.handle(_cmd("request_results"))

    assert len(sink.of_type("round_results")) == 1
    assert session.total_distance == totals

    await dispatcher.close()


async def test_play_again_resets_everything(dispatcher, sink, wait_until) -> None:
    await dispatcher.handle(_cmd("start_game"))
    old = dispatcher.session
    assert old is not None
    await wait_until(lambda: old.phase == SessionPhase.results_pending)
    await dispatcher.handle(_cmd("request_results"))
    assert sum(old.total_distance.values()) > 0

    await dispatcher.handle(_cmd("play_again"))

    assert old.closed
    assert len(old.timers) == 0
    new = dispatcher.session
    assert new is not None and new is not old
    assert new.phase == SessionPhase.idle
    assert new.round_index == 0
    assert new.total_distance == {"atlas": 0, "nova": 0}
    assert new.round_wins == {"atlas": 0, "nova": 0}
    assert sink.frames[-1] == {"type": "game_reset"}

    await dispatcher.close()


async def test_start_game_mid_round_restarts(dispatcher, sink, wait_until) -> None:
    await dispatcher.handle(_cmd("start_game"))
    first = dispatcher.session
    assert first is not None
    await wait_until(lambda: first.phase == SessionPhase.analyzing)

    await dispatcher.handle(_cmd("start_game"))
    assert first.closed
    second = dispatcher.session
    assert second is not None and second is not first
    assert second.phase in {SessionPhase.countdown, SessionPhase.analyzing}

    await dispatcher.close()
    assert second.closed
    assert dispatcher.session is None


async def test_close_stops_all_output(dispatcher, sink) -> None:
    await dispatcher.handle(_cmd("start_game"))
    await dispatcher.close()

    sent = len(sink.frames)
    await asyncio.sleep(0.05)
    assert len(sink.frames) == sent
    assert not dispatcher.connection.open
