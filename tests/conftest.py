from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from mapmind.agents.base import AgentVerdict
from mapmind.agents.profiles import AgentProfile
from mapmind.config import GameSettings
from mapmind.core.geo import Coordinate
from mapmind.rounds.registry import RoundRecord


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (PyCharm/CLI).

    This makes OPENAI_BASE_URL / OPENAI_MODEL available to tests without needing
    to manually export them in your shell.

    In CI, we *don't* auto-load `.env` by default, so integration tests that require
    a live model endpoint stay skipped unless explicitly opted-in.
    """

    # Opt-in locally with: MAPMIND_LOAD_DOTENV_FOR_TESTS=1
    if os.environ.get("CI") and os.environ.get("MAPMIND_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)

    # If using a local OpenAI-compatible endpoint, some clients require a key string.
    if os.environ.get("OPENAI_BASE_URL") and not os.environ.get("OPENAI_API_KEY"):
        os.environ["OPENAI_API_KEY"] = "ollama"


@pytest.fixture(scope="session", autouse=True)
def _init_rounds_from_test_fixtures() -> None:
    """Initialize the round deck from `tests/assets` and forbid production asset loading.

    This keeps tests hermetic and prevents coupling to the repo's real round deck.
    """

    os.environ["MAPMIND_STRICT_ASSETS"] = "1"

    from mapmind.rounds.singleton import init_rounds, reset_rounds_for_tests

    reset_rounds_for_tests()

    # Point the loader at a fake project root: tests/ contains an assets/ dir.
    test_root = Path(__file__).resolve().parent
    init_rounds(project_root=test_root)


# Fast enough that a five-round game finishes in well under a second.
FAST_SETTINGS = GameSettings(
    max_rounds=5,
    countdown_interval=0.0,
    stream_period=0.002,
    stream_stagger=0.001,
    seed=7,
)


@pytest.fixture()
def fast_settings() -> GameSettings:
    return FAST_SETTINGS


@dataclass
class RecordingSink:
    """Stands in for a WebSocket: keeps every frame that would have been sent."""

    frames: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False

    async def send_json(self, data: Any, mode: str = "text") -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.frames.append(data)

    def of_type(self, kind: str) -> list[dict[str, Any]]:
        return [f for f in self.frames if f.get("type") == kind]


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@dataclass
class FixedProvider:
    """Deterministic reasoning: `steps` fragments, then a guess offset from the true location."""

    steps: int = 2
    offsets: dict[str, tuple[float, float]] = field(default_factory=dict)
    confidence: int = 70
    name: str = "fixed"
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def next_fragment(self, *, agent: AgentProfile, record: RoundRecord, step: int) -> str | None:
        if step >= self.steps:
            return None
        return f"{agent.id}-{step} "

    async def final_guess(self, *, agent: AgentProfile, record: RoundRecord) -> AgentVerdict:
        self.calls.append((agent.id, record.id))
        dlat, dlng = self.offsets.get(agent.id, (0.0, 0.0))
        return AgentVerdict(
            guess=Coordinate(lat=record.lat + dlat, lng=record.lng + dlng),
            confidence=self.confidence,
        )


@pytest.fixture()
def fixed_provider() -> FixedProvider:
    return FixedProvider(offsets={"atlas": (0.1, 0.0), "nova": (1.0, 0.0)})


@pytest.fixture()
def client():
    """FastAPI TestClient with fast game timings injected into the WebSocket route."""

    from fastapi.testclient import TestClient

    from mapmind.api.deps import get_settings
    from mapmind.main import app

    app.dependency_overrides[get_settings] = lambda: FAST_SETTINGS
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


async def _wait_until(pred: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not pred():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture()
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a predicate on the running loop until it holds (or fail after `timeout` seconds)."""

    return _wait_until


@pytest.fixture()
def round_by_id() -> Callable[[str], RoundRecord]:
    """Look up a record in the fixture deck by id."""

    from mapmind.rounds.singleton import get_rounds

    def _get(round_id: str) -> RoundRecord:
        return next(r for r in get_rounds().records if r.id == round_id)

    return _get
