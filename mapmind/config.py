from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

ProviderName = Literal["scripted", "external"]

_PROVIDERS: frozenset[str] = frozenset({"scripted", "external"})


@dataclass(frozen=True, slots=True)
class GameSettings:
    # Upper bound on rounds per game; the deck may supply fewer.
    max_rounds: int = 5
    # Seconds between countdown ticks (3, 2, 1).
    countdown_interval: float = 1.0
    # Base stream tick period; each agent profile scales it.
    stream_period: float = 0.9
    # Start offset for the staggered agent.
    stream_stagger: float = 0.45
    reasoning_provider: ProviderName = "scripted"
    # Fixed seed for deck shuffling and guess noise. None = fresh randomness per session.
    seed: int | None = None
    log_level: str = "INFO"


def _env_int(name: str, default: int, *, minimum: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_seconds(name: str, default: float, *, positive: bool = False) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from e
    if value < 0 or (positive and value == 0):
        bound = "> 0" if positive else ">= 0"
        raise RuntimeError(f"{name} must be {bound}, got {value}")
    return value


def settings_from_env() -> GameSettings:
    provider = os.environ.get("MAPMIND_REASONING_PROVIDER", "scripted").strip().lower()
    if provider not in _PROVIDERS:
        allowed = ",".join(sorted(_PROVIDERS))
        raise RuntimeError(f"MAPMIND_REASONING_PROVIDER must be one of {allowed}, got {provider!r}")

    seed_raw = os.environ.get("MAPMIND_SEED", "").strip()
    seed = _env_int("MAPMIND_SEED", 0, minimum=0) if seed_raw else None

    return GameSettings(
        max_rounds=_env_int("MAPMIND_ROUNDS", 5, minimum=1),
        countdown_interval=_env_seconds("MAPMIND_COUNTDOWN_SEC", 1.0),
        stream_period=_env_seconds("MAPMIND_STREAM_PERIOD_SEC", 0.9, positive=True),
        stream_stagger=_env_seconds("MAPMIND_STREAM_STAGGER_SEC", 0.45),
        reasoning_provider=provider,  # type: ignore[arg-type]
        seed=seed,
        log_level=os.environ.get("MAPMIND_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
