from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from mapmind.core.geo import Coordinate, haversine_km, round_km


@dataclass(frozen=True, slots=True)
class ScoredGuess:
    agent_id: str
    guess: Coordinate
    distance_km: int


@dataclass(frozen=True, slots=True)
class Standing:
    agent_id: str
    total_distance: int
    round_wins: int


def score_guess(*, agent_id: str, guess: Coordinate, actual: Coordinate) -> ScoredGuess:
    return ScoredGuess(agent_id=agent_id, guess=guess, distance_km=round_km(haversine_km(guess, actual)))


def rank_round(scored: Sequence[ScoredGuess]) -> list[ScoredGuess]:
    """Order one round's guesses closest-first.

    `sorted` is stable, so equal distances keep the caller's (agent enumeration) order.
    """

    return sorted(scored, key=lambda s: s.distance_km)


def round_winner(ranked: Sequence[ScoredGuess]) -> str | None:
    """Return the agent id with the strictly lowest distance, or None on a tie for first."""

    if not ranked:
        return None
    if len(ranked) > 1 and ranked[1].distance_km == ranked[0].distance_km:
        return None
    return ranked[0].agent_id


def build_leaderboard(
    *,
    agent_ids: Sequence[str],
    total_distance: Mapping[str, int],
    round_wins: Mapping[str, int],
) -> list[Standing]:
    """Rank agents by cumulative distance, ascending; enumeration order breaks ties."""

    standings = [
        Standing(
            agent_id=aid,
            total_distance=total_distance.get(aid, 0),
            round_wins=round_wins.get(aid, 0),
        )
        for aid in agent_ids
    ]
    return sorted(standings, key=lambda s: s.total_distance)
