from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CommandName = Literal["start_game", "request_results", "next_round", "show_scoreboard", "play_again"]


class SessionPhase(StrEnum):
    idle = "idle"
    countdown = "countdown"
    analyzing = "analyzing"
    results_pending = "results_pending"
    showing_results = "showing_results"
    scoreboard = "scoreboard"


class WireModel(BaseModel):
    """Outbound frames use camelCase keys on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def frame(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ClientCommand(BaseModel):
    """Inbound frame: a `type` plus whatever auxiliary payload the client sent."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1)


class LatLng(WireModel):
    lat: float
    lng: float


class GameStarting(WireModel):
    type: Literal["game_starting"] = "game_starting"


class Countdown(WireModel):
    type: Literal["countdown"] = "countdown"
    count: int


class RoundStart(WireModel):
    type: Literal["round_start"] = "round_start"
    round: int
    total_rounds: int
    photo: str
    # Withheld until results; kept on the wire as null for client compatibility.
    location_name: str | None = None


class AiStream(WireModel):
    type: Literal["ai_stream"] = "ai_stream"
    agent: str
    text: str
    done: bool
    guess: LatLng | None = None
    confidence: int | None = None

    def frame(self) -> dict[str, Any]:
        # guess/confidence only ride on the terminal chunk.
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AnalysisComplete(WireModel):
    type: Literal["analysis_complete"] = "analysis_complete"


class AgentResult(WireModel):
    agent_id: str
    name: str
    color: str
    guess: LatLng | None
    distance: int | None


class LeaderboardEntry(WireModel):
    id: str
    name: str
    color: str
    total_distance: int
    round_wins: int


class RoundResults(WireModel):
    type: Literal["round_results"] = "round_results"
    round: int
    total_rounds: int
    results: list[AgentResult]
    actual_location: LatLng
    location_name: str
    is_last_round: bool
    leaderboard: list[LeaderboardEntry]
    # None when the round's best distance is tied.
    round_winner: str | None = None


class FinalScoreboard(WireModel):
    type: Literal["final_scoreboard"] = "final_scoreboard"
    leaderboard: list[LeaderboardEntry]


class GameReset(WireModel):
    type: Literal["game_reset"] = "game_reset"


class HealthResponse(BaseModel):
    status: str


class SampleRound(BaseModel):
    id: str
    name: str
    image: str
    lat: float
    lng: float
    difficulty: str
