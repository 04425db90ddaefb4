from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from mapmind.api.models import SessionPhase
from mapmind.session import Session


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    viewer_id: str
    command: str


class CommandValidator(ABC):
    """A small, composable precondition check for an inbound command."""

    @abstractmethod
    def validate(self, *, ctx: CommandContext, session: Session | None) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class SessionRequiredValidator(CommandValidator):
    """Most commands only make sense once `start_game` has created a session."""

    def validate(self, *, ctx: CommandContext, session: Session | None) -> None:
        if session is None or session.closed:
            raise ValueError(f"Command '{ctx.command}' requires a running game")


@dataclass(frozen=True, slots=True)
class PhaseValidator(CommandValidator):
    """Validates the current session phase for a given command."""

    allowed_phases: set[SessionPhase]

    def validate(self, *, ctx: CommandContext, session: Session | None) -> None:
        if session is None:
            raise ValueError(f"Command '{ctx.command}' requires a running game")
        if session.phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise ValueError(
                f"Command '{ctx.command}' not allowed in phase '{session.phase.value}' (allowed: {allowed})"
            )


@dataclass(frozen=True, slots=True)
class PendingResultsValidator(CommandValidator):
    """Results can only be requested while a finished round is waiting to be revealed."""

    def validate(self, *, ctx: CommandContext, session: Session | None) -> None:
        if session is None or session.pending is None:
            raise ValueError("No round results pending")


@dataclass(frozen=True, slots=True)
class RoundsRemainingValidator(CommandValidator):
    def validate(self, *, ctx: CommandContext, session: Session | None) -> None:
        if session is None:
            raise ValueError(f"Command '{ctx.command}' requires a running game")
        if session.round_index >= session.total_rounds:
            raise ValueError(f"All {session.total_rounds} rounds have been played")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[CommandValidator, ...]

    def validate(self, *, ctx: CommandContext, session: Session | None) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, session=session)


# start_game and play_again always allocate a fresh session, so they have no preconditions.
# show_scoreboard answers at any time; without a game the leaderboard is all zeros.
DEFAULT_COMMAND_PIPELINES: dict[str, ValidatorPipeline] = {
    "start_game": ValidatorPipeline(validators=()),
    "request_results": ValidatorPipeline(
        validators=(
            SessionRequiredValidator(),
            PendingResultsValidator(),
        )
    ),
    "next_round": ValidatorPipeline(
        validators=(
            SessionRequiredValidator(),
            PhaseValidator(allowed_phases={SessionPhase.showing_results}),
            RoundsRemainingValidator(),
        )
    ),
    "show_scoreboard": ValidatorPipeline(validators=()),
    "play_again": ValidatorPipeline(validators=()),
}


def pipeline_for_command(command: str) -> ValidatorPipeline:
    pipe = DEFAULT_COMMAND_PIPELINES.get(command)
    if pipe is None:
        raise ValueError(f"Unknown command: {command}")
    return pipe
