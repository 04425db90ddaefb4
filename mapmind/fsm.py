from __future__ import annotations

from typing import TYPE_CHECKING

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from mapmind.api.models import SessionPhase

if TYPE_CHECKING:
    from mapmind.session import Session


class RoundFSM(StateMachine):
    """FSM wrapper around a Session's lifecycle phase.

    idle -> countdown -> analyzing -> results_pending -> showing_results -> (analyzing | scoreboard)

    The session applies the actual mutations; the FSM only guards transitions.
    `play_again` is not a transition: it replaces the session, which starts over in idle.
    """

    idle = State(SessionPhase.idle.value, value=SessionPhase.idle.value, initial=True)
    countdown = State(SessionPhase.countdown.value, value=SessionPhase.countdown.value)
    analyzing = State(SessionPhase.analyzing.value, value=SessionPhase.analyzing.value)
    results_pending = State(SessionPhase.results_pending.value, value=SessionPhase.results_pending.value)
    showing_results = State(SessionPhase.showing_results.value, value=SessionPhase.showing_results.value)
    scoreboard = State(SessionPhase.scoreboard.value, value=SessionPhase.scoreboard.value, final=True)

    start_countdown = idle.to(countdown)
    begin_round = countdown.to(analyzing) | showing_results.to(analyzing)
    analysis_done = analyzing.to(results_pending)
    reveal_results = results_pending.to(showing_results)
    open_scoreboard = showing_results.to(scoreboard)

    def __init__(self, session: "Session"):
        self.session = session
        super().__init__(start_value=session.phase.value)

    def sync_phase_to_model(self) -> None:
        self.session.phase = SessionPhase(str(self.current_state.value))

    def advance(self, event: str) -> None:
        """Fire `event` and mirror the new phase onto the session.

        Raises ValueError if the event is not allowed from the current phase.
        """

        try:
            self.send(event)
        except TransitionNotAllowed as e:
            raise ValueError(f"'{event}' not allowed in phase '{self.session.phase.value}'") from e
        self.sync_phase_to_model()
