"""
Session Coordinator - single-writer guard around schedule mutations.

The engine is pure; whoever serves it must make sure only one mutation per
session is in flight and that each mutation starts from the schedule the
caller last saw. The coordinator enforces both:

- every mutation names the `expected_version` it was computed against;
  a stale version raises ConcurrentModification
- a mutation arriving while another one for the same session is running
  raises ConcurrentModification instead of waiting
- after each mutation the invariant checker runs; a failing schedule is
  rejected and the stored state is left as it was
- once a session is finished it is read-only

State lives in process memory only. Storing it is the caller's concern.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from courtside.config import SchedulerSettings, get_settings
from courtside.models.court import Court
from courtside.models.player import Attendance, Player
from courtside.models.schedule import SessionSchedule, SessionWindow
from courtside.services import attendance as attendance_service
from courtside.services import manual_edits, schedule_engine, scoring
from courtside.services.errors import (
    ConcurrentModification,
    ScheduleInvariantError,
    SessionFinished,
    SessionNotFound,
)
from courtside.services.schedule_invariants import check_schedule_invariants
from courtside.utils.courts import virtual_court

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    session: SessionWindow
    attendance: Tuple[Attendance, ...] = ()
    courts: Tuple[Court, ...] = ()
    players: Tuple[Player, ...] = ()
    schedule: Optional[SessionSchedule] = None
    version: int = 0
    finished_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None


class SessionCoordinator:
    """Holds the current state of each session and serializes its mutations"""

    def __init__(self, settings: Optional[SchedulerSettings] = None):
        self.settings = settings or get_settings()
        self._states: Dict[str, SessionState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def open_session(
        self,
        session: SessionWindow,
        attendance: Sequence[Attendance] = (),
        courts: Sequence[Court] = (),
        players: Sequence[Player] = (),
    ) -> SessionState:
        schedule_engine.validate_session_window(session)
        state = SessionState(
            session=session,
            attendance=tuple(attendance),
            courts=tuple(courts),
            players=tuple(players),
        )
        with self._registry_lock:
            self._states[session.session_id] = state
            self._locks.setdefault(session.session_id, threading.Lock())
        return state

    def get(self, session_id: str) -> SessionState:
        state = self._states.get(session_id)
        if state is None:
            raise SessionNotFound(f"Session {session_id} not found", {"session_id": session_id})
        return state

    def finished_sessions(self) -> List[SessionState]:
        """Finished sessions, most recently finished first."""
        finished = [s for s in self._states.values() if s.is_finished]
        return sorted(finished, key=lambda s: (s.finished_at, s.session.session_id), reverse=True)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @contextmanager
    def _mutation(self, session_id: str, expected_version: int) -> Iterator[SessionState]:
        lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFound(f"Session {session_id} not found", {"session_id": session_id})
        if not lock.acquire(blocking=False):
            logger.warning("Rejected overlapping mutation on session %s", session_id)
            raise ConcurrentModification(
                f"Another change to session {session_id} is in progress; reload and retry",
                {"session_id": session_id},
            )
        try:
            state = self.get(session_id)
            if state.version != expected_version:
                logger.warning(
                    "Stale mutation on session %s: expected version %d, current %d",
                    session_id,
                    expected_version,
                    state.version,
                )
                raise ConcurrentModification(
                    f"Session {session_id} changed since version {expected_version}; reload and retry",
                    {"session_id": session_id, "expected_version": expected_version, "current_version": state.version},
                )
            if state.is_finished:
                raise SessionFinished(
                    f"Session {session_id} is finished and can no longer change",
                    {"session_id": session_id, "finished_at": state.finished_at.isoformat()},
                )
            yield state
        finally:
            lock.release()

    def _commit(self, state: SessionState, **changes) -> SessionState:
        new_state = replace(state, version=state.version + 1, **changes)
        if new_state.schedule is not None:
            report = check_schedule_invariants(
                new_state.schedule,
                new_state.attendance,
                self._invariant_courts(new_state),
            )
            if not report.ok:
                logger.error(
                    "Session %s mutation rejected: %s", state.session.session_id, ", ".join(report.codes())
                )
                raise ScheduleInvariantError("Schedule failed invariant checks", report)
        self._states[state.session.session_id] = new_state
        logger.info("Session %s committed version %d", state.session.session_id, new_state.version)
        return new_state

    def _require_schedule(self, state: SessionState) -> SessionSchedule:
        if state.schedule is None:
            raise SessionNotFound(
                f"Session {state.session.session_id} has no schedule yet",
                {"session_id": state.session.session_id},
            )
        return state.schedule

    def _courts_for_edits(self, state: SessionState):
        return schedule_engine.resolve_courts(state.session, state.courts, self.settings)

    def _invariant_courts(self, state: SessionState) -> Optional[List[Court]]:
        """Session courts, plus the virtual court when it may host matches."""
        courts = list(state.courts)
        if self.settings.allow_virtual_court and all(c.id != self.settings.virtual_court_id for c in courts):
            courts.append(virtual_court(state.session, self.settings.virtual_court_id))
        return courts or None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def generate(self, session_id: str, expected_version: int) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = schedule_engine.generate_schedule(
                state.session, state.attendance, state.courts, state.players, self.settings
            )
            return self._commit(state, schedule=schedule)

    def regenerate(self, session_id: str, expected_version: int) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = schedule_engine.regenerate_remaining(
                self._require_schedule(state), state.attendance, state.courts, state.players, self.settings
            )
            return self._commit(state, schedule=schedule)

    def player_arrived(
        self,
        session_id: str,
        expected_version: int,
        player: Player,
        arrive_at: datetime,
        leave_at: datetime,
    ) -> SessionState:
        """Record a (late) arrival and, if a schedule exists, regenerate the open rounds."""
        with self._mutation(session_id, expected_version) as state:
            attendance = attendance_service.record_late_arrival(state.attendance, player.id, arrive_at, leave_at)
            players = tuple(p for p in state.players if p.id != player.id) + (player,)
            schedule = state.schedule
            if schedule is not None:
                schedule = schedule_engine.regenerate_remaining(
                    schedule, attendance, state.courts, players, self.settings
                )
            return self._commit(state, attendance=tuple(attendance), players=players, schedule=schedule)

    def player_departed(self, session_id: str, expected_version: int, player_id: str, leave_at: datetime) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            attendance = attendance_service.record_departure(state.attendance, player_id, leave_at)
            schedule = state.schedule
            if schedule is not None:
                schedule = schedule_engine.regenerate_remaining(
                    schedule, attendance, state.courts, state.players, self.settings
                )
            return self._commit(state, attendance=tuple(attendance), schedule=schedule)

    def remove_player(self, session_id: str, expected_version: int, player_id: str) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule, attendance = attendance_service.remove_player(
                self._require_schedule(state), state.attendance, state.courts, player_id, state.players, self.settings
            )
            return self._commit(state, schedule=schedule, attendance=tuple(attendance))

    def add_court(self, session_id: str, expected_version: int, court: Court) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            courts = attendance_service.add_court(state.courts, court)
            return self._commit(state, courts=tuple(courts))

    def insert_manual_match(
        self,
        session_id: str,
        expected_version: int,
        team_a: Sequence[str],
        team_b: Sequence[str],
        court_id: str,
        round_index: Optional[int] = None,
    ) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = manual_edits.insert_manual_match(
                self._require_schedule(state),
                state.attendance,
                self._courts_for_edits(state),
                team_a,
                team_b,
                court_id,
                round_index=round_index,
                players=state.players,
            )
            return self._commit(state, schedule=schedule)

    def swap_player(
        self,
        session_id: str,
        expected_version: int,
        round_index: int,
        assignment_id: str,
        player_out: str,
        player_in: str,
    ) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = manual_edits.swap_player(
                self._require_schedule(state),
                state.attendance,
                round_index,
                assignment_id,
                player_out,
                player_in,
                players=state.players,
            )
            return self._commit(state, schedule=schedule)

    def record_score(
        self,
        session_id: str,
        expected_version: int,
        assignment_id: str,
        team_a_score,
        team_b_score,
    ) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = scoring.record_score(self._require_schedule(state), assignment_id, team_a_score, team_b_score)
            return self._commit(state, schedule=schedule)

    def delete_assignment(self, session_id: str, expected_version: int, assignment_id: str) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = manual_edits.delete_assignment(
                self._require_schedule(state), assignment_id, self._courts_for_edits(state)
            )
            return self._commit(state, schedule=schedule)

    def delete_round(self, session_id: str, expected_version: int, round_index: int) -> SessionState:
        with self._mutation(session_id, expected_version) as state:
            schedule = manual_edits.delete_round(
                self._require_schedule(state), round_index, self._courts_for_edits(state)
            )
            return self._commit(state, schedule=schedule)

    def finish(self, session_id: str, expected_version: int, finished_at: Optional[datetime] = None) -> SessionState:
        """Close the session; every later mutation raises SessionFinished."""
        with self._mutation(session_id, expected_version) as state:
            finished_at = finished_at or datetime.now()
            logger.info("Session %s finished at %s", session_id, finished_at.isoformat())
            return self._commit(state, finished_at=finished_at)
