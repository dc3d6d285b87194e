from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple


class RoundStatus(str, Enum):
    LOCKED = "LOCKED"
    OPEN = "OPEN"


# Round-level shortfall codes (reported, never raised)
SHORTFALL_INSUFFICIENT_PLAYERS = "INSUFFICIENT_PLAYERS"
SHORTFALL_NO_COURTS_AVAILABLE = "NO_COURTS_AVAILABLE"


@dataclass(frozen=True)
class SessionWindow:
    session_id: str
    start: datetime
    end: datetime
    round_minutes: int

    @property
    def round_length(self) -> timedelta:
        return timedelta(minutes=self.round_minutes)


@dataclass(frozen=True)
class Round:
    round_index: int
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class Score:
    team_a_score: int
    team_b_score: int


@dataclass(frozen=True)
class Assignment:
    id: str
    round_index: int
    court_id: str
    team_a: Tuple[str, str]
    team_b: Tuple[str, str]
    score: Optional[Score] = None
    manual: bool = False
    locked: bool = False

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return self.team_a + self.team_b

    @property
    def is_locking(self) -> bool:
        """True when this assignment pins its round against regeneration."""
        return self.locked or self.manual or self.score is not None


def assignment_id_for(session_id: str, round_index: int, court_id: str) -> str:
    return f"{session_id}:{round_index}:{court_id}"


@dataclass(frozen=True)
class RoundPlan:
    round: Round
    assignments: Tuple[Assignment, ...] = ()
    resting: Tuple[str, ...] = ()
    shortfall: Optional[str] = None

    @property
    def round_index(self) -> int:
        return self.round.round_index

    @property
    def status(self) -> RoundStatus:
        if any(a.is_locking for a in self.assignments):
            return RoundStatus.LOCKED
        return RoundStatus.OPEN

    @property
    def is_locked(self) -> bool:
        return self.status is RoundStatus.LOCKED

    @property
    def has_score(self) -> bool:
        return any(a.score is not None for a in self.assignments)

    def assigned_player_ids(self) -> set:
        return {pid for a in self.assignments for pid in a.player_ids}

    def occupied_court_ids(self) -> set:
        return {a.court_id for a in self.assignments}


@dataclass(frozen=True)
class SessionSchedule:
    session: SessionWindow
    rounds: Tuple[RoundPlan, ...] = ()

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def locked_indices(self) -> Tuple[int, ...]:
        return tuple(p.round_index for p in self.rounds if p.is_locked)

    def round_plan(self, round_index: int) -> Optional[RoundPlan]:
        for plan in self.rounds:
            if plan.round_index == round_index:
                return plan
        return None

    def find_assignment(self, assignment_id: str) -> Optional[Tuple[RoundPlan, Assignment]]:
        for plan in self.rounds:
            for assignment in plan.assignments:
                if assignment.id == assignment_id:
                    return plan, assignment
        return None

    def with_round(self, new_plan: RoundPlan) -> "SessionSchedule":
        """Copy of this schedule with one round plan swapped out."""
        rounds = tuple(
            new_plan if plan.round_index == new_plan.round_index else plan
            for plan in self.rounds
        )
        return replace(self, rounds=rounds)
