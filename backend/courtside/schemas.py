"""
Boundary schemas for the session schedule contract.

Input models validate what callers send and convert it to engine types
(ratings are normalized here, once). Output models mirror the shape that
rendering, scoring and export collaborators consume:

    SessionSchedule { sessionId, rounds: RoundPlan[] }
    RoundPlan { roundIndex, startTime, endTime, assignments: RoundAssignment[] }
    RoundAssignment { courtId, teamA: [id, id], teamB: [id, id], resting: [id] }
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from courtside.config import DEFAULT_RATING, RATING_SCALE
from courtside.models import (
    Assignment,
    Attendance,
    Court,
    Player,
    Round,
    RoundPlan,
    Score,
    SessionSchedule,
    SessionWindow,
)
from courtside.utils.ratings import normalize_rating
from courtside.utils.time_windows import minutes_between


class _ContractModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Inputs
# ============================================================================


class PlayerIn(_ContractModel):
    id: str
    display_name: str = Field(alias="displayName")
    rating: Optional[float] = None
    rating_scale: float = Field(default=RATING_SCALE, alias="ratingScale")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v):
        if v is not None and v < 0:
            raise ValueError("rating must be >= 0")
        return v

    def to_domain(self, default_rating: float = DEFAULT_RATING) -> Player:
        return Player(
            id=self.id,
            display_name=self.display_name,
            rating=normalize_rating(self.rating, self.rating_scale, default_rating),
            is_active=self.is_active,
        )


class AttendanceIn(_ContractModel):
    player_id: str = Field(alias="playerId")
    arrive_at: datetime = Field(alias="arriveAt")
    leave_at: datetime = Field(alias="leaveAt")

    @model_validator(mode="after")
    def validate_window(self):
        if self.leave_at <= self.arrive_at:
            raise ValueError("leaveAt must be after arriveAt")
        return self

    def to_domain(self) -> Attendance:
        return Attendance(player_id=self.player_id, arrive_at=self.arrive_at, leave_at=self.leave_at)


class CourtIn(_ContractModel):
    id: str
    court_name: str = Field(alias="courtName")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")

    @model_validator(mode="after")
    def validate_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self

    def to_domain(self) -> Court:
        return Court(id=self.id, court_name=self.court_name, start_time=self.start_time, end_time=self.end_time)


class SessionIn(_ContractModel):
    id: str
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    round_minutes: int = Field(alias="roundMinutes")

    @field_validator("round_minutes")
    @classmethod
    def validate_round_minutes(cls, v):
        if v <= 0:
            raise ValueError("roundMinutes must be > 0")
        return v

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self

    def to_domain(self) -> SessionWindow:
        return SessionWindow(
            session_id=self.id,
            start=self.start_time,
            end=self.end_time,
            round_minutes=self.round_minutes,
        )


class ManualMatchIn(_ContractModel):
    team_a_player1_id: str = Field(alias="teamAPlayer1Id")
    team_a_player2_id: str = Field(alias="teamAPlayer2Id")
    team_b_player1_id: str = Field(alias="teamBPlayer1Id")
    team_b_player2_id: str = Field(alias="teamBPlayer2Id")
    court_id: str = Field(alias="courtId")
    round_index: Optional[int] = Field(default=None, alias="roundIndex")

    @model_validator(mode="after")
    def validate_distinct(self):
        if len({*self.team_a, *self.team_b}) < 4:
            raise ValueError("Each player must be unique")
        return self

    @property
    def team_a(self) -> List[str]:
        return [self.team_a_player1_id, self.team_a_player2_id]

    @property
    def team_b(self) -> List[str]:
        return [self.team_b_player1_id, self.team_b_player2_id]


class SwapIn(_ContractModel):
    round_index: int = Field(alias="roundIndex")
    assignment_id: str = Field(alias="assignmentId")
    player_out: str = Field(alias="playerOut")
    player_in: str = Field(alias="playerIn")

    @model_validator(mode="after")
    def validate_players(self):
        if self.player_out == self.player_in:
            raise ValueError("Players must be different")
        return self


class ScoreIn(_ContractModel):
    team_a_score: int = Field(alias="teamAScore")
    team_b_score: int = Field(alias="teamBScore")

    @field_validator("team_a_score", "team_b_score")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("scores must be >= 0")
        return v


# ============================================================================
# Outputs
# ============================================================================


class ScoreOut(_ContractModel):
    team_a_score: int = Field(alias="teamAScore")
    team_b_score: int = Field(alias="teamBScore")


class RoundAssignmentOut(_ContractModel):
    id: str
    court_id: str = Field(alias="courtId")
    team_a: List[str] = Field(alias="teamA")
    team_b: List[str] = Field(alias="teamB")
    resting: List[str] = Field(default_factory=list)
    score: Optional[ScoreOut] = None
    manual: bool = False
    locked: bool = False


class RoundPlanOut(_ContractModel):
    round_index: int = Field(alias="roundIndex")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    assignments: List[RoundAssignmentOut] = Field(default_factory=list)
    resting: List[str] = Field(default_factory=list)
    locked: bool = False
    shortfall: Optional[str] = None


class SessionScheduleOut(_ContractModel):
    session_id: str = Field(alias="sessionId")
    rounds: List[RoundPlanOut] = Field(default_factory=list)


def schedule_to_contract(schedule: SessionSchedule) -> SessionScheduleOut:
    rounds = []
    for plan in schedule.rounds:
        resting = list(plan.resting)
        assignments = [
            RoundAssignmentOut(
                id=a.id,
                court_id=a.court_id,
                team_a=list(a.team_a),
                team_b=list(a.team_b),
                resting=resting,
                score=(
                    ScoreOut(team_a_score=a.score.team_a_score, team_b_score=a.score.team_b_score)
                    if a.score is not None
                    else None
                ),
                manual=a.manual,
                locked=a.locked,
            )
            for a in plan.assignments
        ]
        rounds.append(RoundPlanOut(
            round_index=plan.round_index,
            start_time=plan.round.start_time,
            end_time=plan.round.end_time,
            assignments=assignments,
            resting=resting,
            locked=plan.is_locked,
            shortfall=plan.shortfall,
        ))
    return SessionScheduleOut(session_id=schedule.session_id, rounds=rounds)


def schedule_to_dict(schedule: SessionSchedule) -> dict:
    return schedule_to_contract(schedule).model_dump(by_alias=True, mode="json")


def schedule_from_contract(payload: SessionScheduleOut, session: Optional[SessionWindow] = None) -> SessionSchedule:
    """
    Rebuild an engine schedule from its stored contract shape.

    Without an explicit session window it is derived from the rounds: the
    first round start, the last round end and the first round's length.
    """
    if session is None:
        if not payload.rounds:
            raise ValueError("Cannot derive the session window from a schedule with no rounds")
        first = payload.rounds[0]
        minutes = minutes_between(first.start_time, first.end_time)
        session = SessionWindow(
            session_id=payload.session_id,
            start=first.start_time,
            end=payload.rounds[-1].end_time,
            round_minutes=minutes,
        )

    plans = []
    for r in payload.rounds:
        assignments = tuple(
            Assignment(
                id=a.id,
                round_index=r.round_index,
                court_id=a.court_id,
                team_a=(a.team_a[0], a.team_a[1]),
                team_b=(a.team_b[0], a.team_b[1]),
                score=Score(a.score.team_a_score, a.score.team_b_score) if a.score is not None else None,
                manual=a.manual,
                locked=a.locked,
            )
            for a in r.assignments
        )
        resting = r.resting
        if not resting and r.assignments:
            resting = r.assignments[0].resting
        plans.append(RoundPlan(
            round=Round(round_index=r.round_index, start_time=r.start_time, end_time=r.end_time),
            assignments=assignments,
            resting=tuple(resting),
            shortfall=r.shortfall,
        ))
    return SessionSchedule(session=session, rounds=tuple(plans))
