"""
Schedule Invariant Verifier
===========================
Safety envelope around every schedule mutation.

Invariants:
  A) Rounds tile the session window: contiguous, full length, numbered from 0
  B) Every match has two teams of two and four distinct players
  C) No player plays twice in one round, or both rests and plays
  D) No court hosts two matches in one round
  E) Every court used is available for the whole round
  F) Every player in an OPEN round attends for the whole round
     (locked rounds are history and are not re-checked against attendance)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from courtside.models.court import Court
from courtside.models.player import Attendance
from courtside.models.schedule import RoundPlan, SessionSchedule
from courtside.utils.time_windows import attendance_covers_round, court_covers_round, tile_rounds


# ─── Data structures ─────────────────────────────────────────────────────

@dataclass
class Violation:
    code: str
    message: str
    round_index: Optional[int] = None
    assignment_id: Optional[str] = None
    player_id: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


@dataclass
class InvariantReport:
    ok: bool
    violations: List[Violation] = field(default_factory=list)

    def codes(self) -> List[str]:
        return [v.code for v in self.violations]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "violations": [
                {
                    "code": v.code,
                    "message": v.message,
                    "round_index": v.round_index,
                    "assignment_id": v.assignment_id,
                    "player_id": v.player_id,
                    "context": v.context,
                }
                for v in self.violations
            ],
        }


# ─── Invariant A: round tiling ───────────────────────────────────────────

def _check_tiling(schedule: SessionSchedule) -> List[Violation]:
    expected = tile_rounds(schedule.session)
    actual = [plan.round for plan in schedule.rounds]
    if actual == expected:
        return []
    return [Violation(
        code="ROUND_TILING",
        message=(
            f"Rounds do not tile the session window: expected {len(expected)} rounds "
            f"of {schedule.session.round_minutes} minutes, found {len(actual)}"
        ),
        context={"expected": len(expected), "actual": len(actual)},
    )]


# ─── Invariants B-D: per-round structure ─────────────────────────────────

def _check_round_structure(plan: RoundPlan) -> List[Violation]:
    violations = []
    for a in plan.assignments:
        if len(a.team_a) != 2 or len(a.team_b) != 2 or len(set(a.player_ids)) != 4:
            violations.append(Violation(
                code="INVALID_TEAM",
                message=f"Assignment {a.id} does not have 4 distinct players in two teams of 2",
                round_index=plan.round_index,
                assignment_id=a.id,
            ))

    player_counts = Counter(pid for a in plan.assignments for pid in set(a.player_ids))
    for pid, count in sorted(player_counts.items()):
        if count > 1:
            violations.append(Violation(
                code="DUPLICATE_PLAYER_IN_ROUND",
                message=f"Player {pid} plays {count} matches in round {plan.round_index}",
                round_index=plan.round_index,
                player_id=pid,
                context={"count": count},
            ))
    resting_overlap = sorted(set(plan.resting) & set(player_counts))
    for pid in resting_overlap:
        violations.append(Violation(
            code="RESTING_PLAYER_ASSIGNED",
            message=f"Player {pid} is both resting and playing in round {plan.round_index}",
            round_index=plan.round_index,
            player_id=pid,
        ))

    court_counts = Counter(a.court_id for a in plan.assignments)
    for court_id, count in sorted(court_counts.items()):
        if count > 1:
            violations.append(Violation(
                code="DUPLICATE_COURT_IN_ROUND",
                message=f"Court {court_id} hosts {count} matches in round {plan.round_index}",
                round_index=plan.round_index,
                context={"court_id": court_id, "count": count},
            ))
    return violations


# ─── Invariants E-F: windows ─────────────────────────────────────────────

def _check_windows(
    plan: RoundPlan,
    attendance_by_player: Dict[str, Attendance],
    courts_by_id: Optional[Dict[str, Court]],
) -> List[Violation]:
    violations = []
    for a in plan.assignments:
        if courts_by_id is not None:
            court = courts_by_id.get(a.court_id)
            if court is None or not court_covers_round(court, plan.round):
                violations.append(Violation(
                    code="COURT_NOT_AVAILABLE",
                    message=f"Court {a.court_id} is not available for round {plan.round_index}",
                    round_index=plan.round_index,
                    assignment_id=a.id,
                    context={"court_id": a.court_id},
                ))
        if plan.is_locked:
            continue
        for pid in a.player_ids:
            entry = attendance_by_player.get(pid)
            if entry is None or not attendance_covers_round(entry, plan.round):
                violations.append(Violation(
                    code="PLAYER_NOT_ELIGIBLE",
                    message=f"Player {pid} is not present for all of round {plan.round_index}",
                    round_index=plan.round_index,
                    assignment_id=a.id,
                    player_id=pid,
                ))
    return violations


def check_schedule_invariants(
    schedule: SessionSchedule,
    attendance: Sequence[Attendance],
    courts: Optional[Sequence[Court]] = None,
) -> InvariantReport:
    """
    Verify a schedule. Pass courts=None to skip the court window check
    (e.g. when the session runs on the virtual court).
    """
    attendance_by_player = {a.player_id: a for a in attendance}
    court_map = {c.id: c for c in courts} if courts is not None else None

    violations: List[Violation] = _check_tiling(schedule)
    for plan in schedule.rounds:
        violations.extend(_check_round_structure(plan))
        violations.extend(_check_windows(plan, attendance_by_player, court_map))

    return InvariantReport(ok=not violations, violations=violations)
