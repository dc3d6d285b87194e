"""
Manual Schedule Editor: validation and mutation logic for manual matches

This module lets organizers override the generated schedule while enforcing
hard invariants:

1. **Distinct roster**: A manual match has exactly four distinct players
2. **Eligibility**: Every player's attendance window covers the round
3. **No double booking**: A player appears in at most one match per round
4. **Court free**: The court is available for the round and not already used
5. **Finished rounds stay finished**: Scored matches cannot be swapped

Manual matches and swapped matches are marked manual=True, locked=True so
regeneration keeps their rounds as they are. Deleting matches unlocks a round
again once nothing scored or manual is left in it.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from courtside.models.court import Court
from courtside.models.player import Attendance, Player
from courtside.models.schedule import (
    SHORTFALL_INSUFFICIENT_PLAYERS,
    Assignment,
    RoundPlan,
    SessionSchedule,
    assignment_id_for,
)
from courtside.services.errors import (
    AssignmentAlreadyScored,
    AssignmentNotFound,
    CourtConflict,
    InvalidRoster,
    ManualEditError,
    PlayerConflict,
    PlayerNotInAssignment,
    PlayerUnavailable,
    RoundNotFound,
)
from courtside.services.round_builder import round_shortfall
from courtside.utils.courts import courts_by_id
from courtside.utils.time_windows import attendance_covers_round, court_covers_round

logger = logging.getLogger(__name__)


def _attendance_by_player(attendance: Sequence[Attendance]) -> Dict[str, Attendance]:
    return {a.player_id: a for a in attendance}


def _players_by_id(players: Optional[Iterable[Player]]) -> Dict[str, Player]:
    return {p.id: p for p in players or ()}


def _court_sort(plan_assignments: Iterable[Assignment], courts: Sequence[Court]) -> Tuple[Assignment, ...]:
    order = {c.id: i for i, c in enumerate(courts)}
    return tuple(sorted(plan_assignments, key=lambda a: (order.get(a.court_id, len(order)), a.court_id)))


def require_round(schedule: SessionSchedule, round_index: int) -> RoundPlan:
    plan = schedule.round_plan(round_index)
    if plan is None:
        raise RoundNotFound(f"Round {round_index} not found", {"round_index": round_index})
    return plan


def require_assignment(schedule: SessionSchedule, assignment_id: str) -> Tuple[RoundPlan, Assignment]:
    found = schedule.find_assignment(assignment_id)
    if found is None:
        raise AssignmentNotFound(f"Assignment {assignment_id} not found", {"assignment_id": assignment_id})
    return found


def validate_roster(team_a: Sequence[str], team_b: Sequence[str]) -> Tuple[bool, Optional[str]]:
    """
    Check two teams of two with four distinct, non-empty player ids.

    Returns:
        (is_valid, reason_if_not)
    """
    if len(team_a) != 2 or len(team_b) != 2:
        return False, "Each team needs exactly 2 players"
    ids = list(team_a) + list(team_b)
    if any(not pid for pid in ids):
        return False, "Player ids must not be empty"
    if len(set(ids)) < 4:
        return False, "Each player must be unique"
    return True, None


def validate_player_eligible(
    player_id: str,
    plan: RoundPlan,
    attendance_by_player: Mapping[str, Attendance],
    players: Mapping[str, Player],
) -> Tuple[bool, Optional[str]]:
    """Player attends the session, is active, and their window covers the round."""
    entry = attendance_by_player.get(player_id)
    if entry is None:
        return False, f"Player {player_id} is not attending this session"
    player = players.get(player_id)
    if player is not None and not player.is_active:
        return False, f"Player {player_id} is inactive"
    if not attendance_covers_round(entry, plan.round):
        return False, (
            f"Player {player_id} is not present for all of round {plan.round_index} "
            f"({plan.round.start_time.strftime('%H:%M')}-{plan.round.end_time.strftime('%H:%M')})"
        )
    return True, None


def validate_court_free(
    court_id: str,
    plan: RoundPlan,
    courts: Mapping[str, Court],
) -> Tuple[bool, Optional[str]]:
    """
    Check if a court can host a new match in this round.

    Returns:
        (is_available, reason_if_not)
    """
    court = courts.get(court_id)
    if court is None:
        return False, f"Court {court_id} not found"
    if not court_covers_round(court, plan.round):
        return False, f"{court.court_name} is not available for all of round {plan.round_index}"
    for existing in plan.assignments:
        if existing.court_id == court_id:
            return False, f"{court.court_name} already has a match in round {plan.round_index}"
    return True, None


def validate_manual_match(
    plan: RoundPlan,
    player_ids: Sequence[str],
    court_id: str,
    attendance_by_player: Mapping[str, Attendance],
    courts: Mapping[str, Court],
    players: Mapping[str, Player],
) -> None:
    """
    Run every per-round check for a manual match.

    Raises:
        PlayerUnavailable, PlayerConflict, CourtConflict
    """
    for pid in player_ids:
        ok, reason = validate_player_eligible(pid, plan, attendance_by_player, players)
        if not ok:
            raise PlayerUnavailable(reason, {"player_id": pid, "round_index": plan.round_index})

    busy = sorted(set(player_ids) & plan.assigned_player_ids())
    if busy:
        raise PlayerConflict(
            f"Already playing in round {plan.round_index}: {', '.join(busy)}",
            {"player_ids": busy, "round_index": plan.round_index},
        )

    ok, reason = validate_court_free(court_id, plan, courts)
    if not ok:
        raise CourtConflict(reason, {"court_id": court_id, "round_index": plan.round_index})


def _find_next_round(
    schedule: SessionSchedule,
    player_ids: Sequence[str],
    court_id: str,
    attendance_by_player: Mapping[str, Attendance],
    courts: Mapping[str, Court],
    players: Mapping[str, Player],
) -> RoundPlan:
    """First round without scores where the manual match passes every check."""
    reasons = []
    for plan in schedule.rounds:
        if plan.has_score:
            continue
        try:
            validate_manual_match(plan, player_ids, court_id, attendance_by_player, courts, players)
        except ManualEditError as e:
            reasons.append(f"round {plan.round_index}: {e.message}")
            continue
        return plan
    raise RoundNotFound("No round can take this manual match", {"reasons": reasons[:10]})


def insert_manual_match(
    schedule: SessionSchedule,
    attendance: Sequence[Attendance],
    courts: Sequence[Court],
    team_a: Sequence[str],
    team_b: Sequence[str],
    court_id: str,
    round_index: Optional[int] = None,
    players: Optional[Iterable[Player]] = None,
) -> SessionSchedule:
    """
    Add a manual match to a round (round_index=None picks the next available round).

    The new assignment is manual and locked, which locks its round.

    Raises:
        InvalidRoster, RoundNotFound, PlayerUnavailable, PlayerConflict, CourtConflict
    """
    ok, reason = validate_roster(team_a, team_b)
    if not ok:
        raise InvalidRoster(reason, {"team_a": list(team_a), "team_b": list(team_b)})

    player_ids = list(team_a) + list(team_b)
    attendance_by_player = _attendance_by_player(attendance)
    court_map = courts_by_id(courts)
    player_map = _players_by_id(players)

    if round_index is None:
        plan = _find_next_round(schedule, player_ids, court_id, attendance_by_player, court_map, player_map)
    else:
        plan = require_round(schedule, round_index)
        validate_manual_match(plan, player_ids, court_id, attendance_by_player, court_map, player_map)

    assignment = Assignment(
        id=assignment_id_for(schedule.session_id, plan.round_index, court_id),
        round_index=plan.round_index,
        court_id=court_id,
        team_a=(team_a[0], team_a[1]),
        team_b=(team_b[0], team_b[1]),
        manual=True,
        locked=True,
    )
    taken = set(player_ids)
    assignments = _court_sort(plan.assignments + (assignment,), courts)
    new_plan = replace(
        plan,
        assignments=assignments,
        resting=tuple(pid for pid in plan.resting if pid not in taken),
        shortfall=round_shortfall(plan.round, assignments, courts),
    )
    logger.info(
        "Manual match %s added to round %d of session %s",
        assignment.id,
        plan.round_index,
        schedule.session_id,
    )
    return schedule.with_round(new_plan)


def swap_player(
    schedule: SessionSchedule,
    attendance: Sequence[Attendance],
    round_index: int,
    assignment_id: str,
    player_out: str,
    player_in: str,
    players: Optional[Iterable[Player]] = None,
) -> SessionSchedule:
    """
    Replace one player on an assignment, keeping the team side.

    The edited assignment becomes manual and locked.

    Raises:
        RoundNotFound, AssignmentNotFound, AssignmentAlreadyScored,
        PlayerNotInAssignment, PlayerUnavailable
    """
    plan = require_round(schedule, round_index)
    target = next((a for a in plan.assignments if a.id == assignment_id), None)
    if target is None:
        raise AssignmentNotFound(
            f"Assignment {assignment_id} not found in round {round_index}",
            {"assignment_id": assignment_id, "round_index": round_index},
        )
    if target.score is not None:
        raise AssignmentAlreadyScored(
            f"Assignment {assignment_id} already has a score",
            {"assignment_id": assignment_id},
        )
    if player_out not in target.player_ids:
        raise PlayerNotInAssignment(
            f"Player {player_out} is not on assignment {assignment_id}",
            {"player_id": player_out, "assignment_id": assignment_id},
        )
    if player_in == player_out:
        raise PlayerUnavailable("Replacement must be a different player", {"player_id": player_in})

    ok, reason = validate_player_eligible(
        player_in, plan, _attendance_by_player(attendance), _players_by_id(players)
    )
    if not ok:
        raise PlayerUnavailable(reason, {"player_id": player_in, "round_index": round_index})
    if player_in in plan.assigned_player_ids():
        raise PlayerUnavailable(
            f"Player {player_in} is already playing in round {round_index}",
            {"player_id": player_in, "round_index": round_index},
        )

    def _swap(team):
        return tuple(player_in if pid == player_out else pid for pid in team)

    updated = replace(target, team_a=_swap(target.team_a), team_b=_swap(target.team_b), manual=True, locked=True)
    resting = sorted((set(plan.resting) - {player_in}) | {player_out})
    new_plan = replace(
        plan,
        assignments=tuple(updated if a.id == assignment_id else a for a in plan.assignments),
        resting=tuple(resting),
    )
    logger.info(
        "Swapped %s -> %s on %s (round %d)", player_out, player_in, assignment_id, round_index
    )
    return schedule.with_round(new_plan)


def _shortfall_after_delete(plan: RoundPlan, remaining: Tuple[Assignment, ...], courts: Optional[Sequence[Court]]):
    if not remaining and not plan.assignments:
        return plan.shortfall
    if courts is not None:
        return round_shortfall(plan.round, remaining, courts)
    # The freed court covered the round and is empty now
    return SHORTFALL_INSUFFICIENT_PLAYERS


def delete_assignment(
    schedule: SessionSchedule,
    assignment_id: str,
    courts: Optional[Sequence[Court]] = None,
) -> SessionSchedule:
    """
    Remove one match; its players rest for the round.

    The round unlocks on its own once no scored or manual match is left in it.
    Pass the session courts to recompute the round's shortfall exactly.
    """
    plan, target = require_assignment(schedule, assignment_id)
    remaining = tuple(a for a in plan.assignments if a.id != assignment_id)
    new_plan = replace(
        plan,
        assignments=remaining,
        resting=tuple(sorted(set(plan.resting) | set(target.player_ids))),
        shortfall=_shortfall_after_delete(plan, remaining, courts),
    )
    logger.info("Deleted assignment %s from round %d", assignment_id, plan.round_index)
    return schedule.with_round(new_plan)


def delete_round(
    schedule: SessionSchedule,
    round_index: int,
    courts: Optional[Sequence[Court]] = None,
) -> SessionSchedule:
    """Clear every match in a round; the time slot stays and the round is OPEN again."""
    plan = require_round(schedule, round_index)
    freed = {pid for a in plan.assignments for pid in a.player_ids}
    new_plan = replace(
        plan,
        assignments=(),
        resting=tuple(sorted(set(plan.resting) | freed)),
        shortfall=_shortfall_after_delete(plan, (), courts),
    )
    logger.info("Cleared round %d of session %s", round_index, schedule.session_id)
    return schedule.with_round(new_plan)
