"""
Round Builder - forms the doubles matches for a single round.

Group selection keys, in order:
1. fewest games played (players below the 4th-lowest game count are mandatory,
   the rest are chosen from the tied tier)
2. fewest prior partner + opponent pairings among the four
3. smallest inter-team rating difference of the group's best split
4. stable sorted player ids

Groups are formed one court at a time in court creation order, so the same
inputs always produce the same round.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from courtside.models.court import Court
from courtside.models.player import Attendance, Player
from courtside.models.schedule import (
    SHORTFALL_INSUFFICIENT_PLAYERS,
    SHORTFALL_NO_COURTS_AVAILABLE,
    Assignment,
    Round,
    RoundPlan,
    assignment_id_for,
)
from courtside.services.fairness_tracker import FairnessTracker
from courtside.utils.courts import available_courts
from courtside.utils.time_windows import attendance_covers_round

logger = logging.getLogger(__name__)

# Index layouts of the three ways to split four players into two pairs
TEAM_SPLITS = ((0, 1, 2, 3), (0, 2, 1, 3), (0, 3, 1, 2))


@dataclass(frozen=True)
class TeamSplit:
    team_a: Tuple[str, str]
    team_b: Tuple[str, str]
    rating_diff: float
    partner_repeats: int


@dataclass(frozen=True)
class GroupChoice:
    player_ids: Tuple[str, ...]
    split: TeamSplit
    pair_cost: int

    @property
    def sort_key(self) -> Tuple:
        return (self.pair_cost, self.split.rating_diff, self.player_ids)


def ratings_by_id(players: Optional[Iterable[Player]]) -> Dict[str, float]:
    return {p.id: p.rating for p in players or ()}


def eligible_player_ids(
    attendance: Sequence[Attendance],
    round_: Round,
    players: Optional[Mapping[str, Player]] = None,
) -> List[str]:
    """Attendees whose window fully covers the round, skipping inactive players."""
    players = players or {}
    eligible = []
    for entry in attendance:
        player = players.get(entry.player_id)
        if player is not None and not player.is_active:
            continue
        if attendance_covers_round(entry, round_):
            eligible.append(entry.player_id)
    return sorted(set(eligible))


def split_teams(
    group: Sequence[str],
    ratings: Mapping[str, float],
    tracker: FairnessTracker,
    default_rating: float = 0.5,
) -> TeamSplit:
    """
    Split four players into two teams of two.

    Picks the split with the lowest |sum(team_a) - sum(team_b)|; ties go to the
    split repeating fewer partnerships, then to enumeration order.
    """
    if len(group) != 4:
        raise ValueError(f"Expected 4 players, got {len(group)}")
    ordered = sorted(group)
    best: Optional[TeamSplit] = None
    best_key = None
    for idx, (a1, a2, b1, b2) in enumerate(TEAM_SPLITS):
        team_a = (ordered[a1], ordered[a2])
        team_b = (ordered[b1], ordered[b2])
        sum_a = sum(ratings.get(pid, default_rating) for pid in team_a)
        sum_b = sum(ratings.get(pid, default_rating) for pid in team_b)
        diff = round(abs(sum_a - sum_b), 9)
        repeats = tracker.partner_repeats(team_a, team_b)
        key = (diff, repeats, idx)
        if best_key is None or key < best_key:
            best_key = key
            best = TeamSplit(team_a=team_a, team_b=team_b, rating_diff=diff, partner_repeats=repeats)
    return best


def select_group(
    pool: Sequence[str],
    tracker: FairnessTracker,
    ratings: Mapping[str, float],
    candidate_window: int = 12,
    default_rating: float = 0.5,
) -> Optional[GroupChoice]:
    """Pick the next four players from the pool, or None if fewer than four remain."""
    if len(pool) < 4:
        return None

    ordered = sorted(pool, key=lambda pid: (tracker.games(pid), pid))
    boundary = tracker.games(ordered[3])
    mandatory = [pid for pid in ordered if tracker.games(pid) < boundary]
    tier = [pid for pid in ordered if tracker.games(pid) == boundary][:candidate_window]
    need = 4 - len(mandatory)

    best: Optional[GroupChoice] = None
    for extra in combinations(tier, need):
        group = tuple(sorted(mandatory + list(extra)))
        choice = GroupChoice(
            player_ids=group,
            split=split_teams(group, ratings, tracker, default_rating),
            pair_cost=tracker.pair_cost(group),
        )
        if best is None or choice.sort_key < best.sort_key:
            best = choice

    logger.debug(
        "Selected group %s (pair_cost=%d, rating_diff=%.3f) from pool of %d",
        best.player_ids,
        best.pair_cost,
        best.split.rating_diff,
        len(pool),
    )
    return best


def round_shortfall(round_: Round, assignments: Sequence[Assignment], courts: Sequence[Court]) -> Optional[str]:
    """
    Shortfall code for a round's current matches.

    - NO_COURTS_AVAILABLE: no court covers the round
    - INSUFFICIENT_PLAYERS: at least one court covering the round is empty
    """
    round_courts = available_courts(courts, round_)
    if not round_courts:
        return SHORTFALL_NO_COURTS_AVAILABLE
    occupied = {a.court_id for a in assignments}
    if any(c.id not in occupied for c in round_courts):
        return SHORTFALL_INSUFFICIENT_PLAYERS
    return None


def build_round_plan(
    round_: Round,
    eligible_ids: Sequence[str],
    courts: Sequence[Court],
    tracker: FairnessTracker,
    ratings: Mapping[str, float],
    session_id: str,
    candidate_window: int = 12,
    default_rating: float = 0.5,
) -> RoundPlan:
    """
    Build one round, filling every court the eligible players allow.

    The tracker is updated in place with every new match and with the
    resting players.
    """
    pool = sorted(set(eligible_ids))
    round_courts = available_courts(courts, round_)

    assignments: List[Assignment] = []
    for court in round_courts:
        choice = select_group(pool, tracker, ratings, candidate_window, default_rating)
        if choice is None:
            break
        assignment = Assignment(
            id=assignment_id_for(session_id, round_.round_index, court.id),
            round_index=round_.round_index,
            court_id=court.id,
            team_a=choice.split.team_a,
            team_b=choice.split.team_b,
        )
        tracker.record_assignment(assignment)
        assignments.append(assignment)
        taken = set(choice.player_ids)
        pool = [pid for pid in pool if pid not in taken]

    resting = tuple(sorted(pool))
    tracker.record_resting(resting)

    shortfall = round_shortfall(round_, assignments, courts)
    if shortfall and not assignments:
        logger.warning(
            "Round %d has no matches (%s): %d eligible players, %d courts",
            round_.round_index,
            shortfall,
            len(pool),
            len(round_courts),
        )

    return RoundPlan(round=round_, assignments=tuple(assignments), resting=resting, shortfall=shortfall)
