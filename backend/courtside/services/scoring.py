"""
Score entry for session matches.

Accepts what the score form sends:
  21, "21", 21.0           -> 21
  "21-15"                  -> one game, points 21-15
  "21-15 18-21 21-19"      -> best-of-three, recorded as games won (2-1)
  "21-15, 18-21, 21-19"    -> comma-separated variant

Recording a score locks the assignment, and with it the round.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from courtside.models.schedule import Score, SessionSchedule
from courtside.services.errors import InvalidScore
from courtside.services.manual_edits import require_assignment

logger = logging.getLogger(__name__)


@dataclass
class ParsedScore:
    games: List[Tuple[int, int]]  # (team_a_points, team_b_points) per game
    team_a_games_won: int
    team_b_games_won: int

    def to_score(self) -> Score:
        if len(self.games) == 1:
            a, b = self.games[0]
            return Score(team_a_score=a, team_b_score=b)
        return Score(team_a_score=self.team_a_games_won, team_b_score=self.team_b_games_won)


def coerce_score_value(value: Any, side: str = "score") -> int:
    """Turn a submitted score into a non-negative int or raise InvalidScore."""
    if isinstance(value, bool) or value is None:
        raise InvalidScore(f"{side} must be a number", {side: value})
    if isinstance(value, str):
        text = value.strip()
        if not text.isdecimal():
            raise InvalidScore(f"{side} must be a non-negative whole number", {side: value})
        return int(text)
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not value.is_integer():
            raise InvalidScore(f"{side} must be a whole number", {side: value})
        number = int(value)
    else:
        raise InvalidScore(f"{side} must be a number", {side: repr(value)})
    if number < 0:
        raise InvalidScore(f"{side} must not be negative", {side: value})
    return number


def parse_score_text(raw: Optional[str]) -> Optional[ParsedScore]:
    """Parse strings like '21-15' or '21-15 18-21 21-19'. Returns None on failure."""
    if not raw or not raw.strip():
        return None
    parts = raw.replace(",", " ").split()

    games: List[Tuple[int, int]] = []
    for part in parts:
        pair = part.split("-")
        if len(pair) != 2:
            return None
        try:
            a = int(pair[0])
            b = int(pair[1])
        except ValueError:
            return None
        if a < 0 or b < 0:
            return None
        games.append((a, b))

    return ParsedScore(
        games=games,
        team_a_games_won=sum(1 for a, b in games if a > b),
        team_b_games_won=sum(1 for a, b in games if b > a),
    )


def record_score(
    schedule: SessionSchedule,
    assignment_id: str,
    team_a_score: Any,
    team_b_score: Any,
) -> SessionSchedule:
    """
    Store a score on an assignment and lock it.

    Raises:
        InvalidScore: negative, fractional or non-numeric score
        AssignmentNotFound: unknown assignment id
    """
    a = coerce_score_value(team_a_score, "team_a_score")
    b = coerce_score_value(team_b_score, "team_b_score")
    plan, target = require_assignment(schedule, assignment_id)

    updated = replace(target, score=Score(team_a_score=a, team_b_score=b), locked=True)
    new_plan = replace(
        plan,
        assignments=tuple(updated if x.id == assignment_id else x for x in plan.assignments),
    )
    logger.info("Score %d-%d saved on %s (round %d)", a, b, assignment_id, plan.round_index)
    return schedule.with_round(new_plan)


def record_score_text(schedule: SessionSchedule, assignment_id: str, raw: str) -> SessionSchedule:
    parsed = parse_score_text(raw)
    if parsed is None:
        raise InvalidScore(f"Could not read score '{raw}'", {"score": raw})
    score = parsed.to_score()
    return record_score(schedule, assignment_id, score.team_a_score, score.team_b_score)
