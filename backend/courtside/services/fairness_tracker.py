"""
Fairness Tracker - per-session bookkeeping consumed by round construction.

Tracks, per player:
- games played (one per assignment the player appears in)
- rounds spent resting

and, per unordered player pair, how often the two were partners and how often
they were opponents. Partner and opponent counts are kept separately; group
selection sums them as the repeat-pairing cost.
"""

from __future__ import annotations

from itertools import combinations
from typing import Dict, Iterable, Optional, Sequence, Tuple

from courtside.models.schedule import Assignment, RoundPlan

PairKey = Tuple[str, str]


def pair_key(a: str, b: str) -> PairKey:
    return (a, b) if a <= b else (b, a)


class FairnessTracker:
    """Tracks games, rests and pairing history for all players in a session"""

    def __init__(self):
        self.games_played: Dict[str, int] = {}
        self.rest_counts: Dict[str, int] = {}
        self.partner_counts: Dict[PairKey, int] = {}
        self.opponent_counts: Dict[PairKey, int] = {}

    @classmethod
    def seed_from_rounds(cls, rounds: Iterable[RoundPlan]) -> "FairnessTracker":
        """Rebuild tracker state from already-fixed rounds (locked rounds on regeneration)."""
        tracker = cls()
        for plan in rounds:
            tracker.record_round(plan)
        return tracker

    def games(self, player_id: str) -> int:
        return self.games_played.get(player_id, 0)

    def rests(self, player_id: str) -> int:
        return self.rest_counts.get(player_id, 0)

    def partners(self, a: str, b: str) -> int:
        return self.partner_counts.get(pair_key(a, b), 0)

    def opponents(self, a: str, b: str) -> int:
        return self.opponent_counts.get(pair_key(a, b), 0)

    def record_match(self, team_a: Sequence[str], team_b: Sequence[str]) -> None:
        """Update counters after a match is placed"""
        for pid in list(team_a) + list(team_b):
            self.games_played[pid] = self.games_played.get(pid, 0) + 1
        for team in (team_a, team_b):
            key = pair_key(team[0], team[1])
            self.partner_counts[key] = self.partner_counts.get(key, 0) + 1
        for a in team_a:
            for b in team_b:
                key = pair_key(a, b)
                self.opponent_counts[key] = self.opponent_counts.get(key, 0) + 1

    def record_assignment(self, assignment: Assignment) -> None:
        self.record_match(assignment.team_a, assignment.team_b)

    def record_resting(self, player_ids: Iterable[str]) -> None:
        for pid in player_ids:
            self.rest_counts[pid] = self.rest_counts.get(pid, 0) + 1

    def record_round(self, plan: RoundPlan) -> None:
        for assignment in plan.assignments:
            self.record_assignment(assignment)
        self.record_resting(plan.resting)

    def pair_cost(self, player_ids: Sequence[str]) -> int:
        """Combined partner + opponent history over every pair in the group."""
        total = 0
        for a, b in combinations(player_ids, 2):
            key = pair_key(a, b)
            total += self.partner_counts.get(key, 0) + self.opponent_counts.get(key, 0)
        return total

    def partner_repeats(self, team_a: Sequence[str], team_b: Sequence[str]) -> int:
        return self.partners(team_a[0], team_a[1]) + self.partners(team_b[0], team_b[1])

    def spread(self, player_ids: Optional[Iterable[str]] = None) -> int:
        """max(games) - min(games) among the given players (all tracked players by default)."""
        ids = list(player_ids) if player_ids is not None else list(self.games_played)
        if not ids:
            return 0
        counts = [self.games(pid) for pid in ids]
        return max(counts) - min(counts)

    def to_dict(self) -> Dict[str, object]:
        return {
            "games_played": dict(sorted(self.games_played.items())),
            "rest_counts": dict(sorted(self.rest_counts.items())),
            "partner_counts": {f"{a}|{b}": n for (a, b), n in sorted(self.partner_counts.items())},
            "opponent_counts": {f"{a}|{b}": n for (a, b), n in sorted(self.opponent_counts.items())},
        }
