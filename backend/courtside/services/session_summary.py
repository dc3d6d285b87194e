"""
Session Summary - per-player and per-team records built from a schedule.

Only scored matches count toward wins, losses and points; games played and
rests count every scheduled match. Rankings: wins desc, point difference
desc, points for desc, then name.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from courtside.models.player import Attendance, Player
from courtside.models.schedule import SessionSchedule
from courtside.services.fairness_tracker import FairnessTracker, pair_key


# ============================================================================
# Response Models
# ============================================================================


class PlayerRecord(BaseModel):
    player_id: str
    name: str
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    points_for: int = 0
    points_against: int = 0

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against


class TeamRecord(BaseModel):
    player_ids: List[str]
    player_names: List[str]
    games: int = 0
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against


class MatchResult(BaseModel):
    assignment_id: str
    round_index: int
    court_id: str
    team_a: List[str]
    team_b: List[str]
    team_a_score: int
    team_b_score: int


class FairnessReport(BaseModel):
    games_by_player: Dict[str, int]
    rests_by_player: Dict[str, int]
    min_games: int
    max_games: int
    spread: int


class SessionSummary(BaseModel):
    session_id: str
    matches_scheduled: int
    matches_scored: int
    top_players: List[PlayerRecord]
    top_teams: List[TeamRecord]
    matches: List[MatchResult]
    fairness: FairnessReport


# ============================================================================
# Helpers
# ============================================================================


def _ranking_key(record) -> Tuple:
    label = record.name if isinstance(record, PlayerRecord) else " & ".join(record.player_names)
    return (-record.wins, -record.point_diff, -record.points_for, label)


def fairness_report(
    schedule: SessionSchedule,
    attendance: Optional[Sequence[Attendance]] = None,
) -> FairnessReport:
    """Games and rests per player across the whole schedule."""
    tracker = FairnessTracker.seed_from_rounds(schedule.rounds)
    ids = set(tracker.games_played) | set(tracker.rest_counts)
    if attendance is not None:
        ids |= {a.player_id for a in attendance}
    ids = sorted(ids)
    games = {pid: tracker.games(pid) for pid in ids}
    counts = list(games.values()) or [0]
    return FairnessReport(
        games_by_player=games,
        rests_by_player={pid: tracker.rests(pid) for pid in ids},
        min_games=min(counts),
        max_games=max(counts),
        spread=max(counts) - min(counts),
    )


def summarize_session(
    schedule: SessionSchedule,
    players: Optional[Iterable[Player]] = None,
    attendance: Optional[Sequence[Attendance]] = None,
    top_n: Optional[int] = None,
) -> SessionSummary:
    names = {p.id: p.display_name for p in players or ()}

    def _name(pid: str) -> str:
        return names.get(pid, pid)

    player_records: Dict[str, PlayerRecord] = {}
    team_records: Dict[Tuple[str, str], TeamRecord] = {}
    matches: List[MatchResult] = []
    scheduled = 0

    def _player(pid: str) -> PlayerRecord:
        if pid not in player_records:
            player_records[pid] = PlayerRecord(player_id=pid, name=_name(pid))
        return player_records[pid]

    for plan in schedule.rounds:
        for a in plan.assignments:
            scheduled += 1
            for pid in a.player_ids:
                _player(pid).games_played += 1
            if a.score is None:
                continue

            matches.append(MatchResult(
                assignment_id=a.id,
                round_index=a.round_index,
                court_id=a.court_id,
                team_a=[_name(pid) for pid in a.team_a],
                team_b=[_name(pid) for pid in a.team_b],
                team_a_score=a.score.team_a_score,
                team_b_score=a.score.team_b_score,
            ))
            sides = (
                (a.team_a, a.score.team_a_score, a.score.team_b_score),
                (a.team_b, a.score.team_b_score, a.score.team_a_score),
            )
            for team, scored, conceded in sides:
                key = pair_key(team[0], team[1])
                team_rec = team_records.get(key)
                if team_rec is None:
                    team_rec = TeamRecord(player_ids=list(key), player_names=[_name(pid) for pid in key])
                    team_records[key] = team_rec
                team_rec.games += 1
                team_rec.points_for += scored
                team_rec.points_against += conceded
                if scored > conceded:
                    team_rec.wins += 1
                elif scored < conceded:
                    team_rec.losses += 1

                for pid in team:
                    rec = _player(pid)
                    rec.points_for += scored
                    rec.points_against += conceded
                    if scored > conceded:
                        rec.wins += 1
                    elif scored < conceded:
                        rec.losses += 1
                    else:
                        rec.draws += 1

    top_players = sorted(player_records.values(), key=_ranking_key)
    top_teams = sorted(team_records.values(), key=_ranking_key)
    if top_n is not None:
        top_players = top_players[:top_n]
        top_teams = top_teams[:top_n]

    return SessionSummary(
        session_id=schedule.session_id,
        matches_scheduled=scheduled,
        matches_scored=len(matches),
        top_players=top_players,
        top_teams=top_teams,
        matches=matches,
        fairness=fairness_report(schedule, attendance),
    )
