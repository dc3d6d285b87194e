"""
Tests for the session summary: player and team records, rankings and the
fairness report.
"""

import pytest

from courtside.models import Assignment, Round, RoundPlan, Score, SessionSchedule
from courtside.services.schedule_engine import generate_schedule
from courtside.services.session_summary import fairness_report, summarize_session
from tests.factories import at, make_attendance, make_courts, make_players, make_session


def _assignment(round_index, team_a, team_b, score=None):
    return Assignment(
        id=f"s1:{round_index}:c1",
        round_index=round_index,
        court_id="c1",
        team_a=team_a,
        team_b=team_b,
        score=score,
        locked=score is not None,
    )


@pytest.fixture(name="played_schedule")
def played_schedule_fixture():
    """Three rounds on one court; the last one is still unscored."""
    session = make_session(at(18), at(18, 45), 15)
    plans = (
        RoundPlan(
            round=Round(0, at(18), at(18, 15)),
            assignments=(_assignment(0, ("p01", "p02"), ("p03", "p04"), Score(21, 15)),),
            resting=("p05",),
        ),
        RoundPlan(
            round=Round(1, at(18, 15), at(18, 30)),
            assignments=(_assignment(1, ("p01", "p03"), ("p02", "p04"), Score(18, 21)),),
            resting=("p05",),
        ),
        RoundPlan(
            round=Round(2, at(18, 30), at(18, 45)),
            assignments=(_assignment(2, ("p05", "p01"), ("p02", "p03")),),
            resting=("p04",),
        ),
    )
    return SessionSchedule(session=session, rounds=plans)


class TestSummarizeSession:
    def test_counts(self, played_schedule):
        summary = summarize_session(played_schedule, make_players(5))

        assert summary.session_id == "s1"
        assert summary.matches_scheduled == 3
        assert summary.matches_scored == 2
        assert [m.assignment_id for m in summary.matches] == ["s1:0:c1", "s1:1:c1"]
        assert summary.matches[0].team_a == ["Player 1", "Player 2"]

    def test_player_ranking(self, played_schedule):
        summary = summarize_session(played_schedule, make_players(5))

        ranking = [r.player_id for r in summary.top_players]
        # p02 won both; p01 (+3) ahead of p04 (-3); p05 has no scored match but no losses either
        assert ranking == ["p02", "p01", "p04", "p05", "p03"]
        p02 = summary.top_players[0]
        assert (p02.wins, p02.losses, p02.points_for, p02.points_against) == (2, 0, 42, 33)
        assert p02.games_played == 3
        assert p02.point_diff == 9

    def test_team_ranking(self, played_schedule):
        summary = summarize_session(played_schedule, make_players(5))

        teams = [tuple(t.player_ids) for t in summary.top_teams]
        assert teams == [("p01", "p02"), ("p02", "p04"), ("p01", "p03"), ("p03", "p04")]
        assert summary.top_teams[0].player_names == ["Player 1", "Player 2"]

    def test_top_n(self, played_schedule):
        summary = summarize_session(played_schedule, make_players(5), top_n=2)

        assert len(summary.top_players) == 2
        assert len(summary.top_teams) == 2

    def test_draw_counts_for_players_only(self):
        session = make_session(at(18), at(18, 15), 15)
        plan = RoundPlan(
            round=Round(0, at(18), at(18, 15)),
            assignments=(_assignment(0, ("p01", "p02"), ("p03", "p04"), Score(20, 20)),),
        )

        summary = summarize_session(SessionSchedule(session=session, rounds=(plan,)))

        assert all(r.draws == 1 and r.wins == 0 and r.losses == 0 for r in summary.top_players)
        assert all(t.wins == 0 and t.losses == 0 for t in summary.top_teams)

    def test_names_fall_back_to_ids(self, played_schedule):
        summary = summarize_session(played_schedule)

        assert summary.top_players[0].name == "p02"

    def test_serializes(self, played_schedule):
        data = summarize_session(played_schedule, make_players(5)).model_dump()

        assert data["fairness"]["spread"] == 2
        assert data["top_players"][0]["player_id"] == "p02"


class TestFairnessReport:
    def test_games_and_rests(self, played_schedule):
        report = fairness_report(played_schedule)

        assert report.games_by_player == {"p01": 3, "p02": 3, "p03": 3, "p04": 2, "p05": 1}
        assert report.rests_by_player["p05"] == 2
        assert (report.min_games, report.max_games, report.spread) == (1, 3, 2)

    def test_attendees_without_games_included(self, played_schedule):
        report = fairness_report(played_schedule, make_attendance(["p06"]))

        assert report.games_by_player["p06"] == 0
        assert report.spread == 3

    def test_generated_schedule_is_fair(self, session_window, settings):
        players = make_players(10)
        attendance = make_attendance(players)
        schedule = generate_schedule(session_window, attendance, make_courts(2), players, settings)

        assert fairness_report(schedule, attendance).spread <= 1
