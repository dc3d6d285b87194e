"""
Tests for the session coordinator: version checks, single-writer guard and
the invariant check on every commit.
"""

import pytest

from courtside.models import Court, Player, RoundStatus
from courtside.services import session_coordinator
from courtside.services.errors import (
    ConcurrentModification,
    InvalidSessionWindow,
    PlayerConflict,
    ScheduleInvariantError,
    SessionFinished,
    SessionNotFound,
)
from courtside.services.schedule_invariants import InvariantReport, Violation
from courtside.services.session_coordinator import SessionCoordinator
from tests.factories import at, make_session


@pytest.fixture(name="coordinator")
def coordinator_fixture(settings, session_window, eight_players, eight_attendance, one_court):
    coordinator = SessionCoordinator(settings)
    coordinator.open_session(session_window, eight_attendance, one_court, eight_players)
    return coordinator


@pytest.fixture(name="generated")
def generated_fixture(coordinator):
    return coordinator.generate("s1", expected_version=0)


class TestRegistry:
    def test_open_session_starts_at_version_zero(self, coordinator):
        state = coordinator.get("s1")

        assert state.version == 0
        assert state.schedule is None
        assert len(state.attendance) == 8

    def test_unknown_session(self, coordinator):
        with pytest.raises(SessionNotFound):
            coordinator.get("nope")
        with pytest.raises(SessionNotFound):
            coordinator.generate("nope", expected_version=0)

    def test_invalid_window_rejected_on_open(self, settings):
        with pytest.raises(InvalidSessionWindow):
            SessionCoordinator(settings).open_session(make_session(at(20), at(18)))


class TestVersionGuard:
    def test_generate_bumps_version(self, generated):
        assert generated.version == 1
        assert len(generated.schedule.rounds) == 8

    def test_stale_version_rejected(self, coordinator, generated):
        with pytest.raises(ConcurrentModification) as exc:
            coordinator.regenerate("s1", expected_version=0)

        assert exc.value.context["current_version"] == 1
        assert coordinator.get("s1") is generated

    def test_overlapping_mutation_rejected(self, coordinator, generated):
        lock = coordinator._locks["s1"]
        lock.acquire()
        try:
            with pytest.raises(ConcurrentModification):
                coordinator.regenerate("s1", expected_version=1)
        finally:
            lock.release()

        assert coordinator.regenerate("s1", expected_version=1).version == 2

    def test_failed_mutation_keeps_state_and_releases_lock(self, coordinator, generated):
        with pytest.raises(PlayerConflict):
            coordinator.insert_manual_match("s1", 1, ["p01", "p02"], ["p03", "p04"], "c1", round_index=0)

        assert coordinator.get("s1") is generated
        assert coordinator.delete_round("s1", 1, 0).version == 2

    def test_invariant_failure_rejects_commit(self, coordinator, generated, monkeypatch):
        bad = InvariantReport(ok=False, violations=[Violation(code="ROUND_TILING", message="broken")])
        monkeypatch.setattr(session_coordinator, "check_schedule_invariants", lambda *args: bad)

        with pytest.raises(ScheduleInvariantError) as exc:
            coordinator.regenerate("s1", expected_version=1)

        assert exc.value.report is bad
        assert exc.value.context["violations"][0]["code"] == "ROUND_TILING"
        assert coordinator.get("s1") is generated

    def test_regenerate_without_schedule(self, coordinator):
        with pytest.raises(SessionNotFound):
            coordinator.regenerate("s1", expected_version=0)


class TestMutations:
    def test_score_then_late_arrival(self, coordinator, generated):
        first = generated.schedule.rounds[0].assignments[0]
        scored = coordinator.record_score("s1", 1, first.id, 21, 17)
        newcomer = Player(id="p09", display_name="Player 9")

        arrived = coordinator.player_arrived("s1", 2, newcomer, at(19), at(20))

        assert arrived.version == 3
        assert arrived.schedule.rounds[0] is scored.schedule.rounds[0]
        assert arrived.schedule.rounds[0].status == RoundStatus.LOCKED
        assert any("p09" in plan.assigned_player_ids() for plan in arrived.schedule.rounds[4:])
        assert all("p09" not in plan.assigned_player_ids() for plan in arrived.schedule.rounds[:4])
        assert newcomer in arrived.players

    def test_arrival_before_generation_only_updates_attendance(self, coordinator):
        state = coordinator.player_arrived("s1", 0, Player(id="p09", display_name="Player 9"), at(18), at(20))

        assert state.schedule is None
        assert len(state.attendance) == 9

    def test_departure_regenerates(self, coordinator, generated):
        state = coordinator.player_departed("s1", 1, "p01", at(19))

        for plan in state.schedule.rounds[4:]:
            assert "p01" not in plan.assigned_player_ids()

    def test_remove_player(self, coordinator, generated):
        state = coordinator.remove_player("s1", 1, "p08")

        assert all(a.player_id != "p08" for a in state.attendance)
        assert all("p08" not in plan.assigned_player_ids() for plan in state.schedule.rounds)

    def test_add_court_then_regenerate(self, coordinator, generated):
        coordinator.add_court("s1", 1, Court("c2", "Court 2", at(18), at(20)))

        state = coordinator.regenerate("s1", 2)

        assert all(len(plan.assignments) == 2 for plan in state.schedule.rounds)

    def test_manual_match_swap_and_deletes(self, coordinator, generated):
        coordinator.add_court("s1", 1, Court("c2", "Court 2", at(18), at(20)))

        state = coordinator.insert_manual_match("s1", 2, ["p05", "p06"], ["p07", "p08"], "c2", round_index=0)
        assert state.schedule.round_plan(0).status == RoundStatus.LOCKED
        assert state.schedule.round_plan(0).resting == ()

        # Round 0 is locked, so the newcomer is free to swap in there
        coordinator.player_arrived("s1", 3, Player(id="p09", display_name="Player 9"), at(18), at(20))
        state = coordinator.swap_player("s1", 4, 0, "s1:0:c2", "p08", "p09")
        swapped = state.schedule.find_assignment("s1:0:c2")[1]
        assert state.version == 5
        assert swapped.team_b == ("p07", "p09")
        assert swapped.manual
        assert state.schedule.round_plan(0).resting == ("p08",)

        state = coordinator.delete_assignment("s1", 5, "s1:0:c2")
        assert state.schedule.find_assignment("s1:0:c2") is None
        assert state.schedule.round_plan(0).status == RoundStatus.OPEN


class TestVirtualCourtSessions:
    @pytest.fixture(name="virtual_generated")
    def virtual_generated_fixture(self, virtual_settings, session_window, eight_players, eight_attendance):
        coordinator = SessionCoordinator(virtual_settings)
        coordinator.open_session(session_window, eight_attendance, (), eight_players)
        coordinator.generate("s1", expected_version=0)
        return coordinator

    def test_generated_on_the_virtual_court(self, virtual_generated):
        state = virtual_generated.get("s1")

        assert all(a.court_id == "virtual-court" for plan in state.schedule.rounds for a in plan.assignments)

    def test_add_real_court_keeps_virtual_history(self, virtual_generated):
        first = virtual_generated.get("s1").schedule.rounds[0].assignments[0]
        virtual_generated.record_score("s1", 1, first.id, 21, 19)

        added = virtual_generated.add_court("s1", 2, Court("c1", "Court 1", at(18), at(20)))
        assert added.version == 3

        state = virtual_generated.regenerate("s1", 3)

        assert state.schedule.rounds[0].assignments[0].court_id == "virtual-court"
        assert all(a.court_id == "c1" for plan in state.schedule.rounds[1:] for a in plan.assignments)


class TestFinish:
    def test_finish_marks_session(self, coordinator, generated):
        state = coordinator.finish("s1", 1, finished_at=at(20, 5))

        assert state.version == 2
        assert state.is_finished
        assert state.finished_at == at(20, 5)
        assert state.schedule is generated.schedule

    def test_mutations_rejected_after_finish(self, coordinator, generated):
        coordinator.finish("s1", 1, finished_at=at(20, 5))
        first = generated.schedule.rounds[0].assignments[0]

        with pytest.raises(SessionFinished) as exc:
            coordinator.record_score("s1", 2, first.id, 21, 17)
        assert exc.value.code == "SESSION_FINISHED"
        with pytest.raises(SessionFinished):
            coordinator.regenerate("s1", 2)
        with pytest.raises(SessionFinished):
            coordinator.delete_round("s1", 2, 0)
        with pytest.raises(SessionFinished):
            coordinator.finish("s1", 2)

        assert coordinator.get("s1").version == 2

    def test_stale_version_checked_before_finished(self, coordinator, generated):
        coordinator.finish("s1", 1)

        with pytest.raises(ConcurrentModification):
            coordinator.regenerate("s1", 1)

    def test_finished_sessions_newest_first(self, coordinator, generated):
        coordinator.open_session(make_session(session_id="s2"))
        coordinator.open_session(make_session(session_id="s3"))
        coordinator.finish("s1", 1, finished_at=at(20, 5))
        coordinator.finish("s3", 0, finished_at=at(21))

        assert [s.session.session_id for s in coordinator.finished_sessions()] == ["s3", "s1"]
