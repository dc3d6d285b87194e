import logging

import pytest

from courtside.config import SchedulerSettings
from tests.factories import make_attendance, make_courts, make_players, make_session

# ============================================================================
# Engine settings
# ============================================================================
# Tests never read process env or .env: every test gets explicit settings.
# Virtual courts are off so courtless sessions fail loudly unless a test
# opts in with `virtual_settings`.


@pytest.fixture(name="settings")
def settings_fixture():
    return SchedulerSettings(
        allow_virtual_court=False,
        virtual_court_id="virtual-court",
        candidate_window=12,
        rating_scale=100.0,
        default_rating=0.5,
    )


@pytest.fixture(name="virtual_settings")
def virtual_settings_fixture():
    return SchedulerSettings(
        allow_virtual_court=True,
        virtual_court_id="virtual-court",
        candidate_window=12,
        rating_scale=100.0,
        default_rating=0.5,
    )


# ============================================================================
# Standard evening session: 18:00-20:00, 15-minute rounds (8 rounds)
# ============================================================================


@pytest.fixture(name="session_window")
def session_window_fixture():
    return make_session()


@pytest.fixture(name="eight_players")
def eight_players_fixture():
    return make_players(8)


@pytest.fixture(name="eight_attendance")
def eight_attendance_fixture(eight_players):
    return make_attendance(eight_players)


@pytest.fixture(name="two_courts")
def two_courts_fixture():
    return make_courts(2)


@pytest.fixture(name="one_court")
def one_court_fixture():
    return make_courts(1)


@pytest.fixture(autouse=True)
def _scheduler_debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="courtside")
