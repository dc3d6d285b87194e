"""
Schedule Engine - full generation and regeneration of session schedules.

Modes:
  GENERATE    - tile the session into rounds and build every round from scratch
  REGENERATE  - keep LOCKED rounds (scored / manual) exactly as they are and
                rebuild every OPEN round from current attendance and courts

Both modes share the per-round builder; regeneration seeds the fairness
tracker from the locked rounds first so game counts carry across them.
The engine never mutates its inputs and performs no I/O.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from courtside.config import SchedulerSettings, get_settings
from courtside.models.court import Court
from courtside.models.player import Attendance, Player
from courtside.models.schedule import Round, RoundPlan, SessionSchedule, SessionWindow
from courtside.services.errors import (
    CourtConflict,
    InsufficientPlayers,
    InvalidSessionWindow,
    NoCourtsAvailable,
)
from courtside.services.fairness_tracker import FairnessTracker
from courtside.services.round_builder import build_round_plan, eligible_player_ids, ratings_by_id
from courtside.utils.courts import duplicate_court_ids, virtual_court
from courtside.utils.time_windows import tile_rounds

logger = logging.getLogger(__name__)

MIN_PLAYERS_PER_MATCH = 4


def players_by_id(players: Optional[Iterable[Player]]) -> Dict[str, Player]:
    return {p.id: p for p in players or ()}


def validate_session_window(session: SessionWindow) -> List[Round]:
    """Check the session window and return its rounds."""
    if session.round_minutes <= 0:
        raise InvalidSessionWindow(
            f"round_minutes must be > 0, got {session.round_minutes}",
            {"round_minutes": session.round_minutes},
        )
    if session.start >= session.end:
        raise InvalidSessionWindow(
            "Session start must be before session end",
            {"start": session.start.isoformat(), "end": session.end.isoformat()},
        )
    rounds = tile_rounds(session)
    if not rounds:
        raise InvalidSessionWindow(
            f"Session window is shorter than one {session.round_minutes}-minute round",
            {"start": session.start.isoformat(), "end": session.end.isoformat()},
        )
    return rounds


def resolve_courts(
    session: SessionWindow,
    courts: Sequence[Court],
    settings: Optional[SchedulerSettings] = None,
) -> List[Court]:
    """
    Apply the courtless-session policy.

    With no courts, either fail with NoCourtsAvailable or, when
    allow_virtual_court is on, schedule on one implicit court spanning the
    whole session.
    """
    settings = settings or get_settings()
    dupes = duplicate_court_ids(courts)
    if dupes:
        raise CourtConflict(f"Duplicate court ids: {', '.join(dupes)}", {"court_ids": dupes})
    if courts:
        return list(courts)
    if settings.allow_virtual_court:
        logger.info("Session %s has no courts; using virtual court", session.session_id)
        return [virtual_court(session, settings.virtual_court_id)]
    raise NoCourtsAvailable(
        f"Session {session.session_id} has no courts",
        {"session_id": session.session_id},
    )


def _build_rounds(
    session: SessionWindow,
    rounds: Sequence[Round],
    attendance: Sequence[Attendance],
    courts: Sequence[Court],
    players: Mapping[str, Player],
    settings: SchedulerSettings,
    fixed: Mapping[int, RoundPlan],
    tracker: FairnessTracker,
) -> List[RoundPlan]:
    ratings = ratings_by_id(players.values())
    plans: List[RoundPlan] = []
    for round_ in rounds:
        kept = fixed.get(round_.round_index)
        if kept is not None:
            plans.append(kept)
            continue
        plans.append(
            build_round_plan(
                round_,
                eligible_player_ids(attendance, round_, players),
                courts,
                tracker,
                ratings,
                session.session_id,
                candidate_window=settings.candidate_window,
                default_rating=settings.default_rating,
            )
        )
    return plans


def generate_schedule(
    session: SessionWindow,
    attendance: Sequence[Attendance],
    courts: Sequence[Court],
    players: Optional[Iterable[Player]] = None,
    settings: Optional[SchedulerSettings] = None,
) -> SessionSchedule:
    """
    Generate a full schedule for the session.

    Raises:
        InvalidSessionWindow: bad window or round length
        InsufficientPlayers: < 4 attendees, or no round with 4 eligible players
        NoCourtsAvailable: no courts and virtual courts are disabled
    """
    settings = settings or get_settings()
    rounds = validate_session_window(session)
    player_map = players_by_id(players)

    if len(attendance) < MIN_PLAYERS_PER_MATCH:
        raise InsufficientPlayers(
            f"Need at least {MIN_PLAYERS_PER_MATCH} attendees, got {len(attendance)}",
            {"attendees": len(attendance)},
        )
    best_round = max(len(eligible_player_ids(attendance, r, player_map)) for r in rounds)
    if best_round < MIN_PLAYERS_PER_MATCH:
        raise InsufficientPlayers(
            f"No round has {MIN_PLAYERS_PER_MATCH} players present at the same time",
            {"max_eligible_in_round": best_round},
        )

    session_courts = resolve_courts(session, courts, settings)
    plans = _build_rounds(
        session, rounds, attendance, session_courts, player_map, settings, {}, FairnessTracker()
    )
    schedule = SessionSchedule(session=session, rounds=tuple(plans))
    logger.info(
        "Generated schedule for session %s: %d rounds, %d matches",
        session.session_id,
        len(plans),
        sum(len(p.assignments) for p in plans),
    )
    return schedule


def regenerate_remaining(
    existing: SessionSchedule,
    attendance: Sequence[Attendance],
    courts: Sequence[Court],
    players: Optional[Iterable[Player]] = None,
    settings: Optional[SchedulerSettings] = None,
) -> SessionSchedule:
    """
    Rebuild every OPEN round, keeping LOCKED rounds untouched.

    Locked rounds are carried over as the same objects; the fairness tracker
    is seeded from all of them before the open rounds are rebuilt in order.
    """
    settings = settings or get_settings()
    session = existing.session
    rounds = validate_session_window(session)
    session_courts = resolve_courts(session, courts, settings)

    fixed = {plan.round_index: plan for plan in existing.rounds if plan.is_locked}
    tracker = FairnessTracker.seed_from_rounds(fixed[i] for i in sorted(fixed))
    plans = _build_rounds(
        session, rounds, attendance, session_courts, players_by_id(players), settings, fixed, tracker
    )
    logger.info(
        "Regenerated session %s: %d locked rounds kept, %d open rounds rebuilt",
        session.session_id,
        len(fixed),
        len(plans) - len(fixed),
    )
    return SessionSchedule(session=session, rounds=tuple(plans))
