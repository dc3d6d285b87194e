"""
Canonical helpers for session courts.

Court order in the input list is creation order; every helper here preserves
it so court assignment stays deterministic.
"""
from typing import Dict, List, Sequence

from courtside.models.court import Court
from courtside.models.schedule import Round, SessionWindow
from courtside.utils.time_windows import court_covers_round


def courts_by_id(courts: Sequence[Court]) -> Dict[str, Court]:
    return {c.id: c for c in courts}


def available_courts(courts: Sequence[Court], round_: Round) -> List[Court]:
    """Courts whose availability window covers the whole round, in creation order."""
    return [c for c in courts if court_covers_round(c, round_)]


def virtual_court(session: SessionWindow, court_id: str) -> Court:
    """Implicit court spanning the whole session, for courtless sessions."""
    return Court(id=court_id, court_name="Court", start_time=session.start, end_time=session.end)


def duplicate_court_ids(courts: Sequence[Court]) -> List[str]:
    seen = set()
    dupes: List[str] = []
    for court in courts:
        if court.id in seen and court.id not in dupes:
            dupes.append(court.id)
        seen.add(court.id)
    return dupes
