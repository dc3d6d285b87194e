"""
Time window helpers shared by round tiling, eligibility and court availability.

All windows are half-open [start, end). A player or court "covers" a round
only when its window contains the whole round.
"""

from datetime import datetime
from typing import List

from courtside.models.court import Court
from courtside.models.player import Attendance
from courtside.models.schedule import Round, SessionWindow


def window_covers(window_start: datetime, window_end: datetime, start: datetime, end: datetime) -> bool:
    return window_start <= start and window_end >= end


def tile_rounds(session: SessionWindow) -> List[Round]:
    """
    Split [session.start, session.end) into contiguous rounds of round_minutes.

    A trailing slice shorter than round_minutes is dropped, never emitted.
    """
    rounds: List[Round] = []
    length = session.round_length
    start = session.start
    index = 0
    while start + length <= session.end:
        rounds.append(Round(round_index=index, start_time=start, end_time=start + length))
        start = start + length
        index += 1
    return rounds


def attendance_covers_round(attendance: Attendance, round_: Round) -> bool:
    return window_covers(attendance.arrive_at, attendance.leave_at, round_.start_time, round_.end_time)


def court_covers_round(court: Court, round_: Round) -> bool:
    return window_covers(court.start_time, court.end_time, round_.start_time, round_.end_time)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)
