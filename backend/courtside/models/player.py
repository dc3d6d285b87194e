from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Player:
    id: str
    display_name: str
    rating: float = 0.5  # normalized to [0, 1] at the boundary
    is_active: bool = True


@dataclass(frozen=True)
class Attendance:
    player_id: str
    arrive_at: datetime
    leave_at: datetime
