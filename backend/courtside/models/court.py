from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Court:
    id: str
    court_name: str
    start_time: datetime
    end_time: datetime
