import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


ALLOW_VIRTUAL_COURT = _env_bool("SCHEDULER_ALLOW_VIRTUAL_COURT")
VIRTUAL_COURT_ID = os.getenv("SCHEDULER_VIRTUAL_COURT_ID", "virtual-court")
CANDIDATE_WINDOW = int(os.getenv("SCHEDULER_CANDIDATE_WINDOW", "12"))
RATING_SCALE = float(os.getenv("SCHEDULER_RATING_SCALE", "100"))
DEFAULT_RATING = float(os.getenv("SCHEDULER_DEFAULT_RATING", "0.5"))


@dataclass(frozen=True)
class SchedulerSettings:
    """Knobs read by the engine.

    Defaults come from the environment (and a local .env file); tests build
    their own instance instead of touching process env.
    """

    allow_virtual_court: bool = field(default_factory=lambda: ALLOW_VIRTUAL_COURT)
    virtual_court_id: str = field(default_factory=lambda: VIRTUAL_COURT_ID)
    candidate_window: int = field(default_factory=lambda: CANDIDATE_WINDOW)
    rating_scale: float = field(default_factory=lambda: RATING_SCALE)
    default_rating: float = field(default_factory=lambda: DEFAULT_RATING)

    def __post_init__(self):
        if self.candidate_window < 4:
            raise ValueError("candidate_window must be >= 4")


def get_settings() -> SchedulerSettings:
    """Settings built from the current module-level env values."""
    return SchedulerSettings()
