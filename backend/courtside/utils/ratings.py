"""
Rating normalization.

Client versions disagree on the rating scale (0-100 in the MVP, 1-10 later).
Ratings are normalized once here, at the boundary, so the engine only ever
sees floats in [0, 1].
"""
import math
from typing import Optional, Union

SUPPORTED_SCALES = (1.0, 10.0, 100.0)


def normalize_rating(raw: Optional[Union[int, float, str]], scale: float = 100.0, default: float = 0.5) -> float:
    """
    Map a raw rating on `scale` to [0, 1].

    - None, "" or non-numeric -> default
    - Values outside the scale are clamped
    """
    if scale not in SUPPORTED_SCALES:
        raise ValueError(f"rating scale must be one of {SUPPORTED_SCALES}, got {scale}")
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if math.isnan(value):
        return default
    return min(1.0, max(0.0, value / scale))
