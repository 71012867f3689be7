from __future__ import annotations

import math
import numbers
from typing import Any

from cineai_core.config import POPULARITY_ANCHOR, RECENCY_HALF_LIFE_YEARS


def clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else x


def as_number(x: Any) -> float:
    """Coerce loosely-typed input to a finite float; anything else counts as 0."""
    if isinstance(x, bool) or not isinstance(x, numbers.Real):
        return 0.0
    x = float(x)
    return x if math.isfinite(x) else 0.0


def norm_rating(rating: Any) -> float:
    # 0-10 scale
    return clamp01(as_number(rating) / 10.0)


def norm_popularity(pop: Any, anchor: float = POPULARITY_ANCHOR, alpha: float = 0.6) -> float:
    p = as_number(pop)
    if p <= 0.0:
        return 0.0
    if p <= 1.0:
        # catalog already normalized it
        return p
    return clamp01((math.log1p(p) / math.log1p(anchor)) ** alpha)


def norm_recency(
    age_years: float | None, half_life_years: float = RECENCY_HALF_LIFE_YEARS
) -> float:
    if age_years is None:
        return 0.0
    # Exponential decay with half-life
    return clamp01(
        math.exp(-math.log(2) * (max(0.0, age_years) / max(1e-6, half_life_years)))
    )
