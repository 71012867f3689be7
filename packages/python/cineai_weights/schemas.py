from __future__ import annotations

import math
from typing import Annotated, Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field

from cineai_core.errors import WeightValidationError, ZeroWeightSumError

WEIGHT_NAMES = ("semantic", "rating", "popularity", "recency", "preference")

WEIGHT_DESCRIPTIONS = {
    "semantic": "Base semantic similarity score from embeddings",
    "rating": "IMDb/TMDB rating influence",
    "popularity": "Movie popularity/vote count influence",
    "recency": "Release year recency boost",
    "preference": "User preference genre matching boost",
}

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0, allow_inf_nan=False)]


class BaseWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    semantic: UnitFloat = 0.0
    rating: UnitFloat = 0.0
    popularity: UnitFloat = 0.0
    recency: UnitFloat = 0.0
    preference: UnitFloat = 0.0

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in WEIGHT_NAMES)


class Boosts(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    recent_release: UnitFloat = Field(default=0.10, alias="recentRelease")
    top_rated: UnitFloat = Field(default=0.15, alias="topRated")
    genre_match: UnitFloat = Field(default=0.20, alias="genreMatch")
    preferred_director: UnitFloat = Field(default=0.10, alias="preferredDirector")
    preferred_actor: UnitFloat = Field(default=0.05, alias="preferredActor")
    seasonal_trending: UnitFloat = Field(default=0.10, alias="seasonalTrending")


class Thresholds(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    high_confidence: UnitFloat = Field(default=0.8, alias="highConfidence")
    medium_confidence: UnitFloat = Field(default=0.6, alias="mediumConfidence")
    low_confidence: UnitFloat = Field(default=0.4, alias="lowConfidence")


# alias -> field name, so overrides accept either spelling
_BOOST_KEYS = {
    **{f.alias: name for name, f in Boosts.model_fields.items()},
    **{name: name for name in Boosts.model_fields},
}


class WeightConfig(BaseModel):
    """Fully validated scoring configuration; downstream code never sees raw JSON."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    weights: BaseWeights = Field(default_factory=BaseWeights)
    boosts: Boosts = Field(default_factory=Boosts)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    version: str = "1.0"
    last_updated: str | None = Field(default=None, alias="lastUpdated")
    meta: Dict[str, Any] = Field(default_factory=dict)

    def with_overrides(self, factors: Mapping[str, Any]) -> "WeightConfig":
        """Return a copy with the named base weights / boosts replaced."""
        weights = self.weights.model_dump()
        boosts = self.boosts.model_dump()
        for key, value in factors.items():
            _check_unit_value(key, value)
            if key in WEIGHT_NAMES:
                weights[key] = float(value)
            elif key in _BOOST_KEYS:
                boosts[_BOOST_KEYS[key]] = float(value)
            else:
                raise WeightValidationError(key, f"Unknown scoring factor: {key}")
        return self.model_copy(
            update={
                "weights": BaseWeights.model_validate(weights),
                "boosts": Boosts.model_validate(boosts),
            }
        )


DEFAULT_WEIGHT_CONFIG = WeightConfig(
    weights=BaseWeights(
        semantic=0.40, rating=0.25, popularity=0.15, recency=0.10, preference=0.10
    ),
    version="1.0-default",
    meta={"source": "default"},
)


def _base_of(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        # Older files store the preference weight under "genreMatch"
        return entry.get("base", entry.get("genreMatch"))
    return entry


def parse_weight_config(raw: Any) -> WeightConfig:
    """
    Validate a raw config document into a WeightConfig.

    Accepts the nested `{weights: {<name>: {base: ...}}}` shape as well as the
    legacy flat `{semantic: 0.4, ...}` shape. Raises ValueError (pydantic's
    ValidationError included) on anything else.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("weight config must be a JSON object")

    block = raw.get("weights")
    if isinstance(block, Mapping):
        bases = {
            name: base
            for name in WEIGHT_NAMES
            if (base := _base_of(block.get(name))) is not None
        }
    elif any(name in raw for name in WEIGHT_NAMES):
        bases = {name: raw[name] for name in WEIGHT_NAMES if name in raw}
    else:
        raise ValueError("weight config has no weights")

    meta = raw.get("meta")
    return WeightConfig.model_validate(
        {
            "weights": bases,
            "boosts": raw.get("boosts") or {},
            "thresholds": raw.get("thresholds") or {},
            "version": str(raw.get("version") or "1.0"),
            "lastUpdated": raw.get("lastUpdated"),
            "meta": dict(meta) if isinstance(meta, Mapping) else {},
        }
    )


def _check_unit_value(key: str, value: Any) -> None:
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or value < 0
        or value > 1
    ):
        raise WeightValidationError(
            key, f"Invalid weight for {key}: must be between 0 and 1"
        )


def validate_weight_update(partial: Any) -> Dict[str, float]:
    """Check an admin weight update; raises a field-named error on bad input."""
    if not isinstance(partial, Mapping) or not partial:
        raise WeightValidationError("weights", "Invalid weights format")

    out: Dict[str, float] = {}
    for key, value in partial.items():
        if key not in WEIGHT_NAMES:
            raise WeightValidationError(key, f"Unknown weight: {key}")
        _check_unit_value(key, value)
        out[key] = float(value)

    if sum(out.values()) == 0:
        raise ZeroWeightSumError()
    return out
