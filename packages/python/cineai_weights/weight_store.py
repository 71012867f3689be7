from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Tuple

import anyio

from cineai_core.config import WEIGHTS_CACHE_TTL_S
from cineai_core.errors import NotFound

from .config_source import WeightConfigSource
from .schemas import (
    DEFAULT_WEIGHT_CONFIG,
    WEIGHT_DESCRIPTIONS,
    WEIGHT_NAMES,
    WeightConfig,
    parse_weight_config,
    validate_weight_update,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WeightConfigStore:
    """
    Owns the cached WeightConfig and its load time.

    - get_weights(): cached for `ttl_s`, then re-read; never raises
    - update_weights(): validate, normalize, merge, persist, invalidate
    - read_current(): strict read for the admin surface

    The cache is a single (config, loaded_at) tuple swapped atomically. At most
    one refresh is in flight: while it runs, other callers get the stale tuple,
    or wait on the refresh when nothing is cached yet. A refresh that started
    before invalidate() does not repopulate the cache.
    """

    def __init__(
        self,
        source: WeightConfigSource,
        *,
        ttl_s: float = WEIGHTS_CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.source = source
        self.ttl_s = ttl_s
        self._clock = clock
        self._now = now
        self._cached: Tuple[WeightConfig, float] | None = None
        self._refresh: anyio.Event | None = None
        self._generation = 0

    async def get_weights(self) -> WeightConfig:
        while True:
            cached = self._cached
            if cached is not None and self._clock() - cached[1] < self.ttl_s:
                return cached[0]
            pending = self._refresh
            if pending is None:
                return await self._refresh_cache()
            if cached is not None:
                return cached[0]
            await pending.wait()

    def invalidate(self) -> None:
        self._cached = None
        self._generation += 1

    async def read_current(self) -> WeightConfig:
        raw = await self.source.read()
        if raw is None:
            raise NotFound("Weights config not found")
        return parse_weight_config(raw)

    async def update_weights(
        self, partial: Mapping[str, Any], *, updated_by: str | None = None
    ) -> WeightConfig:
        accepted = validate_weight_update(partial)

        raw = await self.source.read()
        document: Dict[str, Any] = dict(raw) if isinstance(raw, Mapping) else {}
        try:
            current = parse_weight_config(document).weights.model_dump()
        except ValueError:
            current = DEFAULT_WEIGHT_CONFIG.weights.model_dump()

        # Merge over the persisted weights, then normalize all five to sum to 1
        merged = {**current, **accepted}
        total = sum(merged.values())
        normalized = {name: merged[name] / total for name in WEIGHT_NAMES}

        block = document.get("weights")
        block = dict(block) if isinstance(block, Mapping) else {}
        for name in WEIGHT_NAMES:
            entry = block.get(name)
            entry = dict(entry) if isinstance(entry, Mapping) else {}
            entry["base"] = normalized[name]
            if "genreMatch" in entry:
                entry["genreMatch"] = normalized[name]
            entry.setdefault("description", WEIGHT_DESCRIPTIONS[name])
            block[name] = entry
        document["weights"] = block

        document.setdefault(
            "boosts", DEFAULT_WEIGHT_CONFIG.boosts.model_dump(by_alias=True)
        )
        document.setdefault(
            "thresholds", DEFAULT_WEIGHT_CONFIG.thresholds.model_dump(by_alias=True)
        )

        stamp = self._now()
        meta = document.get("meta")
        meta = dict(meta) if isinstance(meta, Mapping) else {}
        meta.update(
            {
                "dynamicWeightsEnabled": True,
                "lastManualUpdate": stamp.isoformat(),
                "lastUpdatedBy": updated_by or "unknown-admin",
                "notes": "Manually tuned weights via API",
            }
        )
        document["meta"] = meta
        document["version"] = f"2.0-manual-{stamp.date().isoformat()}"
        document["lastUpdated"] = stamp.isoformat()

        await self.source.write(document)
        self.invalidate()

        log.info(
            "Updated recommender weights manually: %s (version %s)",
            normalized,
            document["version"],
        )
        return parse_weight_config(document)

    # ---------- Private helpers ----------
    async def _refresh_cache(self) -> WeightConfig:
        done = self._refresh = anyio.Event()
        generation = self._generation
        try:
            config = await self._load_or_default()
            if generation == self._generation:
                self._cached = (config, self._clock())
            return config
        finally:
            self._refresh = None
            done.set()

    async def _load_or_default(self) -> WeightConfig:
        try:
            raw = await self.source.read()
        except Exception as exc:
            log.warning("Failed to read weight config, using defaults: %s", exc)
            return DEFAULT_WEIGHT_CONFIG

        if raw is None:
            log.warning("Weight config not found, using defaults")
            return DEFAULT_WEIGHT_CONFIG

        try:
            return parse_weight_config(raw)
        except ValueError as exc:
            log.warning("Invalid weight config, using defaults: %s", exc)
            return DEFAULT_WEIGHT_CONFIG
