"""Location-aware selection of listings and banners for a requester's postal code."""

from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from georank.core import geo
from georank.core.models import CandidateHints, Location, ScoredCandidate
from georank.core.resolver import CoordinateResolver

logger = logging.getLogger(__name__)

TIER_ISOLATED = "isolated"
TIER_TOP_UP = "top_up"
GLOBAL_SCORE = 100

HintExtractor = Callable[[Any], CandidateHints]


@dataclass
class Buckets:
    global_: List[ScoredCandidate] = field(default_factory=list)
    area: List[ScoredCandidate] = field(default_factory=list)
    nearby: List[ScoredCandidate] = field(default_factory=list)
    fallback: List[ScoredCandidate] = field(default_factory=list)
    excluded: int = 0


class GeoRelevanceSelector:
    """Rank a pre-filtered candidate pool by proximity to a requester.

    Candidates are bucketed into global, area, nearby and fallback tiers and
    consumed in that order. With the ``isolated`` policy only the first
    non-empty tier after the global items is used; ``top_up`` keeps filling
    from lower tiers while slots remain. Global items stay pinned at the
    front and everything after them is shuffled.
    """

    def __init__(
        self,
        hint_extractor: HintExtractor,
        resolver: CoordinateResolver,
        *,
        honor_global_sentinel: bool = False,
        tier_policy: str = TIER_ISOLATED,
        area_radius_km: float = geo.SAME_AREA_RADIUS_KM,
        nearby_radius_km: float = geo.SAME_AREA_RADIUS_KM,
        max_workers: int = 8,
        rng: Optional[random.Random] = None,
    ) -> None:
        if tier_policy not in (TIER_ISOLATED, TIER_TOP_UP):
            raise ValueError(f"unknown tier policy: {tier_policy}")
        self._hint_extractor = hint_extractor
        self._resolver = resolver
        self._honor_global_sentinel = honor_global_sentinel
        self._tier_policy = tier_policy
        self._area_radius_km = area_radius_km
        self._nearby_radius_km = nearby_radius_km
        self._max_workers = max(1, max_workers)
        self._rng = rng or random.Random()

    def select(self, postal_code: Optional[str], candidates: Iterable[Any], max_results: int) -> List[ScoredCandidate]:
        pool = list(candidates)
        if max_results <= 0 or not pool:
            return []

        postal_code = str(postal_code or "").strip()
        if not postal_code:
            logger.info("No postal code provided - sampling %d of %d candidates", max_results, len(pool))
            return self._sample(pool, max_results)

        requester = self._resolve_requester(postal_code)
        if requester is None:
            logger.info("Could not determine location for postal code %s - sampling whole pool", postal_code)
            return self._sample(pool, max_results)

        logger.info(
            "Requester location for %s: district=%s city=%s state=%s coordinates=%s",
            postal_code,
            requester.district,
            requester.city,
            requester.state,
            requester.coordinates,
        )
        buckets = self._partition(requester, pool)
        logger.info(
            "Categorization - Global: %d, Area: %d, Nearby: %d, Fallback: %d, Excluded: %d",
            len(buckets.global_),
            len(buckets.area),
            len(buckets.nearby),
            len(buckets.fallback),
            buckets.excluded,
        )
        return self._assemble(buckets, max_results)

    # ---------- Internals ----------

    def _split_global(self, pool: Sequence[Any]) -> Tuple[List[ScoredCandidate], List[Tuple[Any, CandidateHints]]]:
        global_items: List[ScoredCandidate] = []
        rest: List[Tuple[Any, CandidateHints]] = []
        for item in pool:
            hints = self._hint_extractor(item)
            if self._honor_global_sentinel and hints.is_global:
                global_items.append(ScoredCandidate(item, location_score=GLOBAL_SCORE, tier="global"))
            else:
                rest.append((item, hints))
        return global_items, rest

    def _sample(self, pool: Sequence[Any], max_results: int) -> List[ScoredCandidate]:
        global_items, rest = self._split_global(pool)
        others = [ScoredCandidate(item) for item, _ in rest]
        self._rng.shuffle(others)
        return (global_items + others)[:max_results]

    def _resolve_requester(self, postal_code: str) -> Optional[Location]:
        try:
            return self._resolver.resolve_postal_code(postal_code)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Requester resolution failed for postal code %s: %s", postal_code, exc)
            return None

    def _resolve_one(self, hints: CandidateHints) -> Optional[Location]:
        try:
            return self._resolver.resolve_candidate(hints)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Location resolution failed for %s: %s", hints.entity_key, exc)
            return None

    def _resolve_all(self, entries: Sequence[Tuple[Any, CandidateHints]]) -> List[Optional[Location]]:
        locations: List[Optional[Location]] = [None] * len(entries)
        pending = [index for index, (_, hints) in enumerate(entries) if hints.has_any]
        if not pending:
            return locations

        workers = min(self._max_workers, len(pending))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {index: executor.submit(self._resolve_one, entries[index][1]) for index in pending}
            for index, future in futures.items():
                locations[index] = future.result()
        return locations

    def _partition(self, requester: Location, pool: Sequence[Any]) -> Buckets:
        buckets = Buckets()
        buckets.global_, entries = self._split_global(pool)
        locations = self._resolve_all(entries)

        for (item, hints), location in zip(entries, locations):
            if location is None:
                if not hints.has_any or not hints.restrictive:
                    buckets.fallback.append(ScoredCandidate(item, tier="fallback"))
                else:
                    logger.debug("Candidate %s skipped: location hints could not be resolved", hints.entity_key)
                    buckets.excluded += 1
                continue

            if geo.is_same_area(requester, location, radius_km=self._area_radius_km):
                score, distance = geo.score_candidate(requester, location, hints.service_radius_km)
                buckets.area.append(ScoredCandidate(item, location_score=score, distance_km=distance, tier="area"))
                continue

            distance = geo.nearby_distance(requester, location, radius_km=self._nearby_radius_km)
            if distance is not None:
                buckets.nearby.append(ScoredCandidate(item, distance_km=distance, tier="nearby"))
            elif not hints.restrictive:
                buckets.fallback.append(ScoredCandidate(item, tier="fallback"))
            else:
                logger.debug("Candidate %s excluded: outside requester area", hints.entity_key)
                buckets.excluded += 1
        return buckets

    def _assemble(self, buckets: Buckets, max_results: int) -> List[ScoredCandidate]:
        pinned = buckets.global_[:max_results]
        remaining = max_results - len(pinned)

        fallback = list(buckets.fallback)
        self._rng.shuffle(fallback)
        tiers = [
            sorted(buckets.area, key=lambda c: -c.location_score),
            sorted(buckets.nearby, key=lambda c: c.distance_km),
            fallback,
        ]

        chosen: List[ScoredCandidate] = []
        for tier in tiers:
            if remaining <= 0:
                break
            if not tier:
                continue
            taken = tier[:remaining]
            chosen.extend(taken)
            remaining -= len(taken)
            if self._tier_policy == TIER_ISOLATED:
                break

        self._rng.shuffle(chosen)
        logger.info("Final selection - Total: %d (pinned global: %d)", len(pinned) + len(chosen), len(pinned))
        return (pinned + chosen)[:max_results]
