"""Simulated local-search ranking at a single grid point.

Each candidate scores ``1 / (distance_km + epsilon)`` scaled by a random
jitter factor in ``[1 - jitter, 1 + jitter]``, so nearer businesses usually
rank higher but not always. Candidates are sorted by score descending with a
stable sort, and ranks are dense 1-based positions.
"""

import logging
import random

from Grid_Rank.engine.geometry import haversine_km
from Grid_Rank.models.business import BusinessEntity, Coordinate
from Grid_Rank.models.scan import RankedEntry

logger = logging.getLogger(__name__)

DEFAULT_JITTER: float = 0.2
DEFAULT_EPSILON_KM: float = 0.1


class RankScorer:
    """Ranks candidate businesses by simulated relevance at a coordinate.

    With ``jitter=0`` the ranking is pure proximity and fully deterministic.
    With a ``seed`` the random stream for a point is derived from the seed
    and the point's coordinate, so repeated calls with the same inputs
    return the same ranking.

    Args:
        jitter: Half-width of the uniform score multiplier, in ``[0, 1)``.
        seed: Optional seed making the jitter reproducible.
        epsilon: Distance offset in km that keeps the score finite at 0 km.
    """

    def __init__(
        self,
        jitter: float = DEFAULT_JITTER,
        seed: int | None = None,
        epsilon: float = DEFAULT_EPSILON_KM,
    ) -> None:
        if not 0.0 <= jitter < 1.0:
            msg = f"jitter must be in [0, 1), got {jitter}"
            raise ValueError(msg)
        if epsilon <= 0.0:
            msg = f"epsilon must be positive, got {epsilon}"
            raise ValueError(msg)
        self._jitter = jitter
        self._seed = seed
        self._epsilon = epsilon
        self._rng = random.Random()

    @property
    def jitter(self) -> float:
        """Half-width of the score multiplier."""
        return self._jitter

    @property
    def seed(self) -> int | None:
        """Seed for reproducible jitter, if any."""
        return self._seed

    def score(self, point: Coordinate, business: BusinessEntity, rng: random.Random) -> float:
        """Return the jittered proximity score of *business* at *point*."""
        distance = haversine_km(point, business.location)
        base = 1.0 / (distance + self._epsilon)
        if self._jitter == 0.0:
            return base
        return base * rng.uniform(1.0 - self._jitter, 1.0 + self._jitter)

    def rank_at(self, point: Coordinate, candidates: list[BusinessEntity]) -> list[RankedEntry]:
        """Rank every candidate at *point*.

        Args:
            point: Sample coordinate.
            candidates: Businesses to rank; ids must be unique.

        Returns:
            One RankedEntry per candidate, ranks 1..N in score order. Ties
            keep the input order.

        Raises:
            ValueError: If *candidates* is empty or contains duplicate ids.
        """
        if not candidates:
            msg = "Cannot rank an empty candidate list"
            raise ValueError(msg)
        ids = [c.id for c in candidates]
        if len(set(ids)) != len(ids):
            msg = f"Duplicate candidate ids: {sorted({i for i in ids if ids.count(i) > 1})}"
            raise ValueError(msg)

        rng = self._rng_for(point)
        scored = [(self.score(point, business, rng), business) for business in candidates]
        # list.sort is stable, so equal scores keep candidate order.
        scored.sort(key=lambda pair: pair[0], reverse=True)

        return [
            RankedEntry(rank=rank, business=business)
            for rank, (_, business) in enumerate(scored, start=1)
        ]

    def _rng_for(self, point: Coordinate) -> random.Random:
        if self._seed is None:
            return self._rng
        return random.Random(f"{self._seed}:{point.latitude!r}:{point.longitude!r}")
