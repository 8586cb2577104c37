"""
Purpose: Core data models for the drivers domain.
What it does:
Defines the availability projection of a driver account that the GeoIndex
ranks: online flag, last known position, and historical rating average.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class DriverAvailability:
    """
    A point-in-time snapshot of a driver as seen by dispatch.

    is_available is the coarse online/offline toggle, not a busy flag:
    whether the driver already carries an active delivery is answered by
    the dispatch store, never by this record.
    """
    id: str
    location: LatLon
    is_available: bool = True

    # Historical average of customer ratings, used for ranking.
    quality_score: float = 0.0
    rating_count: int = 0
    last_ping_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        driver_id: str,
        lat: float,
        lon: float,
        is_available: bool = True,
        quality_score: float = 0.0,
        rating_count: int = 0,
        last_ping_at: Optional[datetime] = None,
    ) -> DriverAvailability:
        return cls(
            id=driver_id,
            location=(lat, lon),
            is_available=is_available,
            quality_score=quality_score,
            rating_count=rating_count,
            last_ping_at=last_ping_at or datetime.utcnow(),
        )
