"""
Purpose: Geospatial candidate search over available drivers.
What it does:
Holds the current position of every known driver (fed by location pings)
and answers "who is within radius R of point P, best first".

Ranking:
1. quality score (historical average rating), highest first
2. great-circle distance to the origin, closest first
3. driver id, for a deterministic order

State is kept in memory only. After a cold start no driver is visible
until their next location ping.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from threading import Lock
from typing import Dict, Iterable, List, Optional

from .models import DriverAvailability

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two (lat, lon) points in kilometres."""
    lat1, lon1, lat2, lon2 = map(math.radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_radius(origin_lat: float, origin_lon: float, lat: float, lon: float, radius_km: float) -> bool:
    return haversine_km(origin_lat, origin_lon, lat, lon) <= radius_km


@dataclass(frozen=True)
class DriverCandidate:
    driver_id: str
    distance_km: float
    quality_score: float


class GeoIndex:
    def __init__(self, drivers: Optional[Iterable[DriverAvailability]] = None):
        self._drivers: Dict[str, DriverAvailability] = {}
        self._lock = Lock()
        for driver in drivers or ():
            self._drivers[driver.id] = driver

    # ---- writes (location feed, online toggle, ratings) ----

    def update_location(self, driver_id: str, lat: float, lon: float, at: Optional[datetime] = None) -> DriverAvailability:
        """
        Record a location ping. An unknown driver is registered as available,
        which is how drivers reappear after a cold start.
        """
        if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
            raise ValueError(f"Invalid coordinates for driver {driver_id}: ({lat}, {lon})")

        at = at or datetime.utcnow()
        with self._lock:
            current = self._drivers.get(driver_id)
            if current is None:
                updated = DriverAvailability.new(driver_id, lat, lon, last_ping_at=at)
            else:
                updated = replace(current, location=(lat, lon), last_ping_at=at)
            self._drivers[driver_id] = updated
        return updated

    def set_availability(self, driver_id: str, is_available: bool) -> DriverAvailability:
        with self._lock:
            current = self._drivers.get(driver_id)
            if current is None:
                raise KeyError(f"Driver {driver_id} has never reported a location")
            updated = replace(current, is_available=is_available)
            self._drivers[driver_id] = updated
        logger.info(f"Driver {driver_id} is now {'online' if is_available else 'offline'}")
        return updated

    def record_rating(self, driver_id: str, rating: float) -> DriverAvailability:
        """Fold one customer rating into the driver's running average."""
        with self._lock:
            current = self._drivers.get(driver_id)
            if current is None:
                raise KeyError(f"Driver {driver_id} is not indexed")
            count = current.rating_count + 1
            score = current.quality_score + (rating - current.quality_score) / count
            updated = replace(current, quality_score=score, rating_count=count)
            self._drivers[driver_id] = updated
        return updated

    # ---- reads ----

    def get(self, driver_id: str) -> Optional[DriverAvailability]:
        with self._lock:
            return self._drivers.get(driver_id)

    def is_available(self, driver_id: str) -> bool:
        driver = self.get(driver_id)
        return driver is not None and driver.is_available

    def distance_km(self, driver_id: str, lat: float, lon: float) -> Optional[float]:
        driver = self.get(driver_id)
        if driver is None:
            return None
        return haversine_km(lat, lon, *driver.location)

    def rank_candidates(
        self,
        origin_lat: float,
        origin_lon: float,
        radius_km: float,
        exclude: Iterable[str] = (),
    ) -> List[DriverCandidate]:
        if radius_km < 0:
            raise ValueError("radius_km must be >= 0")

        excluded = set(exclude)
        with self._lock:
            snapshot = list(self._drivers.values())

        candidates: List[DriverCandidate] = []
        for driver in snapshot:
            if not driver.is_available or driver.id in excluded:
                continue
            distance = haversine_km(origin_lat, origin_lon, *driver.location)
            if distance > radius_km:
                continue
            candidates.append(DriverCandidate(driver.id, distance, driver.quality_score))

        candidates.sort(key=lambda candidate: (-candidate.quality_score, candidate.distance_km, candidate.driver_id))
        return candidates

    def find_candidates(
        self,
        origin_lat: float,
        origin_lon: float,
        radius_km: float,
        exclude: Iterable[str] = (),
    ) -> List[str]:
        """Driver ids within radius_km, best first. Empty list when nobody qualifies."""
        return [candidate.driver_id for candidate in self.rank_candidates(origin_lat, origin_lon, radius_km, exclude)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._drivers)
