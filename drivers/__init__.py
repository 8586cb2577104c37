from .models import DriverAvailability
from .geo_index import DriverCandidate, GeoIndex, haversine_km, within_radius

__all__ = [
    "DriverAvailability",
    "DriverCandidate",
    "GeoIndex",
    "haversine_km",
    "within_radius",
]
