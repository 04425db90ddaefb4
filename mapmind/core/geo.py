from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0

# Guesses never land on the poles; the map projection breaks down past this.
MAX_GUESS_LAT = 85.0


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def clamped(self) -> "Coordinate":
        """Clamp latitude into the guessable band. Longitude is left as-is (no wraparound)."""

        return Coordinate(lat=clamp_lat(self.lat), lng=self.lng)


def clamp_lat(lat: float) -> float:
    return max(-MAX_GUESS_LAT, min(MAX_GUESS_LAT, lat))


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates, in kilometres."""

    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # Floating error can push h a hair past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def round_km(km: float) -> int:
    # Half-up, not Python's banker's rounding: 6.5 km scores as 7.
    return int(math.floor(km + 0.5))
