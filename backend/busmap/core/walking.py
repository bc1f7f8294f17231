"""Walking legs between a rider's real position and a stop."""

from dataclasses import dataclass

from busmap.config import Settings
from busmap.core import geo
from busmap.core.feed import StopRecord


@dataclass(frozen=True)
class WalkingLeg:
    stop_id: int
    distance_km: float
    eta_minutes: float


class WalkingComposer:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def compose(self, point: tuple[float, float] | None, stop: StopRecord) -> WalkingLeg | None:
        """Walk between point (lat, lon) and stop, or None if negligible or no point."""
        if point is None:
            return None
        lat, lon = point
        dist = geo.distance_km(lat, lon, stop.lat, stop.lon)
        if dist < self.settings.walk_min_distance_km:
            return None
        return WalkingLeg(
            stop_id=stop.id,
            distance_km=dist,
            eta_minutes=dist / self.settings.walk_speed_kmh * 60.0,
        )
