"""Fare and emission estimates for bus rides."""

import enum
import math

from busmap.config import Settings


class PassengerClass(str, enum.Enum):
    REGULAR = "regular"
    STUDENT = "student"
    ELDERLY = "elderly"


def round_to_nearest(value: float, step: float) -> float:
    """Round half-up to a multiple of step (32.5 -> 35 for step 5)."""
    if step <= 0:
        return value
    return math.floor(value / step + 0.5) * step


class FareCalculator:
    """Per-ride fare: base + per-km, rounded, then discounted.

    Rounding happens before the discount. Reversing the order gives
    different totals (an elderly 10 km ride is 17.5, not 15 or 20).
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def discount_factor(self, passenger_class: PassengerClass) -> float:
        if passenger_class == PassengerClass.STUDENT:
            return self.settings.student_fare_multiplier
        if passenger_class == PassengerClass.ELDERLY:
            return self.settings.elderly_fare_multiplier
        return 1.0

    def undiscounted(self, distance_km: float) -> float:
        s = self.settings
        raw = s.fare_base_rate + s.fare_per_km * max(0.0, distance_km)
        return round_to_nearest(raw, s.fare_round_to)

    def fare(self, distance_km: float, passenger_class: PassengerClass = PassengerClass.REGULAR) -> float:
        return self.undiscounted(distance_km) * self.discount_factor(passenger_class)

    def carbon_saved_kg(self, distance_km: float) -> float:
        """CO2 avoided by riding instead of taking a car/taxi."""
        s = self.settings
        saved_per_km = max(0.0, s.emission_car_taxi - s.emission_public_transport)
        return max(0.0, distance_km) * saved_per_km
