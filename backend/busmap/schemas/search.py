from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from busmap.core.fare import PassengerClass


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinate(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180, validation_alias=AliasChoices("lon", "lng"))


StopId = Annotated[int, Field(gt=0)]


class SearchRequest(CamelModel):
    origin: StopId | Coordinate
    destination: StopId | Coordinate
    passenger_class: PassengerClass = PassengerClass.REGULAR
    user_origin: Coordinate | None = None
    user_destination: Coordinate | None = None


class LegInfo(CamelModel):
    route_id: int
    route_name: str
    board_stop_id: int
    board_stop_name: str
    alight_stop_id: int
    alight_stop_name: str
    stop_ids: list[int] = []  # board .. alight inclusive
    distance_km: float
    eta_minutes: float
    fare: float


class WalkingLegInfo(CamelModel):
    stop_id: int
    stop_name: str
    distance_km: float
    eta_minutes: float


class WalkingInfo(CamelModel):
    before: WalkingLegInfo | None = None
    after: WalkingLegInfo | None = None


class SearchResponse(CamelModel):
    success: bool
    reason: str | None = None
    message: str | None = None
    legs: list[LegInfo] | None = None
    walking: WalkingInfo | None = None
    total_fare: float | None = None
    total_distance_km: float | None = None
    total_eta_minutes: float | None = None
    carbon_saved_kg: float | None = None
    transfer_count: int | None = None
