from pydantic import BaseModel


class RouteInfo(BaseModel):
    id: int
    name: str
    bidirectional: bool
    stop_count: int
    length_km: float


class RouteStopInfo(BaseModel):
    id: int
    name: str
    lat: float
    lon: float
    order: int
    cumulative_km: float


class RouteDetail(BaseModel):
    id: int
    name: str
    bidirectional: bool
    length_km: float
    stops: list[RouteStopInfo] = []


class StopInfoFull(BaseModel):
    id: int
    name: str
    type: str
    lat: float
    lon: float
    routes: list[int] = []


class NearbyStopInfo(BaseModel):
    id: int
    name: str
    type: str
    lat: float
    lon: float
    distance_km: float
    served: bool


class SkippedRouteInfo(BaseModel):
    route_id: int
    name: str
    reason: str


class GraphDiagnostics(BaseModel):
    loaded: bool
    built_at: str | None = None
    stop_count: int = 0
    served_stop_count: int = 0
    route_count: int = 0
    membership_count: int = 0
    rebuild_count: int = 0
    last_error: str | None = None
    skipped_routes: list[SkippedRouteInfo] = []
