"""Stop REST API endpoints."""

from fastapi import APIRouter, HTTPException, Query

from busmap.config import settings
from busmap.core.errors import DataUnavailable
from busmap.schemas.route import NearbyStopInfo, StopInfoFull

router = APIRouter(prefix="/api/stops", tags=["stops"])

# Will be set by main.py
store = None


def _graph():
    if store is None:
        raise HTTPException(status_code=503, detail="Route graph not initialized")
    try:
        return store.require()
    except DataUnavailable:
        raise HTTPException(status_code=503, detail="Route graph not loaded yet")


@router.get("/nearby", response_model=list[NearbyStopInfo])
async def nearby_stops(
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    radius_km: float | None = Query(default=None, gt=0, le=50),
    limit: int | None = Query(default=None, ge=1, le=100),
):
    """Approved stops near a coordinate, nearest first."""
    graph = _graph()
    found = graph.locator.nearest_stops(
        lat, lon,
        radius_km if radius_km is not None else settings.nearest_stop_radius_km,
        limit if limit is not None else settings.nearest_stop_limit,
    )
    return [
        NearbyStopInfo(
            id=n.stop.id, name=n.stop.name, type=n.stop.type,
            lat=n.stop.lat, lon=n.stop.lon,
            distance_km=round(n.distance_km, 3),
            served=graph.is_served(n.stop.id),
        )
        for n in found
    ]


@router.get("/{stop_id}", response_model=StopInfoFull)
async def get_stop(stop_id: int):
    """Get one approved stop with the routes serving it."""
    graph = _graph()
    stop = graph.stops.get(stop_id)
    if not stop:
        raise HTTPException(status_code=404, detail="Stop not found")
    return StopInfoFull(
        id=stop.id, name=stop.name, type=stop.type, lat=stop.lat, lon=stop.lon,
        routes=sorted({route_id for route_id, _ in graph.routes_at(stop_id)}),
    )
