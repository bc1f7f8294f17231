"""Route REST API endpoints."""

from fastapi import APIRouter, HTTPException

from busmap.core.errors import DataUnavailable
from busmap.schemas.route import RouteDetail, RouteInfo, RouteStopInfo

router = APIRouter(prefix="/api/routes", tags=["routes"])

# Will be set by main.py
store = None


def _graph():
    if store is None:
        raise HTTPException(status_code=503, detail="Route graph not initialized")
    try:
        return store.require()
    except DataUnavailable:
        raise HTTPException(status_code=503, detail="Route graph not loaded yet")


@router.get("", response_model=list[RouteInfo])
async def list_routes():
    """Get all routes in the live graph."""
    graph = _graph()
    return [
        RouteInfo(
            id=r.id, name=r.name, bidirectional=r.bidirectional,
            stop_count=len(r.stop_ids), length_km=round(r.length_km, 3),
        )
        for r in sorted(graph.routes.values(), key=lambda r: r.id)
    ]


@router.get("/{route_id}", response_model=RouteDetail)
async def get_route(route_id: int):
    """Get route detail with its ordered stops."""
    graph = _graph()
    route = graph.routes.get(route_id)
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")

    stops = []
    for order, stop_id in enumerate(route.stop_ids):
        s = graph.stops[stop_id]
        stops.append(RouteStopInfo(
            id=s.id,
            name=s.name,
            lat=s.lat,
            lon=s.lon,
            order=order,
            cumulative_km=round(route.cumulative_km[order], 3),
        ))

    return RouteDetail(
        id=route.id,
        name=route.name,
        bidirectional=route.bidirectional,
        length_km=round(route.length_km, 3),
        stops=stops,
    )
