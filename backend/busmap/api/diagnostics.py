"""Diagnostics API for the route graph lifecycle."""

from fastapi import APIRouter, HTTPException

from busmap.schemas.route import GraphDiagnostics, SkippedRouteInfo

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

# Will be set by main.py
store = None


def _diagnostics() -> GraphDiagnostics:
    graph = store.current
    if graph is None:
        return GraphDiagnostics(loaded=False, rebuild_count=store.rebuild_count, last_error=store.last_error)
    return GraphDiagnostics(
        loaded=True,
        built_at=graph.built_at.isoformat(),
        stop_count=len(graph.stops),
        served_stop_count=len(graph.stop_routes),
        route_count=len(graph.routes),
        membership_count=graph.membership_count,
        rebuild_count=store.rebuild_count,
        last_error=store.last_error,
        skipped_routes=[
            SkippedRouteInfo(route_id=s.route_id, name=s.name, reason=s.reason)
            for s in graph.skipped
        ],
    )


@router.get("/graph", response_model=GraphDiagnostics)
async def get_graph_diagnostics():
    """Snapshot statistics and routes skipped during the last build."""
    if store is None:
        raise HTTPException(status_code=503, detail="Graph store not initialized")
    return _diagnostics()


@router.post("/graph/refresh", response_model=GraphDiagnostics)
async def refresh_graph():
    """Rebuild the graph now, e.g. after a bulk approval."""
    if store is None:
        raise HTTPException(status_code=503, detail="Graph store not initialized")
    graph = await store.refresh()
    if graph is None:
        raise HTTPException(status_code=503, detail=store.last_error or "Approved data unavailable")
    return _diagnostics()
