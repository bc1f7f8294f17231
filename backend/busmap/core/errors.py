"""Failure taxonomy shared by the routing engine and the HTTP layer."""


class RoutingError(Exception):
    """Base class for outcomes reported as ``{success: false, reason}``."""

    reason = "ROUTING_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.reason)
        self.message = message


class InvalidInput(RoutingError):
    """Malformed or out-of-range coordinates, unknown stop id, bad passenger class."""

    reason = "INVALID_INPUT"


class NoNearbyStop(RoutingError):
    reason = "NO_NEARBY_STOP"


class RouteNotFound(RoutingError):
    reason = "ROUTE_NOT_FOUND"


class DataUnavailable(RoutingError):
    """The approved-data feed could not be read. Callers should retry later."""

    reason = "DATA_UNAVAILABLE"
