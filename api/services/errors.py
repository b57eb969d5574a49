"""
Domain errors raised by the fare and earnings services.

Routers do not catch these; the handlers registered in ``main`` turn them
into JSON responses carrying ``detail`` and ``code``.
"""

# ── Codes ──────────────────────────────────────────────────

INVALID_DISTANCE = "INVALID_DISTANCE"
INVALID_DURATION = "INVALID_DURATION"
INVALID_TRIP_TYPE = "INVALID_TRIP_TYPE"
MISSING_DISTANCE_FOR_DROPOFF = "MISSING_DISTANCE_FOR_DROPOFF"
INVALID_MONTH = "INVALID_MONTH"
INVALID_CONFIG = "INVALID_CONFIG"
DRIVER_NOT_FOUND = "DRIVER_NOT_FOUND"
TRIP_TYPE_CONFIG_NOT_FOUND = "TRIP_TYPE_CONFIG_NOT_FOUND"
DUPLICATE_ACTIVE_CONFIG = "DUPLICATE_ACTIVE_CONFIG"

ERROR_MESSAGES = {
    INVALID_DISTANCE: "Distance must be a non-negative number",
    INVALID_DURATION: "Duration must be a non-negative number",
    INVALID_TRIP_TYPE: "Invalid trip type",
    MISSING_DISTANCE_FOR_DROPOFF: "Distance is required for dropoff trips",
    INVALID_MONTH: "Invalid month. Must be between 1 and 12",
    DRIVER_NOT_FOUND: "Driver not found",
    TRIP_TYPE_CONFIG_NOT_FOUND: "Pricing configuration not found",
}


class FleetError(Exception):
    status_code = 500

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        super().__init__(self.message)


class ValidationError(FleetError):
    """Bad or missing input; the caller must fix the request."""
    status_code = 400


class NotFoundError(FleetError):
    status_code = 404


class ConfigurationError(FleetError):
    """Stored configuration cannot be trusted (e.g. two ACTIVE rows for one scope)."""
    status_code = 500
