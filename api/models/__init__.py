from models.franchise import Franchise
from models.driver import Driver
from models.trip import Trip
from models.penalty import Penalty, DriverPenalty
from models.trip_type_config import TripTypeConfig
from models.earnings_config import DriverEarningsConfig
from models.earnings_record import DriverDailyMetrics, DriverMonthlyPerformance

__all__ = [
    "Franchise", "Driver", "Trip", "Penalty", "DriverPenalty",
    "TripTypeConfig", "DriverEarningsConfig",
    "DriverDailyMetrics", "DriverMonthlyPerformance",
]
