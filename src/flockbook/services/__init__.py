from .session_service import TokenSessionProvider
from .cache_service import DataCache
from .egg_service import EggService
from .expense_service import ExpenseService
from .feed_service import FeedService
from .flock_service import FlockService
from .crm_service import CrmService
from .reporting_service import ReportingService
from .submission import Submission

__all__ = [
    "TokenSessionProvider",
    "DataCache",
    "EggService",
    "ExpenseService",
    "FeedService",
    "FlockService",
    "CrmService",
    "ReportingService",
    "Submission",
]
