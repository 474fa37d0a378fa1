from .models import (
    ApiResponse,
    AppSnapshot,
    Customer,
    EggEntry,
    Expense,
    FeedEntry,
    FlockEvent,
    FlockProfile,
    Sale,
    Session,
)
from .errors import (
    AppError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)

__all__ = [
    "ApiResponse",
    "AppSnapshot",
    "Customer",
    "EggEntry",
    "Expense",
    "FeedEntry",
    "FlockEvent",
    "FlockProfile",
    "Sale",
    "Session",
    "AppError",
    "AuthenticationError",
    "NetworkError",
    "NotFoundError",
    "ServerError",
    "ValidationError",
]
