# Domain Package
from .errors import (
    CadenceError,
    CardNotFoundError,
    ConcurrentReviewError,
    DeckNotFoundError,
)
from .models import Card, MemoryState, ReviewOutcome, ReviewStats, UpcomingDay
from .ports import CardStore, ReviewHistoryStore

__all__ = [
    "MemoryState",
    "Card",
    "ReviewOutcome",
    "ReviewStats",
    "UpcomingDay",
    "CardStore",
    "ReviewHistoryStore",
    "CadenceError",
    "CardNotFoundError",
    "ConcurrentReviewError",
    "DeckNotFoundError",
]
