# Application Package
from .review_service import ReviewService
from .scheduler import advance, next_due, normalize_quality
from .selector import compute_stats, select_due

__all__ = [
    "advance",
    "next_due",
    "normalize_quality",
    "select_due",
    "compute_stats",
    "ReviewService",
]
