"""
Domain models for SM-2 scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from .constants import DEFAULT_EASE_FACTOR


@dataclass(frozen=True)
class MemoryState:
    """
    SM-2 memory state for a card.

    Attributes:
        ease_factor: Recall ease multiplier, never below 1.3.
        interval: Whole days until the next exposure (0 = never reviewed).
        repetitions: Consecutive successful recalls since the last failure.
    """

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0


@dataclass
class Card:
    """
    A card as seen by the engine.

    Only `memory` and `due_at` are scheduling data; the rest is carried
    through from the card store for scoping and display.
    """

    card_id: int
    deck_id: int
    owner_id: int
    front: str
    back: str
    due_at: datetime
    memory: MemoryState = field(default_factory=MemoryState)
    deck_name: str | None = None

    @property
    def is_new(self) -> bool:
        return self.memory.repetitions == 0


@dataclass(frozen=True)
class ReviewOutcome:
    """
    A single review history entry.

    Attributes:
        card_id: The card that was reviewed.
        quality: Clamped quality rating (0-5).
        ease_factor: Ease factor after this review.
        interval: Interval assigned after this review (days).
        reviewed_at: When the review was submitted.
    """

    card_id: int
    quality: int
    ease_factor: float
    interval: int
    reviewed_at: datetime


@dataclass(frozen=True)
class UpcomingDay:
    day: date
    count: int


@dataclass
class ReviewStats:
    """Aggregate counts over a (optionally deck-scoped) candidate set."""

    total_cards: int = 0
    due_now: int = 0
    new_cards: int = 0
    review_cards: int = 0
    upcoming: list[UpcomingDay] = field(default_factory=list)
