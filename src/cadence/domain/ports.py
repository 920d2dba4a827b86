"""
Ports (interfaces) for card and review-history storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import Card, MemoryState, ReviewOutcome


class CardStore(ABC):
    """
    Port for reading cards and writing their memory state.

    Implementations:
        - InMemoryStore: Dict-backed store for tests and ephemeral sessions.
        - SqliteStore: Persists cards and history in a SQLite database.
    """

    @abstractmethod
    async def get_card(self, card_id: int, owner_id: int) -> Card:
        """
        Fetch a single card within the owner's scope.

        Raises:
            CardNotFoundError: If the card does not exist or belongs to someone else.
        """
        pass

    @abstractmethod
    async def list_cards(self, owner_id: int, deck_id: int | None = None) -> list[Card]:
        """
        Fetch candidate cards for due selection and stats.

        Args:
            owner_id: Only cards in this owner's decks are returned.
            deck_id: Optional deck scope.
        """
        pass

    @abstractmethod
    async def update_memory_state(
        self,
        card_id: int,
        expected: MemoryState,
        new: MemoryState,
        due_at: datetime,
    ) -> None:
        """
        Atomically replace a card's memory state and due date.

        The write only applies if the stored state still equals `expected`.

        Raises:
            CardNotFoundError: If the card no longer exists.
            ConcurrentReviewError: If the stored state differs from `expected`.
        """
        pass


class ReviewHistoryStore(ABC):
    """Append-only sink for review outcomes."""

    @abstractmethod
    async def append(self, outcome: ReviewOutcome) -> None:
        pass

    @abstractmethod
    async def list_for_card(self, card_id: int, limit: int = 50) -> list[ReviewOutcome]:
        """
        Return the most recent outcomes for a card, newest first.
        """
        pass
