"""
In-memory store — Infrastructure adapter for tests and ephemeral sessions.

Implements both CardStore and ReviewHistoryStore over plain dicts.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone

from cadence.domain.errors import CardNotFoundError, ConcurrentReviewError, DeckNotFoundError
from cadence.domain.models import Card, MemoryState, ReviewOutcome
from cadence.domain.ports import CardStore, ReviewHistoryStore

logger = logging.getLogger(__name__)


class InMemoryStore(CardStore, ReviewHistoryStore):
    """
    Dict-backed card and history store.

    Returned cards are copies, so callers never mutate stored state directly.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._decks: dict[int, tuple[int, str]] = {}  # deck_id -> (owner_id, name)
        self._cards: dict[int, Card] = {}
        self._history: list[ReviewOutcome] = []
        self._next_deck_id = 1
        self._next_card_id = 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        pass

    def add_deck(self, owner_id: int, name: str) -> int:
        with self._lock:
            deck_id = self._next_deck_id
            self._next_deck_id += 1
            self._decks[deck_id] = (owner_id, name)
        return deck_id

    def add_card(
        self,
        deck_id: int,
        front: str,
        back: str,
        due_at: datetime | None = None,
        memory: MemoryState | None = None,
        owner_id: int | None = None,
    ) -> int:
        """
        Create a card in a deck.

        Raises:
            DeckNotFoundError: If the deck is missing, or `owner_id` is given
                and does not own it.
        """
        with self._lock:
            if deck_id not in self._decks:
                raise DeckNotFoundError(deck_id)
            deck_owner, deck_name = self._decks[deck_id]
            if owner_id is not None and owner_id != deck_owner:
                raise DeckNotFoundError(deck_id)
            card_id = self._next_card_id
            self._next_card_id += 1
            self._cards[card_id] = Card(
                card_id=card_id,
                deck_id=deck_id,
                owner_id=deck_owner,
                front=front,
                back=back,
                due_at=due_at or datetime.now(timezone.utc),
                memory=memory or MemoryState(),
                deck_name=deck_name,
            )
        return card_id

    def delete_card(self, card_id: int) -> None:
        with self._lock:
            self._cards.pop(card_id, None)
            self._history = [h for h in self._history if h.card_id != card_id]

    # --- CardStore ---

    async def get_card(self, card_id: int, owner_id: int) -> Card:
        with self._lock:
            card = self._cards.get(card_id)
            if card is None or card.owner_id != owner_id:
                raise CardNotFoundError(card_id)
            return replace(card)

    async def list_cards(self, owner_id: int, deck_id: int | None = None) -> list[Card]:
        with self._lock:
            return [
                replace(c)
                for c in self._cards.values()
                if c.owner_id == owner_id and (deck_id is None or c.deck_id == deck_id)
            ]

    async def update_memory_state(
        self,
        card_id: int,
        expected: MemoryState,
        new: MemoryState,
        due_at: datetime,
    ) -> None:
        with self._lock:
            card = self._cards.get(card_id)
            if card is None:
                raise CardNotFoundError(card_id)
            if card.memory != expected:
                raise ConcurrentReviewError(card_id)
            card.memory = new
            card.due_at = due_at
        logger.debug(f"Card {card_id} -> {new}, due {due_at.isoformat()}")

    # --- ReviewHistoryStore ---

    async def append(self, outcome: ReviewOutcome) -> None:
        with self._lock:
            self._history.append(outcome)

    async def list_for_card(self, card_id: int, limit: int = 50) -> list[ReviewOutcome]:
        with self._lock:
            rows = [(h, i) for i, h in enumerate(self._history) if h.card_id == card_id]
        # Newest review first; append order breaks ties.
        rows.sort(key=lambda pair: (pair[0].reviewed_at, pair[1]), reverse=True)
        return [h for h, _ in rows[:limit]]
