"""
Review Service — Application layer orchestrator.

Coordinates the card store, the SM-2 scheduler and the review history log:
fetch card -> advance -> persist (compare-and-swap) -> append history.
"""

import logging
from datetime import datetime, timezone, tzinfo

from cadence.domain.constants import DEFAULT_DUE_LIMIT, DEFAULT_HISTORY_LIMIT
from cadence.domain.errors import ConcurrentReviewError
from cadence.domain.models import Card, ReviewOutcome, ReviewStats
from cadence.domain.ports import CardStore, ReviewHistoryStore

from .scheduler import advance, next_due, normalize_quality
from .selector import compute_stats, select_due

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Application service for review sessions.

    Depends on the CardStore and ReviewHistoryStore abstractions, not
    concrete adapter implementations.
    """

    def __init__(
        self,
        cards: CardStore,
        history: ReviewHistoryStore,
        tz: tzinfo | None = None,
        due_limit: int = DEFAULT_DUE_LIMIT,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        """
        Args:
            cards: The card store (port).
            history: The review history sink (port).
            tz: Deployment timezone for day-granularity comparisons.
            due_limit: Maximum cards per due query.
            history_limit: Default number of history rows returned.
        """
        self._cards = cards
        self._history = history
        self._tz = tz or timezone.utc
        self._due_limit = due_limit
        self._history_limit = history_limit

    def now(self) -> datetime:
        return datetime.now(self._tz)

    async def due_cards(
        self,
        owner_id: int,
        deck_id: int | None = None,
        now: datetime | None = None,
    ) -> list[Card]:
        """
        Cards due for review as of `now`, oldest-due first.
        """
        candidates = await self._cards.list_cards(owner_id, deck_id)
        return select_due(
            candidates,
            now or self.now(),
            deck_id=deck_id,
            limit=self._due_limit,
            tz=self._tz,
        )

    async def stats(
        self,
        owner_id: int,
        deck_id: int | None = None,
        now: datetime | None = None,
    ) -> ReviewStats:
        candidates = await self._cards.list_cards(owner_id, deck_id)
        return compute_stats(candidates, now or self.now(), deck_id=deck_id, tz=self._tz)

    async def submit_review(
        self,
        owner_id: int,
        card_id: int,
        quality: float,
        now: datetime | None = None,
    ) -> Card:
        """
        Apply a review to a card and record it.

        Args:
            owner_id: Caller's ownership scope.
            card_id: Card being reviewed.
            quality: Recall rating; normalized to [0, 5] by the scheduler.
            now: Review instant (defaults to the current time).

        Returns:
            The card carrying its new memory state and due date.

        Raises:
            CardNotFoundError: If the card is missing or not owned.
            ConcurrentReviewError: If another review updated the card first.
        """
        now = now or self.now()
        card = await self._cards.get_card(card_id, owner_id)

        clamped = normalize_quality(quality)
        new_state = advance(clamped, card.memory)
        due_at = next_due(now, new_state.interval)

        try:
            await self._cards.update_memory_state(card_id, card.memory, new_state, due_at)
        except ConcurrentReviewError:
            logger.warning(f"Lost race reviewing card {card_id}; state changed underneath")
            raise

        await self._history.append(
            ReviewOutcome(
                card_id=card_id,
                quality=clamped,
                ease_factor=new_state.ease_factor,
                interval=new_state.interval,
                reviewed_at=now,
            )
        )

        logger.info(
            f"Reviewed card {card_id}: q={clamped} "
            f"ef={new_state.ease_factor:.2f} interval={new_state.interval}d"
        )

        card.memory = new_state
        card.due_at = due_at
        return card

    async def history(
        self,
        owner_id: int,
        card_id: int,
        limit: int | None = None,
    ) -> list[ReviewOutcome]:
        """
        Review history for a card, newest first.

        Raises:
            CardNotFoundError: If the card is missing or not owned.
        """
        await self._cards.get_card(card_id, owner_id)
        return await self._history.list_for_card(card_id, limit or self._history_limit)
