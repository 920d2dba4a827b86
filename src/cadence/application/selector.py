"""
Due-set selection and review statistics.

Selection works at calendar-day granularity: a card is due once the date of
its `due_at` is on or before the reference date, whatever the time of day on
either side. All dates are taken in a single deployment timezone.
"""

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone, tzinfo

from cadence.domain.constants import DEFAULT_DUE_LIMIT, UPCOMING_DAYS
from cadence.domain.models import Card, ReviewStats, UpcomingDay


def to_local(ts: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Express a timestamp as a naive wall-clock time in the deployment timezone.

    Aware timestamps are converted to `tz` (UTC if not given). Naive timestamps
    are assumed to already be in that timezone and are returned unchanged.
    """
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(tz or timezone.utc).replace(tzinfo=None)


def local_date(ts: datetime, tz: tzinfo | None = None) -> date:
    return to_local(ts, tz).date()


def is_due(card: Card, reference: datetime, tz: tzinfo | None = None) -> bool:
    return local_date(card.due_at, tz) <= local_date(reference, tz)


def _in_scope(cards: Iterable[Card], deck_id: int | None) -> list[Card]:
    if deck_id is None:
        return list(cards)
    return [c for c in cards if c.deck_id == deck_id]


def select_due(
    cards: Iterable[Card],
    reference: datetime,
    deck_id: int | None = None,
    limit: int = DEFAULT_DUE_LIMIT,
    tz: tzinfo | None = None,
) -> list[Card]:
    """
    Pick the cards eligible for review as of `reference`.

    Args:
        cards: Candidate cards (a snapshot; may be slightly stale).
        reference: The instant the review session starts.
        deck_id: Restrict to a single deck.
        limit: Maximum number of cards returned.
        tz: Deployment timezone used to take calendar dates.

    Returns:
        Due cards, oldest-due first, ties broken by card id.
    """
    if limit <= 0:
        return []

    due = [c for c in _in_scope(cards, deck_id) if is_due(c, reference, tz)]
    due.sort(key=lambda c: (to_local(c.due_at, tz), c.card_id))
    return due[:limit]


def compute_stats(
    cards: Iterable[Card],
    reference: datetime,
    deck_id: int | None = None,
    tz: tzinfo | None = None,
) -> ReviewStats:
    """
    Aggregate review counts for the candidate set.

    `upcoming` always holds one entry per day from tomorrow through
    today + UPCOMING_DAYS, zero-filled.
    """
    today = local_date(reference, tz)
    horizon = [today + timedelta(days=offset) for offset in range(1, UPCOMING_DAYS + 1)]
    per_day = dict.fromkeys(horizon, 0)

    stats = ReviewStats()
    for card in _in_scope(cards, deck_id):
        stats.total_cards += 1
        due_day = local_date(card.due_at, tz)
        due = due_day <= today

        if due:
            stats.due_now += 1
        if card.memory.repetitions == 0:
            stats.new_cards += 1
        elif due:
            stats.review_cards += 1

        if due_day in per_day:
            per_day[due_day] += 1

    stats.upcoming = [UpcomingDay(day=d, count=per_day[d]) for d in horizon]
    return stats
