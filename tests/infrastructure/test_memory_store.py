from datetime import datetime, timedelta, timezone

import pytest

from cadence.domain.errors import CardNotFoundError, ConcurrentReviewError, DeckNotFoundError
from cadence.domain.models import MemoryState, ReviewOutcome

NOON = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_add_card_to_unknown_deck(store):
    with pytest.raises(DeckNotFoundError):
        store.add_card(99, "a", "b")


def test_add_card_checks_deck_owner(store):
    deck = store.add_deck(1, "D")

    with pytest.raises(DeckNotFoundError):
        store.add_card(deck, "a", "b", owner_id=2)

    cid = store.add_card(deck, "a", "b", owner_id=1)
    assert cid == 1


@pytest.mark.asyncio
async def test_returned_cards_are_copies(store):
    deck = store.add_deck(1, "D")
    cid = store.add_card(deck, "a", "b", due_at=NOON)

    card = await store.get_card(cid, 1)
    card.memory = MemoryState(ease_factor=1.3, interval=9, repetitions=9)

    assert (await store.get_card(cid, 1)).memory == MemoryState()


@pytest.mark.asyncio
async def test_compare_and_swap(store):
    deck = store.add_deck(1, "D")
    cid = store.add_card(deck, "a", "b", due_at=NOON)
    new = MemoryState(ease_factor=2.6, interval=1, repetitions=1)

    await store.update_memory_state(cid, MemoryState(), new, NOON)
    with pytest.raises(ConcurrentReviewError):
        await store.update_memory_state(cid, MemoryState(), new, NOON)
    with pytest.raises(CardNotFoundError):
        await store.update_memory_state(cid + 1, MemoryState(), new, NOON)


@pytest.mark.asyncio
async def test_delete_card(store):
    deck = store.add_deck(1, "D")
    cid = store.add_card(deck, "a", "b", due_at=NOON)

    store.delete_card(cid)

    with pytest.raises(CardNotFoundError):
        await store.get_card(cid, 1)
    assert await store.list_cards(1) == []


@pytest.mark.asyncio
async def test_history_sorted_by_review_time(store):
    deck = store.add_deck(1, "D")
    cid = store.add_card(deck, "a", "b", due_at=NOON)

    # Submitted out of order: a backdated review lands last
    await store.append(ReviewOutcome(cid, 5, 2.6, 1, NOON + timedelta(days=1)))
    await store.append(ReviewOutcome(cid, 4, 2.5, 1, NOON + timedelta(days=1)))
    await store.append(ReviewOutcome(cid, 1, 1.7, 1, NOON - timedelta(days=3)))

    history = await store.list_for_card(cid)
    assert [h.quality for h in history] == [4, 5, 1]
    assert [h.quality for h in await store.list_for_card(cid, limit=1)] == [4]
