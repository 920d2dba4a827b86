from datetime import datetime, timedelta, timezone

import pytest

from cadence.application.review_service import ReviewService
from cadence.domain.errors import CardNotFoundError, ConcurrentReviewError
from cadence.domain.models import MemoryState


@pytest.fixture
def deck(store):
    return store.add_deck(owner_id=1, name="Spanish")


@pytest.mark.asyncio
async def test_submit_review_updates_card_and_due_date(service, store, deck, noon):
    cid = store.add_card(deck, "hola", "hello", due_at=noon)

    card = await service.submit_review(owner_id=1, card_id=cid, quality=4, now=noon)

    assert card.memory == MemoryState(ease_factor=pytest.approx(2.5), interval=1, repetitions=1)
    assert card.due_at == noon + timedelta(days=1)

    stored = await store.get_card(cid, owner_id=1)
    assert stored.memory.repetitions == 1
    assert stored.due_at == noon + timedelta(days=1)


@pytest.mark.asyncio
async def test_submit_review_records_clamped_quality(service, store, deck, noon):
    cid = store.add_card(deck, "hola", "hello", due_at=noon)

    await service.submit_review(owner_id=1, card_id=cid, quality=9, now=noon)

    history = await service.history(owner_id=1, card_id=cid)
    assert len(history) == 1
    assert history[0].quality == 5
    assert history[0].interval == 1
    assert history[0].ease_factor == pytest.approx(2.6)
    assert history[0].reviewed_at == noon


@pytest.mark.asyncio
async def test_review_sequence_follows_sm2(service, store, deck, noon):
    cid = store.add_card(deck, "hola", "hello", due_at=noon)

    now = noon
    intervals = []
    for _ in range(3):
        card = await service.submit_review(owner_id=1, card_id=cid, quality=4, now=now)
        intervals.append(card.memory.interval)
        now = card.due_at

    assert intervals == [1, 6, 15]
    assert card.due_at == noon + timedelta(days=22)

    # A lapse sends it back to tomorrow
    card = await service.submit_review(owner_id=1, card_id=cid, quality=1, now=now)
    assert card.memory.repetitions == 0
    assert card.due_at == now + timedelta(days=1)


@pytest.mark.asyncio
async def test_history_is_newest_first(service, store, deck, noon):
    cid = store.add_card(deck, "hola", "hello", due_at=noon)
    await service.submit_review(1, cid, 5, now=noon)
    await service.submit_review(1, cid, 2, now=noon + timedelta(days=1))

    history = await service.history(1, cid)
    assert [h.quality for h in history] == [2, 5]

    assert len(await service.history(1, cid, limit=1)) == 1


@pytest.mark.asyncio
async def test_submit_review_for_other_owner_is_not_found(service, store, deck, noon):
    cid = store.add_card(deck, "hola", "hello", due_at=noon)

    with pytest.raises(CardNotFoundError):
        await service.submit_review(owner_id=2, card_id=cid, quality=4, now=noon)
    with pytest.raises(CardNotFoundError):
        await service.submit_review(owner_id=1, card_id=999, quality=4, now=noon)
    with pytest.raises(CardNotFoundError):
        await service.history(owner_id=2, card_id=cid)

    # Nothing was written
    assert await store.list_for_card(cid) == []


@pytest.mark.asyncio
async def test_concurrent_review_is_rejected(store, deck, noon):
    cid = store.add_card(deck, "hola", "hello", due_at=noon)
    stale = await store.get_card(cid, owner_id=1)

    class StaleReadStore:
        """Serves the snapshot taken before another review landed."""

        async def get_card(self, card_id, owner_id):
            return stale

        def __getattr__(self, name):
            return getattr(store, name)

    service = ReviewService(cards=StaleReadStore(), history=store)
    await ReviewService(cards=store, history=store).submit_review(1, cid, 5, now=noon)

    with pytest.raises(ConcurrentReviewError):
        await service.submit_review(1, cid, 3, now=noon)

    # Only the winning review is in the log
    assert len(await store.list_for_card(cid)) == 1


@pytest.mark.asyncio
async def test_due_cards_and_stats(service, store, deck, noon):
    other = store.add_deck(owner_id=1, name="French")
    store.add_card(deck, "a", "a", due_at=noon - timedelta(days=1))
    store.add_card(deck, "b", "b", due_at=noon + timedelta(days=2))
    store.add_card(other, "c", "c", due_at=noon.replace(hour=23))
    foreign = store.add_deck(owner_id=2, name="Theirs")
    store.add_card(foreign, "x", "x", due_at=noon)

    due = await service.due_cards(owner_id=1, now=noon)
    assert [c.front for c in due] == ["a", "c"]

    due = await service.due_cards(owner_id=1, deck_id=other, now=noon)
    assert [c.front for c in due] == ["c"]

    stats = await service.stats(owner_id=1, now=noon)
    assert stats.total_cards == 3
    assert stats.due_now == 2
    assert stats.new_cards == 3
    assert stats.review_cards == 0
    assert sum(u.count for u in stats.upcoming) == 1


@pytest.mark.asyncio
async def test_due_limit_is_configurable(store, deck, noon):
    for i in range(5):
        store.add_card(deck, str(i), str(i), due_at=noon)
    service = ReviewService(cards=store, history=store, due_limit=3)

    assert len(await service.due_cards(1, now=noon)) == 3


@pytest.mark.asyncio
async def test_service_uses_deployment_timezone(store, deck):
    tokyo = timezone(timedelta(hours=9))
    service = ReviewService(cards=store, history=store, tz=tokyo)
    # 20:00 UTC on the 10th is already the 11th in Tokyo
    store.add_card(deck, "a", "a", due_at=datetime(2026, 3, 11, 1, 0, tzinfo=tokyo))

    due = await service.due_cards(1, now=datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc))
    assert len(due) == 1
