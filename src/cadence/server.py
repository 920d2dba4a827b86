import datetime as dt
import logging
import time
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from cadence.application.config import resolve_config
from cadence.application.factory import get_review_service
from cadence.application.review_service import ReviewService
from cadence.consts import VERSION
from cadence.domain.errors import CardNotFoundError, ConcurrentReviewError
from cadence.domain.models import Card, ReviewOutcome

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cadence.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Cadence Server v{VERSION} starting up...")
    yield
    logger.info("Cadence Server shutting down...")


app = FastAPI(
    title="Cadence Server",
    description="SM-2 review scheduling API.",
    version=VERSION,
    lifespan=lifespan,
)


@lru_cache(maxsize=1)
def get_service() -> ReviewService:
    return get_review_service(resolve_config())


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardResponse(BaseModel):
    card_id: int
    deck_id: int
    deck_name: str | None
    front: str
    back: str
    ease_factor: float
    interval: int
    repetitions: int
    due_at: dt.datetime

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        return cls(
            card_id=card.card_id,
            deck_id=card.deck_id,
            deck_name=card.deck_name,
            front=card.front,
            back=card.back,
            ease_factor=card.memory.ease_factor,
            interval=card.memory.interval,
            repetitions=card.memory.repetitions,
            due_at=card.due_at,
        )


class DueResponse(BaseModel):
    cards: list[CardResponse]


class UpcomingResponse(BaseModel):
    date: dt.date
    count: int


class StatsResponse(BaseModel):
    total_cards: int
    due_now: int
    new_cards: int
    review_cards: int
    upcoming: list[UpcomingResponse]


class SubmitRequest(BaseModel):
    owner_id: int
    card_id: int
    quality: float = Field(ge=0, le=5)


class SubmitResponse(BaseModel):
    card: CardResponse


class HistoryEntry(BaseModel):
    card_id: int
    quality: int
    ease_factor: float
    interval: int
    reviewed_at: dt.datetime

    @classmethod
    def from_outcome(cls, outcome: ReviewOutcome) -> "HistoryEntry":
        return cls(
            card_id=outcome.card_id,
            quality=outcome.quality,
            ease_factor=outcome.ease_factor,
            interval=outcome.interval,
            reviewed_at=outcome.reviewed_at,
        )


class HistoryResponse(BaseModel):
    history: list[HistoryEntry]


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/review/due", response_model=DueResponse)
async def due_cards(
    owner_id: int,
    deck_id: int | None = None,
    service: ReviewService = Depends(get_service),
):
    """Cards due today (optionally for a single deck), oldest first."""
    cards = await service.due_cards(owner_id, deck_id)
    return DueResponse(cards=[CardResponse.from_card(c) for c in cards])


@app.get("/review/stats", response_model=StatsResponse)
async def review_stats(
    owner_id: int,
    deck_id: int | None = None,
    service: ReviewService = Depends(get_service),
):
    stats = await service.stats(owner_id, deck_id)
    return StatsResponse(
        total_cards=stats.total_cards,
        due_now=stats.due_now,
        new_cards=stats.new_cards,
        review_cards=stats.review_cards,
        upcoming=[UpcomingResponse(date=u.day, count=u.count) for u in stats.upcoming],
    )


@app.post("/review/submit", response_model=SubmitResponse)
async def submit_review(req: SubmitRequest, service: ReviewService = Depends(get_service)):
    """
    Submit a review and return the rescheduled card.
    """
    try:
        card = await service.submit_review(req.owner_id, req.card_id, req.quality)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConcurrentReviewError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Review submit failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e
    return SubmitResponse(card=CardResponse.from_card(card))


@app.get("/review/history/{card_id}", response_model=HistoryResponse)
async def review_history(
    card_id: int,
    owner_id: int,
    service: ReviewService = Depends(get_service),
):
    try:
        outcomes = await service.history(owner_id, card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return HistoryResponse(history=[HistoryEntry.from_outcome(o) for o in outcomes])
