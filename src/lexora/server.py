import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from lexora.application.review_service import ReviewService
from lexora.consts import VERSION
from lexora.domain.errors import (
    ConcurrentModification,
    InvalidRating,
    LexoraError,
    NotFound,
    QuotaExceeded,
    StoreUnavailable,
)
from lexora.domain.models import CardState, CardSummary, QuotaUsage

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexora.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    from lexora.application.config import resolve_config
    from lexora.application.factory import build_review_service

    config = resolve_config()
    logging.getLogger("lexora").setLevel(config.log_level.upper())
    app.state.review_service = build_review_service(config)
    logger.info(f"Lexora Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Lexora Server shutting down...")


app = FastAPI(
    title="Lexora Server",
    description="Review scheduling and quota-gated word admission.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_review_service(request: Request) -> ReviewService:
    service = getattr(request.app.state, "review_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Review service not initialised")
    return service


def get_now() -> datetime:
    """Server-observed time; clients never supply it."""
    return datetime.now(timezone.utc)


def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    # Set by the authenticating gateway in front of this service
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing authenticated user")
    return x_user_id


Service = Annotated[ReviewService, Depends(get_review_service)]
Now = Annotated[datetime, Depends(get_now)]
UserId = Annotated[str, Depends(get_user_id)]


def to_http_error(e: LexoraError) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidRating):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, QuotaExceeded):
        detail: dict = {"error": str(e)}
        if e.usage is not None:
            detail["quota"] = e.usage.as_dict()
        return HTTPException(status_code=429, detail=detail)
    if isinstance(e, ConcurrentModification):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, StoreUnavailable):
        return HTTPException(status_code=503, detail=str(e), headers={"Retry-After": "1"})
    return HTTPException(status_code=500, detail=str(e))


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class QuotaResponse(BaseModel):
    tier: str
    daily_limit: int
    used_today: int
    remaining_today: int
    max_article_words: int

    @classmethod
    def from_usage(cls, usage: QuotaUsage) -> "QuotaResponse":
        return cls(**usage.as_dict())


class CardSummaryResponse(BaseModel):
    id: str
    word_id: str
    word: str
    pronunciation: str | None = None
    pos: str | None = None
    meaning: str
    sentence: str | None = None
    type: str
    queue_state: str
    due_at: datetime
    learned_meanings: list[str] = []

    @classmethod
    def from_summary(cls, card: CardSummary) -> "CardSummaryResponse":
        return cls(
            id=card.id,
            word_id=card.word_id,
            word=card.word,
            pronunciation=card.pronunciation,
            pos=card.pos,
            meaning=card.meaning,
            sentence=card.sentence,
            type=card.type,
            queue_state=card.queue_state.value,
            due_at=card.due_at,
            learned_meanings=card.learned_meanings,
        )


class BatchResponse(BaseModel):
    cards: list[CardSummaryResponse]
    quota: QuotaResponse
    review_only: bool


class NextCardResponse(BaseModel):
    card: CardSummaryResponse | None


class CardStateResponse(BaseModel):
    id: str
    word_id: str
    queue_state: str
    interval_days: float
    ease_factor: float
    due_at: datetime
    lapses: int
    reps: int

    @classmethod
    def from_state(cls, state: CardState) -> "CardStateResponse":
        return cls(
            id=state.id,
            word_id=state.word_id,
            queue_state=state.queue_state.value,
            interval_days=state.interval_days,
            ease_factor=state.ease_factor,
            due_at=state.due_at,
            lapses=state.lapses,
            reps=state.reps,
        )


class StatsResponse(BaseModel):
    today_due: int
    new_cards: int
    learning: int
    reviewing: int
    total_vocab: int
    completed_today: int
    accuracy: float | None = None


# Rating stays a plain string so out-of-set values surface as InvalidRating
class AnswerRequest(BaseModel):
    word_id: str
    rating: str


class DocumentCheckRequest(BaseModel):
    word_count: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/quota", response_model=QuotaResponse)
async def get_quota(service: Service, user_id: UserId, now: Now):
    """Today's usage against the user's tier limits."""
    try:
        return QuotaResponse.from_usage(await service.quota_snapshot(user_id, now))
    except LexoraError as e:
        raise to_http_error(e) from e


@app.get("/review/batch", response_model=BatchResponse)
async def get_batch(
    service: Service,
    user_id: UserId,
    now: Now,
    size: Annotated[int | None, Query(ge=1)] = None,
):
    """
    Compose a review batch: due reviews first, then new words within the quota.
    """
    try:
        batch = await service.start_session(user_id, now, batch_size=size)
    except LexoraError as e:
        raise to_http_error(e) from e
    return BatchResponse(
        cards=[CardSummaryResponse.from_summary(c) for c in batch.cards],
        quota=QuotaResponse.from_usage(batch.quota),
        review_only=batch.review_only,
    )


@app.get("/review/next", response_model=NextCardResponse)
async def get_next_card(service: Service, user_id: UserId, now: Now):
    try:
        card = await service.next_card(user_id, now)
    except LexoraError as e:
        raise to_http_error(e) from e
    return NextCardResponse(card=CardSummaryResponse.from_summary(card) if card else None)


@app.post("/review/skip", response_model=NextCardResponse)
async def skip_card(service: Service, user_id: UserId, now: Now):
    """
    Skip the current card without recording anything.

    The skipped card keeps its due date and comes back in a later session.
    """
    try:
        card = await service.next_card(user_id, now)
    except LexoraError as e:
        raise to_http_error(e) from e
    return NextCardResponse(card=CardSummaryResponse.from_summary(card) if card else None)


@app.get("/review/stats", response_model=StatsResponse)
async def get_stats(service: Service, user_id: UserId, now: Now):
    try:
        stats = await service.review_stats(user_id, now)
    except LexoraError as e:
        raise to_http_error(e) from e
    return StatsResponse(**asdict(stats))


@app.post("/review/answer", response_model=CardStateResponse)
async def submit_answer(req: AnswerRequest, service: Service, user_id: UserId, now: Now):
    """
    Apply a rating to a card and return its new schedule.
    """
    try:
        state = await service.submit_rating(user_id, req.word_id, req.rating, now)
    except LexoraError as e:
        if not isinstance(e, (NotFound, InvalidRating, QuotaExceeded)):
            logger.error(f"Rating failed for {user_id}/{req.word_id}: {e}", exc_info=True)
        raise to_http_error(e) from e
    return CardStateResponse.from_state(state)


@app.post("/words/{word_id}/introduce", response_model=CardStateResponse)
async def introduce_word(word_id: str, service: Service, user_id: UserId, now: Now):
    """First exposure to a word: creates its card (idempotent)."""
    try:
        state = await service.introduce_word(user_id, word_id, now)
    except LexoraError as e:
        raise to_http_error(e) from e
    return CardStateResponse.from_state(state)


@app.post("/documents/check", response_model=QuotaResponse)
async def check_document(
    req: DocumentCheckRequest, service: Service, user_id: UserId, now: Now
):
    """Reject documents larger than the tier allows."""
    try:
        usage = await service.check_document_size(user_id, req.word_count, now)
    except LexoraError as e:
        raise to_http_error(e) from e
    return QuotaResponse.from_usage(usage)
