"""FastAPI application for the Scrobble Guessr backend."""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

import httpx

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from scrobble_guessr.config import get_settings, require_api_key
from scrobble_guessr.count_resolver import ComparisonTarget
from scrobble_guessr.errors import (
    NoEligibleData,
    RemoteError,
    SessionBusyError,
    ValidationError,
)
from scrobble_guessr.lastfm_client import LastfmClient
from scrobble_guessr.leaderboard import Leaderboard, ScoreboardSession
from scrobble_guessr.models import CategoryKind, QuizPeriod
from scrobble_guessr.quiz import QuizOptions, record_label
from scrobble_guessr.session import AnswerOutcome, QuizSession
from scrobble_guessr.windows import DateRange, Window

# ---------------------------------------------------------------------------
# Logging setup: timestamps, level and logger name
# ---------------------------------------------------------------------------
logging.basicConfig(
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

MAX_QUESTION_COUNT = 100


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------


class CreateQuizRequest(BaseModel):
    """Body for POST /quiz/sessions."""

    usernames: str | list[str]
    periods: list[QuizPeriod] | None = None
    categories: list[CategoryKind] | None = None
    shuffle_choices: bool | None = None
    question_count: int | None = Field(None, ge=1, le=MAX_QUESTION_COUNT)


class AnswerRequest(BaseModel):
    """Body for POST /quiz/sessions/{id}/answer: a subject or a number key."""

    subject: str | None = None
    hotkey: str | None = None


class QuestionView(BaseModel):
    category: CategoryKind
    period: QuizPeriod
    label: str
    observed_count: int
    choices: list[str]


class AnswerView(BaseModel):
    choice: str
    correct: bool
    correct_subject: str


class QuizSessionView(BaseModel):
    session_id: str
    state: str
    subjects: list[str]
    score: int
    current_index: int
    total_questions: int
    question: QuestionView | None = None
    last_answer: AnswerView | None = None


class LeaderboardRequest(BaseModel):
    """Body for POST /scoreboards/{owner}/leaderboard."""

    kind: CategoryKind = CategoryKind.ARTIST
    artist: str = ""
    album: str = ""
    track: str = ""
    window: Window = Window.ALL
    # Custom range in UNIX seconds; overrides ``window`` (artists only)
    start: int | None = None
    end: int | None = None

    def resolved_window(self) -> Window | DateRange:
        if self.start is None and self.end is None:
            return self.window
        if self.start is None or self.end is None:
            raise ValidationError("Provide both start and end for a custom range.")
        return DateRange(start=self.start, end=self.end)


class RowView(BaseModel):
    subject: str
    avatar_url: str
    count: int
    library_link: str


class LeaderboardView(BaseModel):
    rows: list[RowView]
    missing: list[str]


class FriendView(BaseModel):
    name: str
    realname: str
    avatar: str


# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------


@dataclass
class _AppState:
    """In-memory sessions; nothing survives a restart."""

    quiz_sessions: dict[str, QuizSession] = field(default_factory=dict)
    scoreboards: dict[str, ScoreboardSession] = field(default_factory=dict)
    client_factory: Callable[[], LastfmClient] | None = None


_state = _AppState()

app = FastAPI(title="Scrobble Guessr API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every incoming request with method, path, and response status/duration."""
    t0 = time.monotonic()
    logger.info("→ %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.exception(
            "✗ %s %s  EXCEPTION after %dms",
            request.method,
            request.url.path,
            elapsed_ms,
        )
        raise
    elapsed_ms = int((time.monotonic() - t0) * 1000)
    logger.info(
        "← %s %s  status=%d  %dms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@app.exception_handler(ValidationError)
async def _validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NoEligibleData)
async def _no_eligible_data_handler(request: Request, exc: NoEligibleData):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(SessionBusyError)
async def _session_busy_handler(request: Request, exc: SessionBusyError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(RemoteError)
async def _remote_error_handler(request: Request, exc: RemoteError):
    logger.warning("Upstream failure  %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": "Last.fm request failed. Check the username and try again."},
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lastfm_client() -> AsyncIterator[LastfmClient]:
    """Client for one request, sharing a single ``httpx.AsyncClient``.

    Validates the API key before any I/O.
    """
    if _state.client_factory is not None:
        yield _state.client_factory()
        return
    settings = get_settings()
    api_key = require_api_key(settings)
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout)
    ) as http_client:
        yield LastfmClient.from_settings(settings, api_key, http_client=http_client)


def _get_quiz(session_id: str) -> QuizSession:
    session = _state.quiz_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown quiz session.")
    return session


def _get_scoreboard(owner: str) -> ScoreboardSession:
    key = owner.strip().lower()
    if key not in _state.scoreboards:
        _state.scoreboards[key] = ScoreboardSession(owner=owner.strip())
    return _state.scoreboards[key]


def _answer_view(outcome: AnswerOutcome | None) -> AnswerView | None:
    if outcome is None:
        return None
    return AnswerView(
        choice=outcome.choice,
        correct=outcome.correct,
        correct_subject=outcome.correct_subject,
    )


def _quiz_view(session_id: str, session: QuizSession) -> QuizSessionView:
    question = session.current_question
    return QuizSessionView(
        session_id=session_id,
        state=session.state.value,
        subjects=list(session.subjects),
        score=session.score,
        current_index=session.current_index,
        total_questions=len(session.questions),
        question=(
            QuestionView(
                category=question.category,
                period=question.period,
                label=record_label(question.record),
                observed_count=question.observed_count,
                choices=list(question.choice_subjects),
            )
            if question is not None
            else None
        ),
        last_answer=_answer_view(session.pending_answer),
    )


def _leaderboard_view(board: Leaderboard) -> LeaderboardView:
    return LeaderboardView(
        rows=[
            RowView(
                subject=row.subject,
                avatar_url=row.avatar_url,
                count=row.count,
                library_link=row.library_link,
            )
            for row in board.rows
        ],
        missing=list(board.missing),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/quiz/sessions", response_model=QuizSessionView)
async def create_quiz_session(body: CreateQuizRequest) -> QuizSessionView:
    """Create a quiz session and aggregate its users' top lists."""
    settings = get_settings()
    defaults = QuizOptions(
        question_count=settings.question_count,
        shuffle_choices=settings.shuffle_choices,
    )
    options = QuizOptions(
        periods=frozenset(body.periods) if body.periods is not None else defaults.periods,
        categories=(
            frozenset(body.categories) if body.categories is not None else defaults.categories
        ),
        question_count=body.question_count or defaults.question_count,
        shuffle_choices=(
            body.shuffle_choices if body.shuffle_choices is not None else defaults.shuffle_choices
        ),
    )
    session = QuizSession(settings=settings, options=options)
    # Without an injected factory the session opens one shared HTTP client per batch
    client = _state.client_factory() if _state.client_factory is not None else None
    await session.fetch(body.usernames, client=client)

    session_id = str(uuid.uuid4())
    _state.quiz_sessions[session_id] = session
    logger.info("Quiz session %s ready with %d users", session_id, len(session.subjects))
    return _quiz_view(session_id, session)


@app.get("/quiz/sessions/{session_id}", response_model=QuizSessionView)
async def get_quiz_session(session_id: str) -> QuizSessionView:
    return _quiz_view(session_id, _get_quiz(session_id))


@app.post("/quiz/sessions/{session_id}/start", response_model=QuizSessionView)
async def start_quiz(session_id: str) -> QuizSessionView:
    session = _get_quiz(session_id)
    session.start()
    return _quiz_view(session_id, session)


@app.post("/quiz/sessions/{session_id}/answer", response_model=QuizSessionView)
async def answer_question(session_id: str, body: AnswerRequest) -> QuizSessionView:
    session = _get_quiz(session_id)
    if body.subject is not None:
        session.answer(body.subject)
    elif body.hotkey is not None:
        session.answer_hotkey(body.hotkey)
    else:
        raise ValidationError("Provide a subject or a hotkey.")
    return _quiz_view(session_id, session)


@app.post("/quiz/sessions/{session_id}/next", response_model=QuizSessionView)
async def next_question(session_id: str) -> QuizSessionView:
    session = _get_quiz(session_id)
    session.advance()
    return _quiz_view(session_id, session)


@app.post("/quiz/sessions/{session_id}/replay", response_model=QuizSessionView)
async def replay_quiz(session_id: str) -> QuizSessionView:
    session = _get_quiz(session_id)
    session.replay()
    return _quiz_view(session_id, session)


@app.post("/scoreboards/{owner}/friends", response_model=list[FriendView])
async def load_friends(owner: str) -> list[FriendView]:
    """Load (or reload) the owner's friends list."""
    scoreboard = _get_scoreboard(owner)
    async with _lastfm_client() as client:
        friends = await scoreboard.load_friends(client)
    return [
        FriendView(name=f.name, realname=f.realname, avatar=f.avatar) for f in friends
    ]


@app.post("/scoreboards/{owner}/leaderboard", response_model=LeaderboardView)
async def build_scoreboard(owner: str, body: LeaderboardRequest) -> LeaderboardView:
    """Rank the owner and their loaded friends for one artist, album or track."""
    settings = get_settings()
    scoreboard = _get_scoreboard(owner)
    target = ComparisonTarget(
        kind=body.kind, artist=body.artist, album=body.album, track=body.track
    )
    window = body.resolved_window()
    async with _lastfm_client() as client:
        board = await scoreboard.build(
            client,
            target,
            window,
            concurrency=settings.concurrency,
            rank_list_limit=settings.rank_list_limit,
        )
    return _leaderboard_view(board)

