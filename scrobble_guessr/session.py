"""Quiz session state machine.

States and transitions::

    IDLE --fetch--> LOADING --(dataset built)--> READY --start--> PLAYING
    PLAYING --advance past last question--> DONE --replay--> READY

A session owns its subjects, its aggregation dataset and the round in
progress. Components it calls (dataset builder, quiz generator) are plain
functions over that state.
"""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass
from typing import Iterable

import httpx

from scrobble_guessr.config import Settings, get_settings, require_api_key
from scrobble_guessr.dataset import AggregationDataset, build_dataset
from scrobble_guessr.errors import InvalidTransition, SessionBusyError, ValidationError
from scrobble_guessr.lastfm_client import LastfmClient
from scrobble_guessr.models import parse_subjects
from scrobble_guessr.quiz import Question, QuizOptions, choice_for_hotkey, generate_questions

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    """Quiz session states."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    DONE = "done"


@dataclass(frozen=True)
class AnswerOutcome:
    """Result of answering the current question."""

    choice: str
    correct: bool
    correct_subject: str


class PendingOperationGuard:
    """Rejects a second operation while one is still outstanding.

    Usage::

        async with guard:
            await long_running_fetch()
    """

    def __init__(self) -> None:
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    async def __aenter__(self) -> "PendingOperationGuard":
        if self._pending:
            raise SessionBusyError()
        self._pending = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._pending = False


class QuizSession:
    """One player's quiz: subjects, aggregated data and the current round.

    Args:
        settings: Application settings (defaults to ``get_settings()``).
        options: Round filters and shape. Defaults come from settings.
        rng: Randomness source for question generation.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        options: QuizOptions | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.options = options or QuizOptions(
            question_count=self.settings.question_count,
            shuffle_choices=self.settings.shuffle_choices,
        )
        self.rng = rng or random.Random()
        self.state = SessionState.IDLE
        self.subjects: list[str] = []
        self.dataset: AggregationDataset | None = None
        self.questions: list[Question] = []
        self.current_index = 0
        self.score = 0
        self.pending_answer: AnswerOutcome | None = None
        self._guard = PendingOperationGuard()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def fetch(
        self, usernames: str | Iterable[str], client: LastfmClient | None = None
    ) -> AggregationDataset:
        """Parse *usernames* and aggregate their top lists.

        Args:
            usernames: Free text or a list of names.
            client: Client to use. When omitted, one is built from settings
                around a shared ``httpx.AsyncClient`` for the whole batch.

        Raises:
            ValidationError: No usernames, or no API key configured.
            InvalidTransition: A round is being played.
            SessionBusyError: A fetch is already running.
        """
        if self._guard.pending:
            raise SessionBusyError()
        if self.state is SessionState.PLAYING:
            raise InvalidTransition("Finish or replay the current round before fetching.")

        subjects = parse_subjects(usernames, limit=self.settings.max_subjects)
        if not subjects:
            raise ValidationError("Enter at least one public Last.fm username.")
        api_key = None if client is not None else require_api_key(self.settings)

        async with self._guard:
            previous = self.state
            self.state = SessionState.LOADING
            logger.info("Fetching quiz data for %d users", len(subjects))
            try:
                if client is not None:
                    dataset = await self._build(client, subjects)
                else:
                    async with httpx.AsyncClient(
                        timeout=httpx.Timeout(self.settings.request_timeout)
                    ) as http_client:
                        dataset = await self._build(
                            LastfmClient.from_settings(
                                self.settings, api_key, http_client=http_client
                            ),
                            subjects,
                        )
            except Exception:
                logger.exception("Fetching quiz data failed")
                self.state = previous
                raise

        self.subjects = subjects
        self.dataset = dataset
        self._clear_round()
        self.state = SessionState.READY
        return dataset

    async def _build(self, client: LastfmClient, subjects: list[str]) -> AggregationDataset:
        return await build_dataset(
            client,
            subjects,
            limit=self.settings.top_limit,
            concurrency=self.settings.concurrency,
        )

    # ------------------------------------------------------------------
    # Playing
    # ------------------------------------------------------------------

    def start(self) -> list[Question]:
        """Generate a round and enter ``PLAYING``.

        Raises:
            InvalidTransition: The session is not ``READY``.
            ValidationError: No period or category enabled (stays ``READY``).
            NoEligibleData: Nothing to ask about (stays ``READY``).
        """
        if self.state is not SessionState.READY or self.dataset is None:
            raise InvalidTransition(f"Cannot start a round while {self.state.value}.")

        questions = generate_questions(
            self.dataset, self.subjects, self.options, rng=self.rng
        )
        self.questions = questions
        self.current_index = 0
        self.score = 0
        self.pending_answer = None
        self.state = SessionState.PLAYING
        return questions

    @property
    def current_question(self) -> Question | None:
        if self.state is not SessionState.PLAYING:
            return None
        return self.questions[self.current_index]

    def answer(self, choice: str) -> AnswerOutcome:
        """Record an answer for the current question.

        Only the first answer per question counts; later calls return the
        recorded outcome unchanged.
        """
        question = self.current_question
        if question is None:
            raise InvalidTransition(f"Cannot answer while {self.state.value}.")
        if self.pending_answer is not None:
            return self.pending_answer

        correct = choice == question.correct_subject
        self.pending_answer = AnswerOutcome(
            choice=choice, correct=correct, correct_subject=question.correct_subject
        )
        if correct:
            self.score += 1
        return self.pending_answer

    def answer_hotkey(self, key: str) -> AnswerOutcome | None:
        """Answer with a number key; keys without a matching choice are ignored."""
        question = self.current_question
        if question is None:
            raise InvalidTransition(f"Cannot answer while {self.state.value}.")
        choice = choice_for_hotkey(question, key)
        if choice is None:
            return None
        return self.answer(choice)

    def advance(self) -> Question | None:
        """Move to the next question, or to ``DONE`` after the last one."""
        if self.state is not SessionState.PLAYING:
            raise InvalidTransition(f"Cannot advance while {self.state.value}.")
        if self.pending_answer is None:
            raise InvalidTransition("Answer the current question first.")

        self.pending_answer = None
        if self.current_index + 1 >= len(self.questions):
            self.current_index = len(self.questions)
            self.state = SessionState.DONE
            logger.info("Round finished: %d/%d", self.score, len(self.questions))
            return None
        self.current_index += 1
        return self.questions[self.current_index]

    def replay(self) -> None:
        """Return to ``READY`` keeping the dataset, dropping the finished round."""
        if self.state is not SessionState.DONE:
            raise InvalidTransition(f"Cannot replay while {self.state.value}.")
        self._clear_round()
        self.state = SessionState.READY

    def _clear_round(self) -> None:
        self.questions = []
        self.current_index = 0
        self.score = 0
        self.pending_answer = None
