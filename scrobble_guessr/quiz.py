"""Quiz question generation over an aggregation dataset.

Each question names one statistic (a record's play count in one period) and
asks which user it belongs to. Combinations are drawn uniformly with
replacement from the populated slices that pass the period and category
filters; a record is then drawn uniformly from the chosen slice. Repeats
across a round are allowed.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Sequence

from scrobble_guessr.dataset import AggregationDataset
from scrobble_guessr.errors import NoEligibleData, ValidationError
from scrobble_guessr.models import ALL_KINDS, ALL_PERIODS, CategoryKind, QuizPeriod, StatRecord

DEFAULT_QUESTION_COUNT = 10

# Keys "1".."9" select choices 0..8, "0" selects choice 9.
_HOTKEYS = "1234567890"


@dataclass(frozen=True)
class Question:
    """One quiz question.

    Attributes:
        correct_subject: User whose statistic this is.
        category: Kind of the record.
        period: Period the play count was measured over.
        record: The record itself.
        observed_count: Play count shown to the player (``record.playcount``).
        choice_subjects: Every subject of the session, no duplicates.
    """

    correct_subject: str
    category: CategoryKind
    period: QuizPeriod
    record: StatRecord
    observed_count: int
    choice_subjects: tuple[str, ...]


@dataclass(frozen=True)
class QuizOptions:
    """Filters and shape of a generated round."""

    periods: frozenset[QuizPeriod] = field(default_factory=lambda: frozenset(ALL_PERIODS))
    categories: frozenset[CategoryKind] = field(default_factory=lambda: frozenset(ALL_KINDS))
    question_count: int = DEFAULT_QUESTION_COUNT
    shuffle_choices: bool = False


def eligible_combinations(
    dataset: AggregationDataset, options: QuizOptions
) -> list[tuple[str, QuizPeriod, CategoryKind]]:
    """Populated slices whose period and category are enabled."""
    return [
        (subject, period, kind)
        for subject, period, kind in dataset.non_empty_slices()
        if period in options.periods and kind in options.categories
    ]


def generate_questions(
    dataset: AggregationDataset,
    subjects: Sequence[str],
    options: QuizOptions | None = None,
    rng: random.Random | None = None,
) -> list[Question]:
    """Draw ``options.question_count`` independent questions.

    Raises:
        ValidationError: No period or no category is enabled, or the
            question count is below 1.
        NoEligibleData: No enabled slice holds any record.
    """
    options = options or QuizOptions()
    rng = rng or random.Random()

    if options.question_count < 1:
        raise ValidationError("A round needs at least one question.")
    if not options.periods:
        raise ValidationError("Select at least one timeframe.")
    if not options.categories:
        raise ValidationError("Select at least one media type.")

    combos = eligible_combinations(dataset, options)
    if not combos:
        raise NoEligibleData()

    questions: list[Question] = []
    for _ in range(options.question_count):
        subject, period, kind = rng.choice(combos)
        record = rng.choice(dataset.cell(subject, period, kind))
        choices = list(subjects)
        if options.shuffle_choices:
            rng.shuffle(choices)
        questions.append(
            Question(
                correct_subject=subject,
                category=kind,
                period=period,
                record=record,
                observed_count=record.playcount,
                choice_subjects=tuple(choices),
            )
        )
    return questions


def choice_for_hotkey(question: Question, key: str) -> str | None:
    """Subject selected by a number key, or ``None`` if the key maps to nothing."""
    index = _HOTKEYS.find(key) if len(key) == 1 else -1
    if index < 0 or index >= len(question.choice_subjects):
        return None
    return question.choice_subjects[index]


def record_label(record: StatRecord) -> str:
    """Display label: ``"name — artist"`` for tracks and albums, bare name for artists."""
    if record.kind is CategoryKind.ARTIST:
        return record.name
    return f"{record.name} — {record.attributed_artist}"
