"""Aggregation dataset: every subject's top lists across periods and kinds.

The dataset is pre-allocated with an empty tuple in every
(subject, period, kind) cell. One top-list job per cell runs through the
bounded pool and writes only its own cell, so a failed request leaves an
empty cell behind and never touches any other one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from scrobble_guessr.lastfm_client import LastfmClient
from scrobble_guessr.models import ALL_KINDS, ALL_PERIODS, CategoryKind, QuizPeriod, StatRecord
from scrobble_guessr.normalizer import normalize
from scrobble_guessr.pool import DEFAULT_CONCURRENCY, run_bounded

logger = logging.getLogger(__name__)

Cells = dict[str, dict[QuizPeriod, dict[CategoryKind, tuple[StatRecord, ...]]]]


@dataclass
class AggregationDataset:
    """Subject -> period -> kind -> top records (possibly empty)."""

    subjects: tuple[str, ...]
    periods: tuple[QuizPeriod, ...] = ALL_PERIODS
    kinds: tuple[CategoryKind, ...] = ALL_KINDS
    cells: Cells = field(default_factory=dict)

    def __post_init__(self) -> None:
        for subject in self.subjects:
            by_period = self.cells.setdefault(subject, {})
            for period in self.periods:
                by_kind = by_period.setdefault(period, {})
                for kind in self.kinds:
                    by_kind.setdefault(kind, ())

    def cell(
        self, subject: str, period: QuizPeriod, kind: CategoryKind
    ) -> tuple[StatRecord, ...]:
        """Records for one slice; empty when the slice is unknown or failed."""
        return self.cells.get(subject, {}).get(period, {}).get(kind, ())

    def set_cell(
        self,
        subject: str,
        period: QuizPeriod,
        kind: CategoryKind,
        records: Sequence[StatRecord],
    ) -> None:
        self.cells[subject][period][kind] = tuple(records)

    def non_empty_slices(self) -> Iterator[tuple[str, QuizPeriod, CategoryKind]]:
        """Yield every populated (subject, period, kind) in subject/period/kind order."""
        for subject in self.subjects:
            for period in self.periods:
                for kind in self.kinds:
                    if self.cell(subject, period, kind):
                        yield subject, period, kind

    def is_empty(self) -> bool:
        return next(self.non_empty_slices(), None) is None


async def build_dataset(
    client: LastfmClient,
    subjects: Sequence[str],
    *,
    periods: Sequence[QuizPeriod] = ALL_PERIODS,
    kinds: Sequence[CategoryKind] = ALL_KINDS,
    limit: int = 10,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> AggregationDataset:
    """Fetch and normalize every (subject, period, kind) top list.

    Args:
        client: Last.fm client used for every request.
        subjects: Usernames, already parsed and deduplicated.
        periods: Top-list periods to fetch (default all four).
        kinds: Category kinds to fetch (default all three).
        limit: Entries requested per top list.
        concurrency: Maximum requests in flight.

    Returns:
        A dataset with one cell per combination. Failed cells are empty.
    """
    dataset = AggregationDataset(
        subjects=tuple(subjects), periods=tuple(periods), kinds=tuple(kinds)
    )
    slices = [
        (subject, period, kind)
        for subject in dataset.subjects
        for period in dataset.periods
        for kind in dataset.kinds
    ]

    def make_job(subject: str, period: QuizPeriod, kind: CategoryKind):
        async def job() -> int:
            payload = await client.top_list(subject, kind, period.value, limit=limit)
            records = normalize(kind, payload)
            dataset.set_cell(subject, period, kind, records)
            return len(records)

        return job

    results = await run_bounded(
        [make_job(*slice_) for slice_ in slices], limit=concurrency
    )

    failed = 0
    for (subject, period, kind), result in zip(slices, results):
        if result is None:
            failed += 1
            logger.warning(
                "Skipped failed slice: user=%s period=%s kind=%s",
                subject,
                period.value,
                kind.value,
            )
    logger.info(
        "Aggregated %d slices for %d users (%d failed)",
        len(slices),
        len(dataset.subjects),
        failed,
    )
    return dataset
