# src/optik_eval/stats_core.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .parse_core import count_duplicates, dedupe, roster_status
from .records import OpticalRecord, Outcome, RosterCheck, RosterEntry, ScoredResult, Status
from .scoring_defaults import DEFAULTS

# Group label for students with no document type.
UNTYPED_LABEL = "general"


@dataclass(frozen=True)
class OpticalStats:
    total_records: int
    unique_ids: int
    duplicate_count: int
    absent_count: int
    attended_count: int
    room_count: int
    booklet_types: List[str]
    invalid_id_count: int = 0
    # None when no roster was given to check against
    unregistered_count: Optional[int] = None


@dataclass(frozen=True)
class GroupStats:
    label: str
    count: int
    mean: float
    minimum: float
    maximum: float
    passed: int
    failed: int

    @property
    def pass_rate(self) -> float:
        return 100.0 * self.passed / self.count if self.count else 0.0


def optical_stats(
    raw_records: Sequence[OpticalRecord],
    absent_marker: str = DEFAULTS.absent_marker,
    roster: Optional[Sequence[RosterEntry]] = None,
) -> OpticalStats:
    """
    Summary of a parsed scanner file. `raw_records` is the parser output
    before deduplication so repeated IDs can be counted. With a roster, IDs
    that are well formed but not on it are counted as unregistered.
    """
    unique = dedupe(list(raw_records))
    checks = roster_status(unique, roster)
    absent = [r for r in unique if r.absence_flag.strip().upper() == absent_marker]
    attended = [r for r in unique
                if r.answer_string.strip() and r.absence_flag.strip().upper() != absent_marker]
    return OpticalStats(
        total_records=len(unique),
        unique_ids=len({r.national_id.strip() for r in unique if r.national_id.strip()}),
        duplicate_count=count_duplicates(list(raw_records)),
        absent_count=len(absent),
        attended_count=len(attended),
        room_count=len({r.room_no for r in unique if r.room_no}),
        booklet_types=sorted({r.booklet_type for r in unique if r.booklet_type}),
        invalid_id_count=checks.count(RosterCheck.INVALID),
        unregistered_count=checks.count(RosterCheck.UNREGISTERED) if roster is not None else None,
    )


def _group(label: str, rows: Sequence[ScoredResult]) -> GroupStats:
    scores = np.array([r.score for r in rows], dtype=float)
    passed = sum(1 for r in rows if r.outcome is Outcome.PASS)
    return GroupStats(
        label=label,
        count=int(scores.size),
        mean=float(scores.mean()),
        minimum=float(scores.min()),
        maximum=float(scores.max()),
        passed=passed,
        failed=int(scores.size) - passed,
    )


def score_stats(results: Sequence[ScoredResult]) -> Dict[str, GroupStats]:
    """Per-document-type statistics over students who sat the exam and were scored."""
    groups: Dict[str, List[ScoredResult]] = {}
    for r in results:
        if r.status is not Status.ENTERED:
            continue
        groups.setdefault(r.document_type or UNTYPED_LABEL, []).append(r)
    return {label: _group(label, rows) for label, rows in groups.items()}


def total_stats(results: Sequence[ScoredResult]) -> Optional[GroupStats]:
    """Whole-exam statistics, or None if nobody was scored."""
    entered = [r for r in results if r.status is Status.ENTERED]
    if not entered:
        return None
    return _group("total", entered)
