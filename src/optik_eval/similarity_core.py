# src/optik_eval/similarity_core.py
"""
Pairwise answer-similarity ("cheating") analysis.

Students who sat the exam are grouped by room; inside a room every pair with
the same booklet is compared position by position. Different booklets are
never compared because booklets shuffle question and choice order.

Cost is O(n^2) in the size of each room. Rooms are normally a few dozen
students; one huge room (e.g. a roster with no room column, where everyone
lands in "general") is the case that gets slow.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from .evaluate_core import find_question_map
from .records import (
    GENERAL_ROOM,
    AnswerKey,
    QuestionMap,
    ScoredResult,
    SimilarityMatch,
    Status,
)
from .scoring_defaults import DEFAULTS

log = logging.getLogger(__name__)

# Key name used for a booklet-wide key that applies to every document type.
GENERAL_KEY_NAME = "GENEL"


def _is_blank(ch: str) -> bool:
    return not ch or ch == " "


def _char_at(s: str, k: int) -> str:
    return s[k] if k < len(s) else ""


def compare_answers(a: str, b: str, qmap: Optional[QuestionMap] = None) -> Tuple[int, int, int, int]:
    """
    Compare two answer strings.

    Returns (match, total, shared_correct, shared_wrong). A position where
    both students left the answer blank is skipped; positions past the end of
    the shorter string count as blank. Shared answers are classified against
    `qmap` only for questions the key defines.
    """
    match = total = shared_correct = shared_wrong = 0
    for k in range(max(len(a), len(b))):
        c1 = _char_at(a, k)
        c2 = _char_at(b, k)
        if _is_blank(c1) and _is_blank(c2):
            continue
        total += 1
        if c1 != c2:
            continue
        match += 1
        if qmap:
            correct = qmap.get(k + 1)
            if correct:
                if c1 == correct:
                    shared_correct += 1
                else:
                    shared_wrong += 1
    return match, total, shared_correct, shared_wrong


def similarity_pct(match: int, total: int) -> float:
    # multiply first so whole percentages come out exact
    return 0.0 if total == 0 else match * 100.0 / total


def _resolve_key(answer_key: Optional[AnswerKey], booklet: str, document_type: str) -> Optional[QuestionMap]:
    if not answer_key:
        return None
    booklet_key = answer_key.get(booklet)
    if not booklet_key:
        return None
    qmap = find_question_map(booklet_key, document_type)
    if qmap is None:
        qmap = booklet_key.get(GENERAL_KEY_NAME)
    return qmap


def _pair_key(answer_key: Optional[AnswerKey], s1: ScoredResult, s2: ScoredResult) -> Optional[QuestionMap]:
    """A key is used for a pair only if both students resolve to the same one."""
    k1 = _resolve_key(answer_key, s1.booklet_type, s1.document_type)
    if s1.document_type == s2.document_type:
        return k1
    k2 = _resolve_key(answer_key, s2.booklet_type, s2.document_type)
    return k1 if k1 is not None and k1 is k2 else None


def group_by_room(results: Sequence[ScoredResult]) -> Dict[str, List[ScoredResult]]:
    """Candidates for comparison (sat the exam, have answers), keyed by room."""
    rooms: Dict[str, List[ScoredResult]] = defaultdict(list)
    for r in results:
        if r.status is not Status.ENTERED or not r.answer_string:
            continue
        rooms[r.room_no or GENERAL_ROOM].append(r)
    return dict(rooms)


def analyze(
    results: Sequence[ScoredResult],
    answer_key: Optional[AnswerKey] = None,
    threshold_pct: float = DEFAULTS.similarity_threshold,
) -> List[SimilarityMatch]:
    """
    Flag same-room, same-booklet pairs whose similarity is >= threshold_pct.

    Output follows room then pair order; sort it for presentation.
    """
    flagged: List[SimilarityMatch] = []
    rooms = group_by_room(results)

    for room, students in rooms.items():
        for i in range(len(students)):
            for j in range(i + 1, len(students)):
                s1, s2 = students[i], students[j]
                if s1.booklet_type != s2.booklet_type:
                    continue

                qmap = _pair_key(answer_key, s1, s2)
                match, total, shared_correct, shared_wrong = compare_answers(
                    s1.answer_string, s2.answer_string, qmap
                )
                pct = similarity_pct(match, total)
                if pct < threshold_pct:
                    continue

                if s1.document_type == s2.document_type:
                    doc = s1.document_type
                else:
                    doc = "/".join(sorted((s1.document_type, s2.document_type)))
                flagged.append(SimilarityMatch(
                    room_no=room,
                    booklet_type=s1.booklet_type,
                    document_type=doc,
                    student_a=s1,
                    student_b=s2,
                    similarity_pct=pct,
                    shared_correct=shared_correct,
                    shared_wrong=shared_wrong,
                    match_count=match,
                    total_count=total,
                ))

    log.info("Similarity analysis: %d room(s), %d pair(s) at or above %.1f%%",
             len(rooms), len(flagged), threshold_pct)
    return flagged
