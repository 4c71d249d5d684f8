# src/optik_eval/evaluate_core.py
"""
Roster / optical / answer-key reconciliation and scoring.

Roster sheets come with free-form (usually Turkish) headers, so the columns we
need are located once per call by ordered keyword rules, giving a role ->
header mapping. Everything after that indexes rows by role.

Per-student problems never raise. A student who was never scanned, has no
key for their booklet, or no key for their document type gets a status on
their ScoredResult and the rest of the roster is still graded.
"""
from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import EmptyAnswerKeyError, EmptyRosterError, RosterColumnError
from .records import (
    GENERAL_ROOM,
    UNNAMED,
    AnswerKey,
    OpticalRecord,
    Outcome,
    QuestionMap,
    RosterEntry,
    ScoredResult,
    Status,
)
from .scoring_defaults import DEFAULTS, ScoringDefaults

log = logging.getLogger(__name__)

NATIONAL_ID_LENGTH = 11

# ------------------------------------------------------------------------------
# Column discovery
# ------------------------------------------------------------------------------

# Ordered: the first header (in sheet order) containing any keyword wins.
ID_KEYWORDS = ("TC", "KİMLİK", "TCNO")
NAME_KEYWORDS = ("ADI SOYADI", "AD SOYAD", "AD", "ISIM", "İSİM")
DOCUMENT_KEYWORDS = ("BELGE", "TÜR", "SERTİFİKA", "BELGE TÜRÜ")
ROOM_KEYWORDS = ("SALON", "SINIF", "DERSLİK")


def tr_lower(text: str) -> str:
    """Lower-case with Turkish dotted/dotless I rules (I -> ı, İ -> i)."""
    return text.replace("I", "ı").replace("İ", "i").lower()


def find_header(headers: Sequence[str], keywords: Sequence[str]) -> Optional[str]:
    needles = [tr_lower(k) for k in keywords]
    for h in headers:
        h_low = tr_lower(str(h))
        if any(n in h_low for n in needles):
            return h
    return None


@dataclass(frozen=True)
class RosterColumns:
    national_id: str
    name: Optional[str] = None
    document_type: Optional[str] = None
    room: Optional[str] = None


def _cell(row: RosterEntry, col: Optional[str]) -> str:
    if col is None:
        return ""
    val = row.get(col)
    return "" if val is None else str(val).strip()


def resolve_columns(roster: Sequence[RosterEntry]) -> RosterColumns:
    """
    Map roster headers to roles. The national-ID column is mandatory: if no
    header matches, the first column whose every value is 11 characters long
    is taken; failing that, RosterColumnError.
    """
    if not roster:
        raise EmptyRosterError("Roster is empty.")
    headers = list(roster[0].keys())

    id_col = find_header(headers, ID_KEYWORDS)
    if id_col is None:
        for h in headers:
            if all(len(_cell(row, h)) == NATIONAL_ID_LENGTH for row in roster):
                id_col = h
                break
    if id_col is None:
        raise RosterColumnError(
            "No national ID column found in the roster "
            f"(looked for headers containing {', '.join(ID_KEYWORDS)} "
            f"or a column of {NATIONAL_ID_LENGTH}-character values)."
        )

    cols = RosterColumns(
        national_id=id_col,
        name=find_header(headers, NAME_KEYWORDS),
        document_type=find_header(headers, DOCUMENT_KEYWORDS),
        room=find_header(headers, ROOM_KEYWORDS),
    )
    log.debug("Roster columns resolved: %s", cols)
    return cols

# ------------------------------------------------------------------------------
# Key lookup
# ------------------------------------------------------------------------------

def find_question_map(booklet_key: Dict[str, QuestionMap], document_type: str) -> Optional[QuestionMap]:
    """
    Exact document-type match first, then the first key name that contains the
    document type or is contained in it.
    """
    exact = booklet_key.get(document_type)
    if exact is not None:
        return exact
    for name, qmap in booklet_key.items():
        if name in document_type or document_type in name:
            return qmap
    return None


def score_answers(answers: str, qmap: QuestionMap) -> Tuple[int, int, int]:
    """
    Count (correct, wrong, blank) over the questions defined in `qmap` only.
    Answer position q-1 holds question q; a missing position or a space is blank.
    """
    correct = wrong = blank = 0
    for q in sorted(qmap):
        given = answers[q - 1] if 0 < q <= len(answers) else ""
        if not given or given == " ":
            blank += 1
        elif given == qmap[q]:
            correct += 1
        else:
            wrong += 1
    return correct, wrong, blank

# ------------------------------------------------------------------------------
# Evaluation
# ------------------------------------------------------------------------------

def _index_optical(optical: Sequence[OpticalRecord]) -> Dict[str, OpticalRecord]:
    index: Dict[str, OpticalRecord] = {}
    for rec in optical:
        # first match wins if duplicates slipped past dedupe
        index.setdefault(rec.national_id.strip(), rec)
    return index


def _score_student(
    base: Dict[str, object],
    rec: OpticalRecord,
    answer_key: AnswerKey,
    scoring: ScoringDefaults,
) -> Dict[str, object]:
    base["booklet_type"] = rec.booklet_type
    base["answer_string"] = rec.answer_string

    if rec.absence_flag == scoring.absent_marker:
        base["status"] = Status.ABSENT
        base["outcome"] = Outcome.ABSENT
        return base

    base["status"] = Status.ENTERED
    booklet_key = answer_key.get(rec.booklet_type)
    if booklet_key is None:
        base["status"] = Status.NO_BOOKLET
        return base

    qmap = find_question_map(booklet_key, base["document_type"])
    if qmap is None:
        base["status"] = Status.NO_KEY
        return base

    correct, wrong, blank = score_answers(rec.answer_string, qmap)
    score = round(correct * scoring.points_per_question, 2)
    base.update(
        correct_count=correct,
        wrong_count=wrong,
        blank_count=blank,
        score=score,
        outcome=Outcome.PASS if score >= scoring.pass_mark else Outcome.FAIL,
    )
    return base


def evaluate(
    roster: Sequence[RosterEntry],
    optical: Sequence[OpticalRecord],
    answer_key: Optional[AnswerKey],
    scoring: ScoringDefaults = DEFAULTS,
) -> List[ScoredResult]:
    """
    Produce one ScoredResult per roster entry, in roster order.

    Raises EmptyAnswerKeyError without a key, EmptyRosterError for an empty
    roster and RosterColumnError when no national ID column can be found.
    """
    if not answer_key:
        raise EmptyAnswerKeyError("Answer key is empty.")

    cols = resolve_columns(roster)
    by_tc = _index_optical(optical)
    results: List[ScoredResult] = []

    for entry in roster:
        tc = _cell(entry, cols.national_id)
        base: Dict[str, object] = dict(
            roster={str(k): ("" if v is None else str(v)) for k, v in entry.items()},
            national_id=tc,
            full_name=_cell(entry, cols.name) if cols.name else UNNAMED,
            document_type=_cell(entry, cols.document_type).upper(),
            room_no=_cell(entry, cols.room) if cols.room else GENERAL_ROOM,
        )
        rec = by_tc.get(tc) if tc else None
        if rec is not None:
            base = _score_student(base, rec, answer_key, scoring)
        results.append(ScoredResult(**base))

    counts = Counter(r.status.value for r in results)
    log.info("Evaluated %d student(s): %s", len(results),
             ", ".join(f"{k}={v}" for k, v in sorted(counts.items())))
    return results
