# src/optik_eval/records.py
"""
Record types passed between the parser, evaluator and similarity analyzer.

Scores and counts are kept numeric here; turning them into display strings
happens in the report writers.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping

# Type alias: booklet -> document type -> question number -> correct answer
AnswerKey = Dict[str, Dict[str, Dict[int, str]]]
QuestionMap = Dict[int, str]
RosterEntry = Mapping[str, object]

GENERAL_ROOM = "general"
UNNAMED = "unnamed"


class Status(str, Enum):
    ENTERED = "entered"
    ABSENT = "absent"
    EXEMPT_UNREAD = "exempt/unread"
    NO_KEY = "no key"
    NO_BOOKLET = "no booklet"


class Outcome(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    ABSENT = "absent"


class RosterCheck(str, Enum):
    """Where a scanned national ID stands against the roster."""
    INVALID = "invalid"
    REGISTERED = "registered"
    UNREGISTERED = "unregistered"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class OpticalRecord:
    """One scanned answer sheet, as decoded from a single scanner line."""
    id: int
    full_name: str = ""
    national_id: str = ""
    room_no: str = ""
    absence_flag: str = ""
    booklet_type: str = ""
    answer_string: str = ""


@dataclass(frozen=True)
class ScoredResult:
    roster: Dict[str, str]
    national_id: str
    full_name: str
    document_type: str
    room_no: str
    status: Status = Status.EXEMPT_UNREAD
    booklet_type: str = ""
    correct_count: int = 0
    wrong_count: int = 0
    blank_count: int = 0
    score: float = 0.0
    outcome: Outcome = Outcome.FAIL
    answer_string: str = ""

    @property
    def status_label(self) -> str:
        """Row-level status text; names the missing key for the soft-failure states."""
        if self.status is Status.NO_KEY:
            return f"no answer key for {self.document_type}"
        if self.status is Status.NO_BOOKLET:
            return f"no booklet key for {self.booklet_type}"
        return self.status.value

    def net(self, penalty: float = 0.25) -> float:
        return self.correct_count - self.wrong_count * penalty


@dataclass(frozen=True)
class SimilarityMatch:
    room_no: str
    booklet_type: str
    document_type: str
    student_a: ScoredResult
    student_b: ScoredResult
    similarity_pct: float
    shared_correct: int = 0
    shared_wrong: int = 0
    match_count: int = 0
    total_count: int = 0
