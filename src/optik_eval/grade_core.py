# src/optik_eval/grade_core.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config_io import load_field_map
from .errors import EmptyAnswerKeyError
from .evaluate_core import evaluate
from .parse_core import dedupe
from .records import AnswerKey, OpticalRecord, ScoredResult, SimilarityMatch
from .scoring_defaults import DEFAULTS, ScoringDefaults
from .similarity_core import analyze
from .tools.answer_key_io import load_answer_key
from .tools.optical_io import load_optical
from .tools.report_writer import write_matches_csv, write_results_csv, write_results_xlsx
from .tools.roster_io import read_roster

log = logging.getLogger(__name__)


@dataclass
class ExamRun:
    """Everything loaded and computed for one exam."""
    roster: List[Dict[str, str]]
    raw_records: List[OpticalRecord]
    records: List[OpticalRecord]
    answer_key: AnswerKey
    results: List[ScoredResult]


def evaluate_files(
    roster_path: str,
    optical_path: str,
    key_path: str,
    field_map_path: Optional[str] = None,
    encoding: str = "utf-8",
    scoring: ScoringDefaults = DEFAULTS,
) -> ExamRun:
    """
    Load the three inputs and grade them.

    Hard failures (no optical records, empty key, empty roster, no ID column)
    raise ExamDataError subclasses; nothing is written.
    """
    fmap = load_field_map(field_map_path)
    raw = load_optical(optical_path, fmap, encoding=encoding)
    records = dedupe(raw)
    log.info("Optical: %d line(s), %d after removing repeated IDs", len(raw), len(records))

    answer_key = load_answer_key(key_path)
    if not answer_key:
        raise EmptyAnswerKeyError(f"Answer key is empty: {key_path}")

    roster = read_roster(roster_path)
    log.info("Roster: %d row(s) from %s", len(roster), roster_path)

    results = evaluate(roster, records, answer_key, scoring=scoring)
    return ExamRun(roster=roster, raw_records=raw, records=records,
                   answer_key=answer_key, results=results)


def grade_exam(
    roster_path: str,
    optical_path: str,
    key_path: str,
    out_csv: Optional[str] = "results.csv",
    out_xlsx: Optional[str] = None,
    field_map_path: Optional[str] = None,
    encoding: str = "utf-8",
    scoring: ScoringDefaults = DEFAULTS,
) -> ExamRun:
    """Grade an exam from files and write the result list (CSV and/or per-room XLSX)."""
    run = evaluate_files(roster_path, optical_path, key_path,
                         field_map_path=field_map_path, encoding=encoding, scoring=scoring)
    if out_csv:
        write_results_csv(run.results, out_csv, scoring)
    if out_xlsx:
        write_results_xlsx(run.results, out_xlsx, scoring)
    return run


def similarity_report(
    run: ExamRun,
    threshold_pct: float = DEFAULTS.similarity_threshold,
    out_csv: Optional[str] = None,
) -> List[SimilarityMatch]:
    """Flagged pairs, most similar first, optionally written to CSV."""
    matches = analyze(run.results, run.answer_key, threshold_pct)
    matches.sort(key=lambda m: (-m.similarity_pct, m.room_no, m.student_a.national_id, m.student_b.national_id))
    if out_csv:
        write_matches_csv(matches, out_csv)
    return matches
