# src/optik_eval/tools/report_writer.py
"""
Plain CSV / XLSX exports of results and flagged pairs.

This is the formatting boundary: scores become 2-decimal strings and
similarity 1-decimal strings here, nowhere earlier. No cell styling.
"""
from __future__ import annotations
import csv
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import openpyxl

from ..parse_core import roster_status
from ..records import OpticalRecord, RosterEntry, ScoredResult, SimilarityMatch
from ..scoring_defaults import DEFAULTS, ScoringDefaults

RESULT_HEADER = ["Seq", "Room", "National ID", "Full Name", "Document Type", "Status",
                 "Booklet", "Correct", "Wrong", "Blank", "Net", "Score", "Outcome"]

MATCH_HEADER = ["Room", "Booklet", "Document Type",
                "National ID A", "Full Name A", "National ID B", "Full Name B",
                "Similarity %", "Matching", "Compared", "Shared Correct", "Shared Wrong"]

OPTICAL_HEADER = ["id", "full_name", "national_id", "room_no", "absence_flag",
                  "booklet_type", "answer_string"]

# Excel caps sheet titles at 31 chars and forbids a few characters.
_SHEET_BAD = set('[]:*?/\\')


def _ensure_parent(path: str | Path) -> None:
    parent = os.path.dirname(str(path))
    if parent and not os.path.isdir(parent):
        os.makedirs(parent, exist_ok=True)


def format_score(score: float) -> str:
    return f"{score:.2f}"


def result_row(seq: int, r: ScoredResult, scoring: ScoringDefaults = DEFAULTS) -> List[str]:
    return [
        str(seq),
        r.room_no,
        r.national_id,
        r.full_name,
        r.document_type,
        r.status_label,
        r.booklet_type or "-",
        str(r.correct_count),
        str(r.wrong_count),
        str(r.blank_count),
        f"{r.net(scoring.net_penalty):.2f}",
        format_score(r.score),
        r.outcome.value,
    ]


def match_row(m: SimilarityMatch) -> List[str]:
    return [
        m.room_no,
        m.booklet_type,
        m.document_type,
        m.student_a.national_id,
        m.student_a.full_name,
        m.student_b.national_id,
        m.student_b.full_name,
        f"{m.similarity_pct:.1f}",
        str(m.match_count),
        str(m.total_count),
        str(m.shared_correct),
        str(m.shared_wrong),
    ]


def write_results_csv(results: Sequence[ScoredResult], out_csv: str | Path,
                      scoring: ScoringDefaults = DEFAULTS) -> str:
    _ensure_parent(out_csv)
    with open(out_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(RESULT_HEADER)
        for seq, r in enumerate(results, start=1):
            writer.writerow(result_row(seq, r, scoring))
    return str(out_csv)


def _sheet_title(name: str, used: Dict[str, int]) -> str:
    title = "".join("_" if c in _SHEET_BAD else c for c in (name or "general"))[:31] or "general"
    n = used.get(title, 0)
    used[title] = n + 1
    return title if n == 0 else f"{title[:27]}_{n}"


def write_results_xlsx(results: Sequence[ScoredResult], out_xlsx: str | Path,
                       scoring: ScoringDefaults = DEFAULTS) -> str:
    """One sheet per room, rows in result order."""
    _ensure_parent(out_xlsx)
    by_room: Dict[str, List[ScoredResult]] = {}
    for r in results:
        by_room.setdefault(r.room_no, []).append(r)

    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    used: Dict[str, int] = {}
    for room, rows in by_room.items():
        ws = wb.create_sheet(_sheet_title(room, used))
        ws.append(RESULT_HEADER)
        for seq, r in enumerate(rows, start=1):
            ws.append(result_row(seq, r, scoring))
    if not wb.worksheets:
        wb.create_sheet("results").append(RESULT_HEADER)
    wb.save(out_xlsx)
    return str(out_xlsx)


def write_matches_csv(matches: Sequence[SimilarityMatch], out_csv: str | Path) -> str:
    _ensure_parent(out_csv)
    with open(out_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(MATCH_HEADER)
        for m in matches:
            writer.writerow(match_row(m))
    return str(out_csv)


def write_optical_csv(records: Sequence[OpticalRecord], out_csv: str | Path,
                      roster: Optional[Sequence[RosterEntry]] = None) -> str:
    """Parsed records plus a status column (invalid / registered / unregistered / unknown)."""
    _ensure_parent(out_csv)
    checks = roster_status(records, roster)
    with open(out_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(OPTICAL_HEADER + ["status"])
        for rec, check in zip(records, checks):
            writer.writerow([getattr(rec, name) for name in OPTICAL_HEADER] + [check.value])
    return str(out_csv)
