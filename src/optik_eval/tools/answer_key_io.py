# src/optik_eval/tools/answer_key_io.py
"""
Answer key loaders.

In memory a key is {booklet: {document_type: {question_no: answer}}} with
1-based int question numbers. Three sources are understood:

- JSON / YAML files holding that nesting (question numbers may be strings);
- a workbook where each sheet is a booklet, row 1 holds document types in
  every second column and rows 3.. hold (question_no, answer) column pairs;
- a single-sheet workbook with one answer column per (document type,
  booklet), mapped by column letter.
"""
from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import openpyxl
import yaml
from openpyxl.utils import column_index_from_string

from ..config_io import load_config_any
from ..records import AnswerKey, QuestionMap
from .roster_io import cell_text

log = logging.getLogger(__name__)

CHOICES = "ABCDE"
_CHOICE_RE = re.compile(f"[{CHOICES}]")

# ------------------------------------------------------------------------------
# Normalization
# ------------------------------------------------------------------------------

def _question_no(raw: Any) -> Optional[int]:
    try:
        q = int(float(str(raw).strip()))
    except (TypeError, ValueError):
        return None
    return q if q > 0 else None


def normalize_question_map(raw: Mapping[Any, Any]) -> QuestionMap:
    qmap: QuestionMap = {}
    for q_raw, ans in raw.items():
        q = _question_no(q_raw)
        if q is None:
            raise ValueError(f"Question number must be a positive integer, got {q_raw!r}")
        # scanner answers are upper case
        text = cell_text(ans).upper()
        if text:
            qmap[q] = text
    return dict(sorted(qmap.items()))


def normalize_answer_key(raw: Mapping[Any, Any]) -> AnswerKey:
    """Coerce a loosely typed nested mapping (e.g. from JSON) into an AnswerKey."""
    key: AnswerKey = {}
    for booklet, docs in raw.items():
        if not isinstance(docs, Mapping):
            raise ValueError(f"Booklet '{booklet}' must map document types to question maps.")
        b = str(booklet).strip().upper()
        key[b] = {}
        for doc, qraw in docs.items():
            if not isinstance(qraw, Mapping):
                raise ValueError(f"Key '{booklet}/{doc}' must map question numbers to answers.")
            key[b][str(doc).strip()] = normalize_question_map(qraw)
    return key


def normalize_choice(value: Any) -> str:
    """'A'..'E' kept, '1'..'5' -> 'A'..'E', otherwise the first A-E letter found, else ''."""
    text = cell_text(value).upper()
    if not text:
        return ""
    if len(text) == 1 and text in CHOICES:
        return text
    if len(text) == 1 and text in "12345":
        return CHOICES[int(text) - 1]
    m = _CHOICE_RE.search(text)
    return m.group(0) if m else ""

# ------------------------------------------------------------------------------
# Workbook readers
# ------------------------------------------------------------------------------

def load_answer_key_workbook(path: str | Path) -> AnswerKey:
    """Sheet name = booklet; header row = document types at columns 1, 3, 5, ..."""
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    key: AnswerKey = {}
    try:
        for ws in wb.worksheets:
            booklet = ws.title.strip().upper()
            key[booklet] = {}
            rows = list(ws.iter_rows(values_only=True))
            if len(rows) < 3:  # header + spacer + at least one data row
                continue

            headers = rows[0]
            for i in range(0, len(headers), 2):
                doc = cell_text(headers[i])
                if not doc:
                    continue
                qmap: QuestionMap = {}
                for row in rows[2:]:
                    q_raw = row[i] if i < len(row) else None
                    ans = row[i + 1] if i + 1 < len(row) else None
                    if q_raw is None or ans is None:
                        continue
                    q = _question_no(q_raw)
                    if q is None:
                        log.debug("Sheet %s, %s: skipping non-numeric question %r", ws.title, doc, q_raw)
                        continue
                    qmap[q] = cell_text(ans).upper()
                key[booklet][doc] = qmap
    finally:
        wb.close()
    return key


def load_answer_key_columns(
    path: str | Path,
    mappings: Mapping[Tuple[str, str], str],
    start_row: int = 2,
) -> AnswerKey:
    """
    Build a key from answer columns on the first sheet.

    `mappings` maps (document_type, booklet) -> column letter. Rows from
    `start_row` (1-based) down are read; each cell that normalizes to a choice
    becomes the next question, so blank or junk rows are skipped.
    """
    if not mappings:
        raise ValueError("At least one (document type, booklet) column mapping is required.")

    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        rows = list(wb.worksheets[0].iter_rows(min_row=max(1, start_row), values_only=True))
    finally:
        wb.close()

    key: AnswerKey = {}
    for (doc, booklet), letter in mappings.items():
        idx = column_index_from_string(letter.strip().upper()) - 1
        answers = [normalize_choice(row[idx]) for row in rows if idx < len(row)]
        answers = [a for a in answers if a]
        if not answers:
            log.warning("Column %s (%s/%s) holds no answers from row %d", letter, booklet, doc, start_row)
            continue
        key.setdefault(booklet.strip().upper(), {})[doc.strip()] = {
            i + 1: a for i, a in enumerate(answers)
        }
    return key

# ------------------------------------------------------------------------------
# Dispatch / persist
# ------------------------------------------------------------------------------

def load_answer_key(path: str | Path) -> AnswerKey:
    """.xlsx/.xlsm -> booklet-per-sheet workbook; anything else -> JSON/YAML mapping."""
    p = Path(path)
    if p.suffix.lower() in {".xlsx", ".xlsm"}:
        return load_answer_key_workbook(p)
    return normalize_answer_key(load_config_any(p))


def dump_answer_key(key: AnswerKey, path: str | Path) -> Path:
    p = Path(path)
    data: Dict[str, Any] = {b: {d: {int(q): a for q, a in qmap.items()} for d, qmap in docs.items()}
                            for b, docs in key.items()}
    if p.suffix.lower() in {".yml", ".yaml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return p
