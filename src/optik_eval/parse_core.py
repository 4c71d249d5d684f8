# src/optik_eval/parse_core.py
"""
Fixed-width scanner output -> OpticalRecord list, plus duplicate collapsing.

Each non-blank line is one answer sheet. Fields are cut out by zero-based
[start, start+length) offsets from a FieldMap and stripped of surrounding
whitespace. Parsing never validates; `roster_status` checks scanned IDs
afterwards (11 digits, present in the roster) for reporting.
"""
from __future__ import annotations
import logging
import re
from typing import Dict, List, Optional, Sequence, Set

from .config_io import ANSWERS_FIELD, DEFAULT_FIELD_MAP, FieldMap
from .records import OpticalRecord, RosterCheck, RosterEntry

log = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")
_NATIONAL_ID = re.compile(r"[0-9]{11}")


def split_lines(text: str) -> List[str]:
    """Split on \\n or \\r\\n and drop lines that are empty or whitespace only."""
    return [ln for ln in _LINE_SPLIT.split(text) if ln.strip()]


def extract_field(line: str, fmap: FieldMap, name: str) -> str:
    spec = fmap.get(name)
    if spec is None:
        return ""

    # Answers without a length run to end-of-line
    if name == ANSWERS_FIELD and not spec.length:
        return line[spec.start:].strip()

    if not spec.length or spec.length <= 0:
        return ""

    return line[spec.start:spec.start + spec.length].strip()


def _sequence_id(raw: str, line_no: int) -> int:
    if not raw:
        return line_no
    try:
        return int(raw)
    except ValueError:
        log.warning("Line %d: sequence field %r is not a number; using the line number", line_no, raw)
        return line_no


def parse_optical_text(text: str, fmap: Optional[FieldMap] = None) -> List[OpticalRecord]:
    """
    Parse raw scanner text into OpticalRecords, in file order.

    Returns an empty list when there are no non-blank lines; callers should
    treat that as "no valid records".
    """
    cfg = fmap if fmap is not None else DEFAULT_FIELD_MAP
    records: List[OpticalRecord] = []

    for line_no, line in enumerate(split_lines(text), start=1):
        records.append(OpticalRecord(
            id=_sequence_id(extract_field(line, cfg, "sira"), line_no),
            full_name=extract_field(line, cfg, "adSoyad"),
            national_id=extract_field(line, cfg, "tcNo"),
            room_no=extract_field(line, cfg, "salonNo"),
            absence_flag=extract_field(line, cfg, "girmedi"),
            booklet_type=extract_field(line, cfg, "kitapcik"),
            answer_string=extract_field(line, cfg, ANSWERS_FIELD),
        ))

    log.debug("Parsed %d optical record(s)", len(records))
    return records


def dedupe(records: List[OpticalRecord]) -> List[OpticalRecord]:
    """
    Collapse records sharing a national ID; the later line in the file wins.

    Records with a blank ID each get their own key and are never merged.
    Output is ordered by record id.
    """
    latest: Dict[str, OpticalRecord] = {}
    for pos, rec in enumerate(records):
        tc = rec.national_id.strip()
        key = tc if tc else f"__no_tc_{pos}"
        latest[key] = rec

    dropped = len(records) - len(latest)
    if dropped:
        log.info("Dropped %d duplicate optical record(s); last occurrence kept", dropped)

    return sorted(latest.values(), key=lambda r: r.id)


def count_duplicates(records: List[OpticalRecord]) -> int:
    """Number of records that `dedupe` would discard (blank IDs never count)."""
    seen: Dict[str, int] = {}
    for rec in records:
        tc = rec.national_id.strip()
        if tc:
            seen[tc] = seen.get(tc, 0) + 1
    return sum(n - 1 for n in seen.values() if n > 1)


def is_valid_national_id(value: str) -> bool:
    """Exactly 11 digits once surrounding whitespace is removed."""
    return bool(value) and _NATIONAL_ID.fullmatch(value.strip()) is not None


def _roster_values(roster: Sequence[RosterEntry]) -> Set[str]:
    # any cell counts, the ID column is not resolved here
    return {str(v).strip() for row in roster for v in row.values() if v is not None}


def roster_status(
    records: Sequence[OpticalRecord],
    roster: Optional[Sequence[RosterEntry]] = None,
) -> List[RosterCheck]:
    """
    One RosterCheck per record, in order. Malformed IDs are INVALID whether or
    not a roster is given; without a roster the rest are UNKNOWN. A record is
    REGISTERED when some roster cell equals its ID exactly.
    """
    known = _roster_values(roster) if roster is not None else None
    out: List[RosterCheck] = []
    for rec in records:
        tc = rec.national_id.strip()
        if not is_valid_national_id(tc):
            out.append(RosterCheck.INVALID)
        elif known is None:
            out.append(RosterCheck.UNKNOWN)
        elif tc in known:
            out.append(RosterCheck.REGISTERED)
        else:
            out.append(RosterCheck.UNREGISTERED)
    return out
