# src/optik_eval/tools/roster_io.py
"""
Roster (attendance list) readers.

A roster is returned as a list of {header: value} dicts with every value as a
string, one dict per non-empty row. Header names are kept as they appear;
finding the ID/name/room columns is the evaluator's job.
"""
from __future__ import annotations
import csv
from pathlib import Path
from typing import Any, Dict, List

import openpyxl


def cell_text(value: Any) -> str:
    """Spreadsheet cell -> string; whole floats lose their '.0' so IDs survive."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_roster_xlsx(path: str | Path) -> List[Dict[str, str]]:
    """First sheet, first row as headers."""
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return []
        headers = [cell_text(h) for h in header_row]

        out: List[Dict[str, str]] = []
        for row in rows:
            values = [cell_text(v) for v in row]
            if not any(values):
                continue
            out.append({h: (values[i] if i < len(values) else "")
                        for i, h in enumerate(headers) if h})
        return out
    finally:
        wb.close()


def read_roster_csv(path: str | Path, encoding: str = "utf-8-sig") -> List[Dict[str, str]]:
    """Header row first. Cells past the header (DictReader's None key) are dropped."""
    out: List[Dict[str, str]] = []
    with open(path, "r", newline="", encoding=encoding) as f:
        for row in csv.DictReader(f):
            entry = {k.strip(): (v or "").strip() for k, v in row.items() if k}
            if any(entry.values()):
                out.append(entry)
    return out


def read_roster(path: str | Path) -> List[Dict[str, str]]:
    """Dispatch on extension: .xlsx/.xlsm via openpyxl, .csv via the csv module."""
    p = Path(path)
    ext = p.suffix.lower()
    if ext in {".xlsx", ".xlsm"}:
        return read_roster_xlsx(p)
    if ext == ".csv":
        return read_roster_csv(p)
    raise ValueError(f"Unsupported roster format '{ext}' (use .xlsx or .csv): {p}")
