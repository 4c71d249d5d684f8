# src/optik_eval/tools/optical_io.py
from __future__ import annotations
from pathlib import Path
from typing import List, Optional

from ..config_io import FieldMap
from ..errors import NoRecordsError
from ..parse_core import parse_optical_text
from ..records import OpticalRecord


def read_optical_text(path: str | Path, encoding: str = "utf-8") -> str:
    """
    Raw scanner output. Older readers write Windows-1254 ('cp1254');
    pass that as `encoding` for those files.
    """
    return Path(path).read_text(encoding=encoding)


def load_optical(path: str | Path, fmap: Optional[FieldMap] = None, encoding: str = "utf-8") -> List[OpticalRecord]:
    """Read and parse a scanner file; an empty result is a hard error."""
    records = parse_optical_text(read_optical_text(path, encoding=encoding), fmap)
    if not records:
        raise NoRecordsError(f"No valid records in optical file: {path}")
    return records
