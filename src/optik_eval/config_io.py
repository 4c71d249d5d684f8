# src/optik_eval/config_io.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import json

import yaml

# Persisted field names of the scanner column map, in record order.
FIELD_NAMES = ("sira", "adSoyad", "tcNo", "salonNo", "girmedi", "kitapcik", "cevaplar")

# The answers field runs to end-of-line when it has no length.
ANSWERS_FIELD = "cevaplar"


@dataclass(frozen=True)
class FieldSpec:
    start: int = 0
    length: Optional[int] = None

    @classmethod
    def from_mapping(cls, name: str, raw: Any) -> "FieldSpec":
        if not isinstance(raw, dict):
            raise ValueError(f"Field '{name}' must be a mapping with 'start' and 'length'.")
        try:
            start = int(raw.get("start") or 0)
            length_raw = raw.get("length")
            length = None if length_raw in (None, "") else int(length_raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Field '{name}' has a non-integer start/length: {raw!r}") from e
        return cls(start=max(0, start), length=length)

    def to_mapping(self) -> Dict[str, Any]:
        return {"start": self.start, "length": self.length}


@dataclass(frozen=True)
class FieldMap:
    """Column layout of one scanner output line (zero-based offsets)."""
    fields: Dict[str, FieldSpec] = field(default_factory=dict)

    def get(self, name: str) -> Optional[FieldSpec]:
        return self.fields.get(name)

    def to_mapping(self) -> Dict[str, Dict[str, Any]]:
        return {name: spec.to_mapping() for name, spec in self.fields.items()}


DEFAULT_FIELD_MAP = FieldMap({
    "sira": FieldSpec(0, 0),        # 0 length = use the line number
    "adSoyad": FieldSpec(0, 22),
    "tcNo": FieldSpec(22, 11),
    "salonNo": FieldSpec(33, 2),
    "girmedi": FieldSpec(35, 2),
    "kitapcik": FieldSpec(37, 1),
    "cevaplar": FieldSpec(38, None),  # None = to end of line
})


def load_config_any(path: str | Path) -> Dict[str, Any]:
    """
    Prefer YAML, but transparently accept JSON.
    - If extension is .yml/.yaml -> use YAML
    - If extension is .json -> use JSON
    - Otherwise: try YAML first, then JSON
    """
    p = Path(path)
    data = p.read_text(encoding="utf-8")
    ext = p.suffix.lower()

    if ext in {".yml", ".yaml"}:
        cfg = yaml.safe_load(data)
    elif ext == ".json":
        cfg = json.loads(data)
    else:
        # No/unknown extension: prefer YAML, then fallback to JSON
        try:
            cfg = yaml.safe_load(data)
        except yaml.YAMLError:
            cfg = json.loads(data)

    if not isinstance(cfg, dict):
        raise ValueError("Config root must be a mapping/object.")

    return cfg


def field_map_from_mapping(raw: Dict[str, Any]) -> FieldMap:
    """
    Build a FieldMap from a flat {fieldName: {start, length}} mapping.
    A supplied map replaces the default one; fields it leaves out extract as "".
    Unknown field names are rejected so typos do not silently blank a column.
    """
    unknown = sorted(set(raw) - set(FIELD_NAMES))
    if unknown:
        raise ValueError(f"Unknown field(s) in field map: {', '.join(unknown)}. "
                         f"Expected some of: {', '.join(FIELD_NAMES)}")
    return FieldMap({name: FieldSpec.from_mapping(name, raw[name])
                     for name in FIELD_NAMES if name in raw})


def load_field_map(path: str | Path | None = None) -> FieldMap:
    """Load a field map from YAML/JSON, or return the default layout when no path is given."""
    if path is None:
        return DEFAULT_FIELD_MAP
    return field_map_from_mapping(load_config_any(path))


def dump_field_map(fmap: FieldMap, path: str | Path) -> Path:
    """Write a field map as YAML (.yml/.yaml) or JSON (anything else)."""
    p = Path(path)
    data = fmap.to_mapping()
    if p.suffix.lower() in {".yml", ".yaml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return p
