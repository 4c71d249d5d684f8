import json

import pytest

from optik_eval.config_io import (
    DEFAULT_FIELD_MAP,
    FieldSpec,
    dump_field_map,
    load_config_any,
    load_field_map,
)


def test_no_path_gives_default_layout():
    fmap = load_field_map(None)
    assert fmap is DEFAULT_FIELD_MAP
    assert fmap.get("tcNo") == FieldSpec(22, 11)
    assert fmap.get("cevaplar").length is None


def test_json_field_map(tmp_path):
    p = tmp_path / "map.json"
    p.write_text(json.dumps({
        "tcNo": {"start": "3", "length": "11"},
        "cevaplar": {"start": 20, "length": None},
    }), encoding="utf-8")
    fmap = load_field_map(p)
    assert fmap.get("tcNo") == FieldSpec(3, 11)
    assert fmap.get("cevaplar") == FieldSpec(20, None)
    # a supplied map replaces the default one
    assert fmap.get("adSoyad") is None


def test_yaml_field_map(tmp_path):
    p = tmp_path / "map.yaml"
    p.write_text("tcNo:\n  start: 0\n  length: 11\nkitapcik:\n  start: 11\n  length: 1\n", encoding="utf-8")
    fmap = load_field_map(p)
    assert fmap.get("kitapcik") == FieldSpec(11, 1)


def test_unknown_field_is_rejected(tmp_path):
    p = tmp_path / "map.json"
    p.write_text(json.dumps({"tcno": {"start": 0, "length": 11}}), encoding="utf-8")
    with pytest.raises(ValueError, match="tcno"):
        load_field_map(p)


def test_non_integer_offset_is_rejected(tmp_path):
    p = tmp_path / "map.json"
    p.write_text(json.dumps({"tcNo": {"start": "x", "length": 11}}), encoding="utf-8")
    with pytest.raises(ValueError, match="tcNo"):
        load_field_map(p)


def test_config_root_must_be_mapping(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config_any(p)


@pytest.mark.parametrize("name", ["map.yaml", "map.json"])
def test_dumped_default_map_loads_back(tmp_path, name):
    p = dump_field_map(DEFAULT_FIELD_MAP, tmp_path / name)
    assert load_field_map(p) == DEFAULT_FIELD_MAP
