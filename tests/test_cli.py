"""End-to-end tests through the typer CLI."""

import csv

import pytest
from typer.testing import CliRunner

from optik_eval.cli import app
from optik_eval.config_io import DEFAULT_FIELD_MAP, load_field_map

from conftest import make_line

runner = CliRunner()


def _read_csv(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_parse_writes_records(tmp_path, exam_files):
    out = tmp_path / "optical.csv"
    result = runner.invoke(app, ["parse", str(exam_files["optical"]), "-o", str(out)])
    assert result.exit_code == 0, result.output
    rows = _read_csv(out)
    assert [r["national_id"] for r in rows] == ["11111111111", "22222222222", "33333333333"]
    assert "Absent: 1" in result.output


def test_parse_checks_ids_against_roster(tmp_path, exam_files):
    optical = tmp_path / "scan.txt"
    optical.write_text("\n".join([
        make_line("AYSE YILMAZ", "11111111111", "01", "", "A", "ABCAD"),
        make_line("VELI UNKNOWN", "99999999999", "01", "", "A", "ABCAD"),
        make_line("MISREAD", "1234 678901", "01", "", "A", "ABCAD"),
    ]) + "\n", encoding="utf-8")
    out = tmp_path / "optical.csv"
    result = runner.invoke(app, ["parse", str(optical), "-o", str(out), "--roster", str(exam_files["roster"])])
    assert result.exit_code == 0, result.output
    assert "Invalid IDs: 1" in result.output
    assert "not on roster: 1" in result.output
    assert [r["status"] for r in _read_csv(out)] == ["registered", "unregistered", "invalid"]


def test_evaluate_end_to_end(tmp_path, exam_files):
    out_csv = tmp_path / "results.csv"
    out_xlsx = tmp_path / "results.xlsx"
    result = runner.invoke(app, [
        "evaluate", str(exam_files["roster"]), str(exam_files["optical"]),
        "--key", str(exam_files["key"]), "-o", str(out_csv), "--out-xlsx", str(out_xlsx),
    ])
    assert result.exit_code == 0, result.output
    rows = _read_csv(out_csv)
    assert [r["Score"] for r in rows] == ["10.00", "10.00", "0.00"]
    assert [r["Status"] for r in rows] == ["entered", "entered", "absent"]
    assert out_xlsx.exists()
    assert "scored: 2" in result.output


def test_evaluate_with_pass_mark_override(tmp_path, exam_files):
    out_csv = tmp_path / "results.csv"
    result = runner.invoke(app, [
        "evaluate", str(exam_files["roster"]), str(exam_files["optical"]),
        "-k", str(exam_files["key"]), "-o", str(out_csv), "--pass-mark", "10",
    ])
    assert result.exit_code == 0, result.output
    assert [r["Outcome"] for r in _read_csv(out_csv)][:2] == ["pass", "pass"]


def test_similarity_flags_identical_sheets(tmp_path, exam_files):
    out_csv = tmp_path / "pairs.csv"
    result = runner.invoke(app, [
        "similarity", str(exam_files["roster"]), str(exam_files["optical"]),
        "-k", str(exam_files["key"]), "-o", str(out_csv), "--threshold", "95",
    ])
    assert result.exit_code == 0, result.output
    rows = _read_csv(out_csv)
    assert len(rows) == 1
    assert rows[0]["Similarity %"] == "100.0"
    assert rows[0]["Shared Correct"] == "4"
    assert rows[0]["Shared Wrong"] == "1"


def test_stats_prints_table(exam_files):
    result = runner.invoke(app, [
        "stats", str(exam_files["roster"]), str(exam_files["optical"]), "-k", str(exam_files["key"]),
    ])
    assert result.exit_code == 0, result.output
    assert "SRC1" in result.output


def test_missing_key_file_exits_with_code_2(tmp_path, exam_files):
    result = runner.invoke(app, [
        "evaluate", str(exam_files["roster"]), str(exam_files["optical"]),
        "-k", str(tmp_path / "nope.json"), "-o", str(tmp_path / "r.csv"),
    ])
    assert result.exit_code == 2
    assert "Evaluation failed" in result.output


def test_empty_optical_file_exits_with_code_2(tmp_path):
    empty = tmp_path / "empty.txt"
    empty.write_text("\n", encoding="utf-8")
    result = runner.invoke(app, ["parse", str(empty), "-o", str(tmp_path / "o.csv")])
    assert result.exit_code == 2
    assert "Parsing failed" in result.output


@pytest.mark.parametrize("name", ["field_map.yaml", "field_map.json"])
def test_field_map_command(tmp_path, name):
    out = tmp_path / name
    result = runner.invoke(app, ["field-map", str(out)])
    assert result.exit_code == 0, result.output
    assert load_field_map(out) == DEFAULT_FIELD_MAP


def test_key_import_from_columns(tmp_path):
    import openpyxl

    src = tmp_path / "answers.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["No", "A"])
    for i, ans in enumerate("ABCDE", start=1):
        ws.append([i, ans])
    wb.save(src)

    out = tmp_path / "key.json"
    result = runner.invoke(app, ["key-import", str(src), "-c", "SRC1:A=B", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "5 question(s)" in result.output


def test_key_import_rejects_bad_mapping(tmp_path):
    result = runner.invoke(app, ["key-import", str(tmp_path / "x.xlsx"), "-c", "SRC1"])
    assert result.exit_code == 2
