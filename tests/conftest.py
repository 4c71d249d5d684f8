import json

import pytest

from optik_eval.records import ScoredResult, Status


def make_line(name="", tc="", room="", absent="", booklet="", answers=""):
    """One scanner line in the default field layout."""
    return f"{name:<22}{tc:<11}{room:<2}{absent:<2}{booklet:<1}{answers}"


def make_result(tc, answers, room="101", booklet="A", document_type="SRC1",
                status=Status.ENTERED, name=None):
    return ScoredResult(
        roster={"TC": tc},
        national_id=tc,
        full_name=name or f"Student {tc[-2:]}",
        document_type=document_type,
        room_no=room,
        status=status,
        booklet_type=booklet,
        answer_string=answers,
    )


@pytest.fixture
def answer_key():
    return {
        "A": {"SRC1": {1: "A", 2: "B", 3: "C", 4: "A", 5: "A"}},
        "B": {"SRC1": {1: "C", 2: "A", 3: "B", 4: "D", 5: "E"}},
    }


@pytest.fixture
def roster():
    return [
        {"SIRA": "1", "TC KİMLİK NO": "11111111111", "ADI SOYADI": "AYŞE YILMAZ", "BELGE TÜRÜ": "SRC1", "SALON": "101"},
        {"SIRA": "2", "TC KİMLİK NO": "22222222222", "ADI SOYADI": "MEHMET KAYA", "BELGE TÜRÜ": "SRC1", "SALON": "101"},
        {"SIRA": "3", "TC KİMLİK NO": "33333333333", "ADI SOYADI": "ALİ DEMİR", "BELGE TÜRÜ": "SRC1", "SALON": "102"},
    ]


@pytest.fixture
def exam_files(tmp_path, roster, answer_key):
    """Roster CSV, scanner text and JSON key on disk."""
    roster_csv = tmp_path / "roster.csv"
    headers = list(roster[0].keys())
    lines = [",".join(headers)] + [",".join(r[h] for h in headers) for r in roster]
    roster_csv.write_text("\n".join(lines) + "\n", encoding="utf-8")

    optical = tmp_path / "optical.txt"
    optical.write_text("\n".join([
        make_line("AYSE YILMAZ", "11111111111", "01", "", "A", "ABCAD"),
        make_line("MEHMET KAYA", "22222222222", "01", "", "A", "ABCAD"),
        make_line("ALI DEMIR", "33333333333", "02", "G", "A", ""),
    ]) + "\n", encoding="utf-8")

    key = tmp_path / "key.json"
    key.write_text(json.dumps({b: {d: {str(q): a for q, a in qm.items()} for d, qm in docs.items()}
                               for b, docs in answer_key.items()}), encoding="utf-8")
    return {"roster": roster_csv, "optical": optical, "key": key}
