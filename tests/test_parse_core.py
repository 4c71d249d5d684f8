"""Tests for the fixed-width parser and duplicate collapsing."""

import pytest

from optik_eval.config_io import FieldMap, FieldSpec
from optik_eval.parse_core import (
    count_duplicates,
    dedupe,
    is_valid_national_id,
    parse_optical_text,
    roster_status,
    split_lines,
)
from optik_eval.records import OpticalRecord, RosterCheck

from conftest import make_line


class TestParseOpticalText:

    def test_recovers_fields_at_default_offsets(self):
        line = make_line("AYSE YILMAZ", "11111111111", "01", "G", "B", "ABCDE ABCDE")
        recs = parse_optical_text(line)

        assert len(recs) == 1
        rec = recs[0]
        assert rec.id == 1
        assert rec.full_name == "AYSE YILMAZ"
        assert rec.national_id == "11111111111"
        assert rec.room_no == "01"
        assert rec.absence_flag == "G"
        assert rec.booklet_type == "B"
        assert rec.answer_string == "ABCDE ABCDE"

    def test_blank_lines_and_crlf_are_dropped(self):
        text = "\r\n".join([
            make_line("A", "11111111111", "01", "", "A", "AB"),
            "",
            "    ",
            make_line("B", "22222222222", "01", "", "A", "CD"),
        ]) + "\r\n"
        recs = parse_optical_text(text)
        assert [r.id for r in recs] == [1, 2]
        assert [r.national_id for r in recs] == ["11111111111", "22222222222"]
        assert recs[1].answer_string == "CD"

    def test_empty_text_gives_no_records(self):
        assert parse_optical_text("") == []
        assert parse_optical_text("\n \r\n\n") == []

    def test_custom_map_with_sequence_field(self):
        fmap = FieldMap({
            "sira": FieldSpec(0, 3),
            "tcNo": FieldSpec(3, 11),
            "kitapcik": FieldSpec(14, 1),
            "cevaplar": FieldSpec(15, 4),
        })
        recs = parse_optical_text("00711111111111AABCDEXTRA\n", fmap)
        rec = recs[0]
        assert rec.id == 7
        assert rec.national_id == "11111111111"
        assert rec.booklet_type == "A"
        assert rec.answer_string == "ABCD"
        # fields not in the map come out empty
        assert rec.full_name == ""
        assert rec.room_no == ""

    def test_non_numeric_sequence_falls_back_to_line_number(self):
        fmap = FieldMap({"sira": FieldSpec(0, 2), "tcNo": FieldSpec(2, 11)})
        recs = parse_optical_text("xx11111111111\nyy22222222222", fmap)
        assert [r.id for r in recs] == [1, 2]

    def test_zero_length_field_is_empty(self):
        fmap = FieldMap({"tcNo": FieldSpec(0, 11), "salonNo": FieldSpec(11, 0), "cevaplar": FieldSpec(11, 0)})
        rec = parse_optical_text("11111111111ABC", fmap)[0]
        assert rec.room_no == ""
        # answers with no length run to end of line
        assert rec.answer_string == "ABC"

    def test_short_line_gives_empty_trailing_fields(self):
        rec = parse_optical_text("AYSE")[0]
        assert rec.full_name == "AYSE"
        assert rec.national_id == ""
        assert rec.answer_string == ""

    def test_split_lines(self):
        assert split_lines("a\r\nb\n\nc") == ["a", "b", "c"]


def _rec(id, tc, answers="A"):
    return OpticalRecord(id=id, national_id=tc, answer_string=answers)


class TestDedupe:

    def test_last_occurrence_wins(self):
        recs = [_rec(1, "111", "AAAA"), _rec(2, "222", "BBBB"), _rec(3, "111", "CCCC")]
        out = dedupe(recs)
        assert [r.id for r in out] == [2, 3]
        assert out[1].answer_string == "CCCC"

    def test_blank_ids_are_never_merged(self):
        recs = [_rec(1, ""), _rec(2, "  "), _rec(3, "")]
        assert [r.id for r in dedupe(recs)] == [1, 2, 3]

    def test_ids_are_trimmed_before_grouping(self):
        recs = [_rec(1, "111 "), _rec(2, " 111")]
        assert [r.id for r in dedupe(recs)] == [2]

    def test_idempotent_and_unique(self):
        recs = [_rec(i, tc) for i, tc in enumerate(["1", "2", "1", "", "3", "2", ""], start=1)]
        once = dedupe(recs)
        assert dedupe(once) == once
        ids = [r.national_id for r in once if r.national_id]
        assert len(ids) == len(set(ids))

    def test_sorted_by_id(self):
        recs = [_rec(5, "a"), _rec(2, "b"), _rec(9, "c")]
        assert [r.id for r in dedupe(recs)] == [2, 5, 9]

    def test_count_duplicates(self):
        recs = [_rec(1, "1"), _rec(2, "1"), _rec(3, "1"), _rec(4, "2"), _rec(5, ""), _rec(6, "")]
        assert count_duplicates(recs) == 2


class TestRosterStatus:

    @pytest.mark.parametrize("value,expected", [
        ("11111111111", True),
        (" 11111111111 ", True),
        ("1111111111", False),
        ("111111111111", False),
        ("1111111111X", False),
        ("", False),
    ])
    def test_is_valid_national_id(self, value, expected):
        assert is_valid_national_id(value) is expected

    def test_against_roster(self):
        recs = [
            OpticalRecord(id=1, national_id="11111111111"),
            OpticalRecord(id=2, national_id="99999999999"),
            OpticalRecord(id=3, national_id="1111111"),
            OpticalRecord(id=4, national_id=""),
        ]
        roster = [{"TC": "11111111111", "ADI": "AYSE"}, {"TC": 22222222222, "ADI": None}]
        assert roster_status(recs, roster) == [
            RosterCheck.REGISTERED,
            RosterCheck.UNREGISTERED,
            RosterCheck.INVALID,
            RosterCheck.INVALID,
        ]

    def test_roster_match_is_exact_not_substring(self):
        recs = [OpticalRecord(id=1, national_id="11111111111")]
        roster = [{"TC": "11111111111 (eski)"}]
        assert roster_status(recs, roster) == [RosterCheck.UNREGISTERED]

    def test_without_roster_only_invalid_is_known(self):
        recs = [OpticalRecord(id=1, national_id="11111111111"), OpticalRecord(id=2, national_id="12")]
        assert roster_status(recs) == [RosterCheck.UNKNOWN, RosterCheck.INVALID]
