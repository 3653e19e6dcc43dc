"""Tests for lenient JSON repair and salvage of oracle responses."""

from __future__ import annotations

import json

import pytest

from archlens.errors import OracleResponseError
from archlens.oracle.parser import (
    parse_json_object,
    repair_truncated_json,
    salvage_json_list,
    salvage_transcription,
    strip_fences,
)


class TestRepair:
    def test_strips_code_fences(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_closes_open_string_and_object(self):
        assert json.loads(repair_truncated_json('```json\n{"a": "hel')) == {"a": "hel"}

    def test_drops_trailing_comma(self):
        assert json.loads(repair_truncated_json('[{"a": 1},')) == [{"a": 1}]

    def test_dangling_escape(self):
        assert json.loads(repair_truncated_json('{"a": "x\\')) == {"a": "x"}

    def test_nested(self):
        repaired = repair_truncated_json('[{"id": 1, "pageIds": ["p1", "p2')
        assert json.loads(repaired) == [{"id": 1, "pageIds": ["p1", "p2"]}]

    def test_complete_json_unchanged(self):
        text = '{"a": [1, 2], "b": "}"}'
        assert repair_truncated_json(text) == text


class TestParseObject:
    def test_single_item_list_unwrapped(self):
        assert parse_json_object('[{"language": "Hebrew"}]') == {"language": "Hebrew"}

    def test_non_object_rejected(self):
        with pytest.raises(OracleResponseError):
            parse_json_object("[1, 2]")

    def test_garbage_rejected(self):
        with pytest.raises(OracleResponseError):
            parse_json_object("not json at all")


class TestSalvageList:
    def test_truncated_list_repaired(self):
        text = '[{"id": 1, "title": "A"}, {"id": 2, "title": "B", "pageIds": ["p'
        assert [c["id"] for c in salvage_json_list(text)] == [1, 2]

    def test_scans_complete_objects(self):
        text = '[{"id": 1, "title": "x}"} garbage {"id": 2}'
        assert salvage_json_list(text) == [{"id": 1, "title": "x}"}, {"id": 2}]

    def test_object_wrapped_in_list(self):
        assert salvage_json_list('{"id": 3}') == [{"id": 3}]

    def test_empty(self):
        assert salvage_json_list("") == []


class TestSalvageTranscription:
    def test_truncated_json(self):
        result = salvage_transcription('{"transcription": "Line one", "confidenceScore": 4, "translation": "ab')
        assert result == {"transcription": "Line one", "confidenceScore": 4, "translation": "ab"}

    def test_regex_fallback(self):
        text = 'Sure! {"transcription": "Hello \\"world\\"\\nBye", "confidenceScore": 5}'
        result = salvage_transcription(text)
        assert result["transcription"] == 'Hello "world"\nBye'
        assert result["translation"] == ""
        assert result["confidenceScore"] == 5

    def test_nothing_recoverable(self):
        with pytest.raises(OracleResponseError):
            salvage_transcription("The model declined to answer.")
