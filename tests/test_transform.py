"""
Tests for the status-code transform stage.
"""

import json
from unittest.mock import MagicMock

import pytest

from shared.errors import ConfigurationError, MalformedRecordError
from status_counts import transform
from status_counts.transform import (
    ExtractStatusCode,
    FormatStatusCount,
    MalformedRecordPolicy,
    count_status_codes,
    extract_status_code,
    format_status_count,
)


def run_transform(payload, policy=MalformedRecordPolicy.FAIL):
    """Push one record through both transform functions."""
    pairs = list(ExtractStatusCode(policy).flat_map(payload))
    return [FormatStatusCount().map(pair) for pair in pairs]


class TestExtractStatusCode:

    def test_string_response(self):
        assert extract_status_code('{"response":"200"}') == ("200", 1)

    def test_numeric_response_is_coerced(self):
        assert extract_status_code('{"response":404}') == ("404", 1)

    @pytest.mark.parametrize("value, expected", [
        ("true", "true"),
        ("false", "false"),
        ("null", "null"),
        ("2.5", "2.5"),
        ('{"code": 500}', ""),
        ("[200]", ""),
    ])
    def test_other_json_types(self, value, expected):
        assert extract_status_code('{"response":%s}' % value) == (expected, 1)

    def test_other_fields_are_ignored(self):
        payload = '{"host":"10.0.0.1","response":"301","bytes":512}'

        assert extract_status_code(payload) == ("301", 1)

    @pytest.mark.parametrize("payload", [
        '{"status":"200"}',
        "not json",
        "",
        '["response"]',
        '"200"',
    ])
    def test_malformed_records(self, payload):
        with pytest.raises(MalformedRecordError):
            extract_status_code(payload)


class TestFormatStatusCount:

    def test_fixed_shape(self):
        assert format_status_count(("200", 1)) == '{"status_code":"200", "count":1}'

    def test_escapes_status_code(self):
        record = format_status_count(('say "hi"', 1))

        assert json.loads(record) == {"status_code": 'say "hi"', "count": 1}

    def test_keeps_non_ascii_text(self):
        assert format_status_count(("é", 1)) == '{"status_code":"é", "count":1}'

    def test_lone_surrogate_is_replaced(self):
        record = format_status_count(extract_status_code('{"response":"\\ud800"}'))

        assert record == '{"status_code":"?", "count":1}'
        assert record.encode("utf-8") == b'{"status_code":"?", "count":1}'


class TestTransformFunctions:

    def test_string_response_scenario(self):
        assert run_transform('{"response":"200"}') == ['{"status_code":"200", "count":1}']

    def test_numeric_response_scenario(self):
        assert run_transform('{"response":404}') == ['{"status_code":"404", "count":1}']

    def test_count_is_always_one(self):
        outputs = run_transform('{"response":"200"}') + run_transform('{"response":"200"}')

        assert outputs == ['{"status_code":"200", "count":1}'] * 2

    def test_output_has_exactly_two_fields(self):
        output = run_transform('{"response":"503","response_time":12}')[0]

        assert set(json.loads(output)) == {"status_code", "count"}

    def test_fail_policy_raises(self):
        with pytest.raises(MalformedRecordError):
            run_transform('{"status":"200"}')

    def test_skip_policy_drops_record(self):
        assert run_transform('{"status":"200"}', MalformedRecordPolicy.SKIP) == []

    def test_skip_policy_keeps_valid_records(self):
        outputs = run_transform('{"response":"200"}', MalformedRecordPolicy.SKIP)

        assert outputs == ['{"status_code":"200", "count":1}']


class TestMalformedRecordPolicy:

    def test_parse(self):
        assert MalformedRecordPolicy.parse("skip") is MalformedRecordPolicy.SKIP
        assert MalformedRecordPolicy.parse("FAIL") is MalformedRecordPolicy.FAIL

    def test_parse_rejects_unknown(self):
        with pytest.raises(ConfigurationError):
            MalformedRecordPolicy.parse("RETRY")


def test_count_status_codes_wiring(monkeypatch):
    monkeypatch.setattr(transform, "Types", MagicMock(name="Types"))
    stream = MagicMock(name="stream")

    result = count_status_codes(stream, MalformedRecordPolicy.SKIP)

    extractor = stream.flat_map.call_args[0][0]
    assert isinstance(extractor, ExtractStatusCode)
    assert extractor.policy is MalformedRecordPolicy.SKIP
    formatter = stream.flat_map.return_value.map.call_args[0][0]
    assert isinstance(formatter, FormatStatusCount)
    assert result is stream.flat_map.return_value.map.return_value
