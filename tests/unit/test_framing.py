"""Unit tests for mailchimp_export/framing.py (line-delimited JSON framing)."""

import json

import pytest

from mailchimp_export.exceptions import ExportParseError, ExportServiceError
from mailchimp_export.framing import (
    Batch,
    flush_remainder,
    frame_document,
    frame_lines,
    frame_list_export,
    frame_subscriber_activity,
    is_service_error,
)

RECORDS = [
    ["Email Address", "First Name", "Last Name"],
    ["ada@example.com", "Ada", "Lovelace"],
    ["grace@example.com", "Grace", "Hopper"],
    {"alan@example.com": [{"action": "open", "timestamp": "2012-05-01 10:00:00"}]},
]
BODY = "".join(json.dumps(r) + "\n" for r in RECORDS)


def stream_decode(framer, chunks):
    """Feed chunks through a framer the way ExportStream does."""
    batches = []
    remainder = ""
    for chunk in chunks:
        batch = framer(chunk, remainder, partial=True)
        remainder = batch.remainder
        batches.append(batch.records)
    final = flush_remainder(framer, remainder)
    if final.records:
        batches.append(final.records)
    return batches


class TestFrameLines:
    def test_example_body(self):
        batch = frame_lines('{"a":1}\n{"b":2}\n')
        assert batch == Batch(records=[{"a": 1}, {"b": 2}], remainder="")

    def test_records_in_order(self):
        assert frame_lines(BODY).records == RECORDS

    def test_idempotent(self):
        assert frame_lines(BODY) == frame_lines(BODY)

    def test_blank_lines_skipped(self):
        batch = frame_lines('\n{"a":1}\n\n  \n{"b":2}')
        assert batch.records == [{"a": 1}, {"b": 2}]

    def test_crlf_line_endings(self):
        assert frame_lines('{"a":1}\r\n{"b":2}\r\n').records == [{"a": 1}, {"b": 2}]

    def test_empty_text(self):
        assert frame_lines("") == Batch()

    def test_malformed_line_raises_parse_error(self):
        with pytest.raises(ExportParseError) as exc_info:
            frame_lines('{"a":1}\n{"b":\n{"c":3}\n')
        assert exc_info.value.line == 1

    def test_trailing_fragment_is_error_when_not_partial(self):
        with pytest.raises(ExportParseError):
            frame_lines('{"a":1}\n{"b":')


class TestPartialFraming:
    def test_trailing_fragment_becomes_remainder(self):
        batch = frame_lines('{"a":1}\n{"b":', partial=True)
        assert batch.records == [{"a": 1}]
        assert batch.remainder == '{"b":'

    def test_complete_tail_without_newline_is_held(self):
        """A line is only parsed once its newline has arrived."""
        batch = frame_lines('{"a":1}', partial=True)
        assert batch.records == []
        assert batch.remainder == '{"a":1}'

    def test_ends_on_newline_leaves_empty_remainder(self):
        batch = frame_lines('{"a":1}\n', partial=True)
        assert batch == Batch(records=[{"a": 1}], remainder="")

    def test_remainder_is_prepended(self):
        batch = frame_lines('}\n{"b":2}\n', '{"a":1', partial=True)
        assert batch.records == [{"a": 1}, {"b": 2}]
        assert batch.remainder == ""

    def test_malformed_interior_line_is_not_a_remainder(self):
        with pytest.raises(ExportParseError):
            frame_lines('{"a":1}\nnot json\n{"b":', partial=True)

    def test_example_chunks(self):
        first = frame_lines('{"a":1', partial=True)
        assert first == Batch(records=[], remainder='{"a":1')
        second = frame_lines('}\n{"b":2}\n', first.remainder, partial=True)
        assert second.records == [{"a": 1}, {"b": 2}]


class TestStreamingSplitInvariant:
    def test_every_two_way_split_matches_buffered(self):
        expected = frame_list_export(BODY).records
        for i in range(len(BODY) + 1):
            batches = stream_decode(frame_list_export, [BODY[:i], BODY[i:]])
            assert [r for b in batches for r in b] == expected, f"split at {i}"

    def test_three_way_splits_match_buffered(self):
        expected = frame_subscriber_activity(BODY).records
        for i in range(0, len(BODY) + 1, 7):
            for j in range(i, len(BODY) + 1, 5):
                chunks = [BODY[:i], BODY[i:j], BODY[j:]]
                batches = stream_decode(frame_subscriber_activity, chunks)
                assert [r for b in batches for r in b] == expected

    def test_single_character_chunks(self):
        batches = stream_decode(frame_list_export, list(BODY))
        assert [r for b in batches for r in b] == RECORDS

    def test_completed_record_leads_next_batch(self):
        cut = BODY.index("\n") + 5  # inside the second record
        batches = stream_decode(frame_list_export, [BODY[:cut], BODY[cut:]])
        assert batches[0] == [RECORDS[0]]
        assert batches[1][0] == RECORDS[1]

    def test_body_without_trailing_newline_flushed_at_end(self):
        body = BODY.rstrip("\n")
        batches = stream_decode(frame_list_export, [body])
        assert batches[0] == RECORDS[:-1]
        assert batches[1] == [RECORDS[-1]]


class TestServiceErrors:
    def test_error_record_raises(self):
        with pytest.raises(ExportServiceError) as exc_info:
            frame_lines('{"error":"X","code":123}')
        assert exc_info.value.message == "X"
        assert exc_info.value.code == 123

    def test_error_record_with_newline(self):
        with pytest.raises(ExportServiceError):
            frame_list_export('{"error":"Invalid Mailchimp List ID","code":200}\n')

    def test_error_detected_in_streaming_batch(self):
        with pytest.raises(ExportServiceError):
            frame_lines('{"error":"Invalid API Key","code":104}\n{"a', partial=True)

    def test_only_first_record_checked(self):
        records = frame_lines('{"a":1}\n{"error":"x","code":1}\n').records
        assert records[1] == {"error": "x", "code": 1}

    def test_missing_code(self):
        with pytest.raises(ExportServiceError) as exc_info:
            frame_lines('{"error":"boom"}')
        assert exc_info.value.code is None
        assert str(exc_info.value) == "boom"

    def test_str_includes_code(self):
        assert str(ExportServiceError("Invalid API Key", 104)) == "Invalid API Key (code 104)"

    def test_is_service_error(self):
        assert is_service_error({"error": "x", "code": 1})
        assert not is_service_error({"error": "", "code": 1})
        assert not is_service_error(["error", "code"])
        assert not is_service_error({"email": "a@example.com"})


class TestSubscriberActivity:
    def test_absent_body_is_empty_result(self):
        assert frame_subscriber_activity(None) == Batch()

    def test_empty_body_is_empty_result(self):
        assert frame_subscriber_activity("") == Batch()

    def test_empty_chunk_keeps_remainder(self):
        batch = frame_subscriber_activity("", '{"a":', partial=True)
        assert batch == Batch(records=[], remainder='{"a":')


class TestFrameDocument:
    def test_parses_whole_document(self):
        assert frame_document('[{"a": 1}, {"b": 2}]') == [{"a": 1}, {"b": 2}]

    def test_invalid_document(self):
        with pytest.raises(ExportParseError):
            frame_document('{"a":1}\n{"b":2}\n')

    def test_empty_document(self):
        with pytest.raises(ExportParseError):
            frame_document("")

    def test_service_error_document(self):
        with pytest.raises(ExportServiceError) as exc_info:
            frame_document('{"error": "nope", "code": -50}')
        assert exc_info.value.code == -50


class TestFlushRemainder:
    def test_blank_remainder(self):
        assert flush_remainder(frame_list_export, "  ") == Batch()

    def test_truncated_final_record(self):
        with pytest.raises(ExportParseError):
            flush_remainder(frame_list_export, '{"a":')
