# =============================================================================
# Ingest Gateway - Envelope Tests
# =============================================================================
"""Unit tests for the envelope builder and the JobEnvelope model."""

import uuid
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from ingest_gateway.errors import InvalidPayload
from ingest_gateway.models import JobEnvelope, generate_job_id
from ingest_gateway.services import EnvelopeBuilder
from ingest_gateway.services.envelope import MAX_NESTING_DEPTH, check_json_syntax


FIXED_TIME = datetime(2026, 1, 31, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def builder():
    return EnvelopeBuilder(clock=lambda: FIXED_TIME)


class TestEnvelopeBuilder:
    """Tests for EnvelopeBuilder.build."""

    def test_builds_envelope_with_raw_payload(self, builder):
        body = b'{"test": "data"}'

        envelope = builder.build("job-1", body)

        assert envelope.job_id == "job-1"
        assert envelope.payload == body
        assert envelope.received_at == FIXED_TIME

    def test_invalid_json_raises(self, builder):
        with pytest.raises(InvalidPayload) as exc_info:
            builder.build("job-1", b'{"test": ')

        assert exc_info.value.detail
        assert exc_info.value.status_code == 400

    def test_empty_body_is_invalid(self, builder):
        with pytest.raises(InvalidPayload):
            builder.build("job-1", b"")

    def test_default_clock_is_utc(self):
        envelope = EnvelopeBuilder().build("job-1", b"{}")

        assert envelope.received_at.tzinfo is not None
        assert envelope.received_at.utcoffset().total_seconds() == 0

    @pytest.mark.parametrize(
        "body",
        [b"[" * 1100 + b"]" * 1100, b"1e400", b"-1E+400", b'"\\ud800"', b'{"k": "\\udc00"}'],
    )
    def test_valid_json_rejected_by_orjson_is_accepted(self, builder, body):
        envelope = builder.build("job-1", body)

        assert envelope.payload == body

    def test_nesting_past_the_cap_is_invalid(self, builder):
        depth = MAX_NESTING_DEPTH + 1

        with pytest.raises(InvalidPayload):
            builder.build("job-1", b"[" * depth + b"]" * depth)


class TestCheckJsonSyntax:
    """Tests for the grammar-only JSON check."""

    @pytest.mark.parametrize(
        "body",
        [
            b"{}",
            b"[]",
            b' { "a" : [ 1 , -2.5e3 , true , false , null , "x" ] , "b" : { } } ',
            b'"\\u00e9\\n"',
            b"0",
            b"[" * MAX_NESTING_DEPTH + b"]" * MAX_NESTING_DEPTH,
            '"café"'.encode("utf-8"),
        ],
    )
    def test_accepts_valid_json(self, body):
        check_json_syntax(body)

    @pytest.mark.parametrize(
        "body",
        [
            b"",
            b"   ",
            b"NaN",
            b"Infinity",
            b"[1,]",
            b'{"a":1,}',
            b'{"a" 1}',
            b"{1:2}",
            b"01",
            b"-",
            b"1.",
            b"[",
            b"[1 2]",
            b'"unterminated',
            b'"bad \\x escape"',
            b"{} {}",
            b"tru",
            b"\xff",
        ],
    )
    def test_rejects_invalid_json(self, body):
        with pytest.raises(ValueError):
            check_json_syntax(body)

    def test_depth_error_names_the_cap(self):
        depth = MAX_NESTING_DEPTH + 1

        with pytest.raises(ValueError, match=str(MAX_NESTING_DEPTH)):
            check_json_syntax(b"{\"a\":" * depth + b"1" + b"}" * depth)


class TestJobEnvelope:
    """Tests for the JobEnvelope model."""

    def test_wire_format(self):
        envelope = JobEnvelope(job_id="job-1", payload=b'{"a":1}', received_at=FIXED_TIME)

        assert envelope.to_message_bytes() == (
            b'{"job_id":"job-1","payload":{"a":1},"received_at":"2026-01-31T10:00:00Z"}'
        )

    def test_envelope_is_immutable(self):
        envelope = JobEnvelope(job_id="job-1", payload=b"{}", received_at=FIXED_TIME)

        with pytest.raises(ValidationError):
            envelope.job_id = "job-2"

    def test_generated_job_ids_are_unique_uuids(self):
        ids = {generate_job_id() for _ in range(100)}

        assert len(ids) == 100
        for job_id in ids:
            uuid.UUID(job_id)
