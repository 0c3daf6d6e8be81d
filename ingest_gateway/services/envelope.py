# =============================================================================
# Ingest Gateway - Envelope Builder
# =============================================================================
"""
Builds job envelopes from validated request bodies.

Only JSON syntax is checked. Any JSON value is accepted (object, array,
string, number, literal) and the bytes are kept as received.

orjson is the fast path. It refuses some documents that are valid JSON
syntax (nesting deeper than 1024, numbers outside the float range, lone
surrogate escapes), so anything it rejects is re-checked by
``check_json_syntax``, which validates grammar only.
"""

import re
from datetime import datetime, timezone
from json.decoder import scanstring
from json.scanner import NUMBER_RE
from typing import Callable, List

import orjson

from ..errors import InvalidPayload
from ..models import JobEnvelope


MAX_NESTING_DEPTH = 10000

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_LITERALS = ("true", "false", "null")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_json_syntax(body: bytes) -> None:
    """
    Check that ``body`` is one RFC 8259 JSON text, without building values.

    Iterative, so nesting depth is bounded only by ``MAX_NESTING_DEPTH``.
    Numbers are checked against the grammar, not converted; string escapes
    are checked but lone surrogates are allowed. ``NaN`` and ``Infinity``
    are rejected.

    Raises:
        ValueError: With the position of the first syntax error
    """
    text = body.decode("utf-8")
    closers: List[str] = []
    pos = _skip(text, 0)
    expecting_value = True

    while True:
        if expecting_value:
            char = text[pos:pos + 1]
            if char in ("[", "{"):
                if len(closers) >= MAX_NESTING_DEPTH:
                    raise ValueError(f"nesting deeper than {MAX_NESTING_DEPTH} at char {pos}")
                closers.append("]" if char == "[" else "}")
                pos = _skip(text, pos + 1)
                if text.startswith(closers[-1], pos):
                    closers.pop()
                    pos += 1
                    expecting_value = False
                elif char == "{":
                    pos = _scan_key(text, pos)
                continue
            pos = _scan_scalar(text, pos)
            expecting_value = False
            continue

        pos = _skip(text, pos)
        if not closers:
            if pos != len(text):
                raise ValueError(f"extra data at char {pos}")
            return

        char = text[pos:pos + 1]
        if char == ",":
            pos = _skip(text, pos + 1)
            if closers[-1] == "}":
                pos = _scan_key(text, pos)
            expecting_value = True
        elif char == closers[-1]:
            closers.pop()
            pos += 1
        else:
            raise ValueError(f"expected ',' or '{closers[-1]}' at char {pos}")


def _skip(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _scan_key(text: str, pos: int) -> int:
    if text[pos:pos + 1] != '"':
        raise ValueError(f"expected object key at char {pos}")
    _, pos = scanstring(text, pos + 1, True)
    pos = _skip(text, pos)
    if text[pos:pos + 1] != ":":
        raise ValueError(f"expected ':' at char {pos}")
    return _skip(text, pos + 1)


def _scan_scalar(text: str, pos: int) -> int:
    char = text[pos:pos + 1]
    if char == '"':
        _, end = scanstring(text, pos + 1, True)
        return end
    if char and char in "-0123456789":
        match = NUMBER_RE.match(text, pos)
        if match is None:
            raise ValueError(f"invalid number at char {pos}")
        return match.end()
    for literal in _LITERALS:
        if text.startswith(literal, pos):
            return pos + len(literal)
    if not char:
        raise ValueError(f"unexpected end of data at char {pos}")
    raise ValueError(f"unexpected character at char {pos}")


class EnvelopeBuilder:
    """
    Validates raw bodies and wraps them in a JobEnvelope.

    Attributes:
        clock: Callable returning the current UTC time
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self.clock = clock

    def build(self, job_id: str, body: bytes) -> JobEnvelope:
        """
        Check ``body`` is a JSON document and build its envelope.

        Args:
            job_id: Server-generated job identifier
            body: Raw bytes returned by the payload guard

        Returns:
            JobEnvelope: Envelope holding the unmodified body

        Raises:
            InvalidPayload: The body is empty or not valid JSON
        """
        try:
            orjson.loads(body)
        except orjson.JSONDecodeError as e:
            try:
                check_json_syntax(body)
            except ValueError:
                raise InvalidPayload(str(e)) from e

        return JobEnvelope(job_id=job_id, payload=body, received_at=self.clock())
