"""JSON codec for installer bridge envelopes."""

from __future__ import annotations

import json
from typing import Any, Mapping

from .messages import DATA_KEY, NONCE_KEY, OP_KEY, Envelope

_ABSENT = object()


class DecodeError(ValueError):
    """Raised when an inbound frame is not a well-formed envelope."""


class EncodeError(ValueError):
    """Raised when an outbound envelope cannot be serialised."""


def _field(data: Mapping[str, Any], key: str) -> Any:
    # Keys match case-insensitively; the last matching key in the frame wins.
    value: Any = _ABSENT
    for name, item in data.items():
        if isinstance(name, str) and name.casefold() == key:
            value = item
    return value


def _string_field(data: Mapping[str, Any], key: str) -> str:
    value = _field(data, key)
    if value is _ABSENT or value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"Envelope '{key}' must be a string")
    return value


class EnvelopeParser:
    """Parse JSON text/mapping payloads into :class:`Envelope` objects.

    Missing ``nonce``/``op`` keys decode to empty strings and a missing
    ``data`` key decodes to None; deciding whether those are acceptable is
    left to the session.  Key names are matched without regard to case
    (``"Nonce"`` fills ``nonce``) and unknown keys are ignored.  A bare JSON
    ``null`` frame decodes like ``{}``.
    """

    def parse(self, data: Any) -> Envelope:
        if not isinstance(data, Mapping):
            raise DecodeError("Decoded envelope must be a JSON object")
        payload = _field(data, DATA_KEY)
        return Envelope(
            nonce=_string_field(data, NONCE_KEY),
            op=_string_field(data, OP_KEY),
            data=None if payload is _ABSENT else payload,
        )

    def parse_json(self, raw: str | bytes | bytearray) -> Envelope:
        try:
            mapping = json.loads(raw)
        except (ValueError, TypeError, RecursionError) as exc:
            raise DecodeError(str(exc) or "invalid JSON") from exc
        if mapping is None:
            mapping = {}
        return self.parse(mapping)


def decode_envelope(raw: str | bytes | bytearray) -> Envelope:
    """Decode one frame, raising :class:`DecodeError` on any violation."""

    return EnvelopeParser().parse_json(raw)


def encode_envelope(envelope: Envelope) -> str:
    """Serialise ``envelope`` to compact JSON text."""

    try:
        return json.dumps(envelope.to_dict(), separators=(",", ":"))
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodeError(str(exc) or "envelope not serialisable") from exc


__all__ = [
    "DecodeError",
    "EncodeError",
    "EnvelopeParser",
    "decode_envelope",
    "encode_envelope",
]
