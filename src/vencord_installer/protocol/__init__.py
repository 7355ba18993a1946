"""Protocol definitions for the installer bridge."""

from __future__ import annotations

from .envelopes import build_error, build_reply
from .messages import (
    DATA_KEY,
    MESSAGE_KEY,
    NONCE_KEY,
    OP_KEY,
    PATH_OPERATIONS,
    Envelope,
    InstallRecord,
    Operation,
    Outcome,
)
from .parser import (
    DecodeError,
    EncodeError,
    EnvelopeParser,
    decode_envelope,
    encode_envelope,
)

__all__ = [name for name in globals().keys() if not name.startswith("_")]
