"""Message codec: typed envelopes <-> JSON text frames."""

from __future__ import annotations

import json
from typing import Union

from pydantic import TypeAdapter, ValidationError

from ..types.envelope import InboundEnvelope, OutboundEnvelope
from ..types.base import WireModel
from .errors import DecodeError

_inbound_adapter: TypeAdapter = TypeAdapter(InboundEnvelope)
_outbound_adapter: TypeAdapter = TypeAdapter(OutboundEnvelope)

INBOUND_TYPES = ("AGENT_RESPONSE", "SYSTEM_MESSAGE", "TRANSACTION_TO_SIGN", "SWAP_QUOTE")
OUTBOUND_TYPES = ("CONNECTION_AUTH", "USER_MESSAGE", "TRANSACTION_RESULT")


def encode(envelope: WireModel) -> str:
    """Serialize an envelope to a JSON text frame."""
    return json.dumps(envelope.to_wire(), separators=(",", ":"))


def _load(frame: Union[str, bytes, bytearray], known_types: tuple) -> dict:
    if isinstance(frame, (bytes, bytearray)):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Frame is not valid UTF-8: {e}") from e

    try:
        data = json.loads(frame)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e.msg}", raw=frame[:200]) from e

    if not isinstance(data, dict):
        raise DecodeError("Envelope must be a JSON object", raw=frame[:200])

    envelope_type = data.get("type")
    if envelope_type is None:
        raise DecodeError("Envelope has no type", raw=frame[:200])
    if envelope_type not in known_types:
        raise DecodeError(f"Unknown envelope type: {envelope_type!r}", raw=frame[:200])
    return data


def _validate(adapter: TypeAdapter, data: dict, frame) -> WireModel:
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raw = frame[:200] if isinstance(frame, str) else None
        raise DecodeError(f"Malformed {data.get('type')} envelope ({errors})", raw=raw) from e


def decode(frame: Union[str, bytes, bytearray]) -> InboundEnvelope:
    """Parse an inbound frame into its typed envelope, or raise DecodeError."""
    data = _load(frame, INBOUND_TYPES)
    return _validate(_inbound_adapter, data, frame)


def decode_outbound(frame: Union[str, bytes, bytearray]) -> OutboundEnvelope:
    """Parse a frame this client produced (used for tooling and tests)."""
    data = _load(frame, OUTBOUND_TYPES)
    return _validate(_outbound_adapter, data, frame)
