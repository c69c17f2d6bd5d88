"""
JSON encoder/decoder for the signaling wire format.

Every structured message is a single JSON object sent as a text frame.
Output is compact (no whitespace between tokens) to match what browser
clients produce with JSON.stringify.
"""

import json
from typing import Any


class DecodeError(Exception):
    """Error raised when an inbound text frame is not a JSON object."""


# Relayed payloads (SDP offers, ICE candidates) stay well under this.
MAX_PAYLOAD_LEN = 64 * 1024


def encode(data: dict[str, Any]) -> str:
    """
    Encode a dict to compact JSON text.
    """
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def decode(text: str) -> dict[str, Any]:
    """
    Decode JSON text to a dict.

    Raises DecodeError if the text is too large, is not valid JSON, or is not an object.
    """
    if len(text) > MAX_PAYLOAD_LEN:
        raise DecodeError(f"payload too large: {len(text)} characters (max {MAX_PAYLOAD_LEN})")
    try:
        result = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeError(f"failed to decode JSON data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected object, got {type(result).__name__}")

    return result
