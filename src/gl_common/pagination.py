"""Opaque cursor pagination over BIGSERIAL sequence columns."""

import base64
import binascii
import json


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT sequence value into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor back to the last seen id. Malformed cursors restart from the top."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None
