"""
Opaque pagination cursors.
A cursor encodes the (created_at, id) keyset position of the last row on a page.
Callers must treat the token as opaque; only this module knows its layout.
"""
import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import InvalidCursorError


@dataclass(frozen=True)
class Cursor:
    created_at: datetime
    id: int


def encode_cursor(created_at: datetime, row_id: int) -> str:
    """Encode a keyset position as a URL-safe token"""
    raw = json.dumps(
        {"createdAt": created_at.isoformat(), "id": str(row_id)},
        separators=(",", ":"),
        sort_keys=True,
    ).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_cursor(token: str) -> Cursor:
    """Decode a token produced by encode_cursor, raising InvalidCursorError on junk"""
    if not isinstance(token, str) or not token.strip():
        raise InvalidCursorError("Cursor is empty")

    padded = token.strip() + "=" * (-len(token.strip()) % 4)
    try:
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeError, binascii.Error, ValueError) as e:
        raise InvalidCursorError("Cursor is not a valid token") from e

    if not isinstance(data, dict):
        raise InvalidCursorError("Cursor has an unexpected structure")
    created_at, row_id = data.get("createdAt"), data.get("id")
    if not isinstance(created_at, str) or not isinstance(row_id, str):
        raise InvalidCursorError("Cursor has an unexpected structure")

    try:
        return Cursor(created_at=datetime.fromisoformat(created_at), id=int(row_id))
    except ValueError as e:
        raise InvalidCursorError("Cursor position could not be parsed") from e


def parse_cursor(token: Optional[str]) -> Optional[Cursor]:
    """Empty or missing cursors mean 'start from the first page'"""
    if token is None or token == "":
        return None
    return decode_cursor(token)
