"""Session blob encoding.

The blob is base64 over the session's JSON. It keeps tokens from being
readable at a glance in the storage file; it is not encryption.
"""

from __future__ import annotations

import base64
import binascii

import orjson
from pydantic import ValidationError

from vitrine.errors import SessionDecodeError
from vitrine.session.models import Session


def encode_session(session: Session) -> str:
    """Encode a session into an opaque ASCII blob."""
    payload = orjson.dumps(session.model_dump(mode="json"))
    return base64.b64encode(payload).decode("ascii")


def decode_session(blob: str) -> Session:
    """Decode a blob produced by ``encode_session``.

    Raises:
        SessionDecodeError: If the blob is not base64, not JSON, or not
            shaped like a session (missing access token or user id)
    """
    try:
        payload = base64.b64decode(blob.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise SessionDecodeError(f"Session blob is not valid base64: {e}") from e

    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise SessionDecodeError(f"Session blob is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise SessionDecodeError("Session blob does not contain an object")

    try:
        return Session.model_validate(data)
    except ValidationError as e:
        raise SessionDecodeError(f"Session blob is not a valid session: {e}") from e
