"""Read the exact request body bytes before anything parses them."""

from __future__ import annotations

from werkzeug.exceptions import ClientDisconnected
from werkzeug.wrappers import Request

from .errors import BodyReadError, PayloadTooLargeError

RAW_BODY_ENVIRON_KEY = "neynar_webhook.raw_body"
CHUNK_SIZE = 64 * 1024


def read_raw_body(request: Request, *, limit: int) -> bytes:
    """Return the untouched body of *request*, reading at most ``limit + 1`` bytes.

    The first successful read is stored in the WSGI environ so repeated calls
    return the same bytes instead of touching an exhausted stream.
    """

    cached = request.environ.get(RAW_BODY_ENVIRON_KEY)
    if cached is not None:
        return cached

    declared = request.content_length
    if declared is not None and declared > limit:
        raise PayloadTooLargeError(f"declared length {declared} exceeds {limit} bytes")

    chunks: list[bytes] = []
    total = 0
    try:
        stream = request.stream
        while True:
            chunk = stream.read(min(CHUNK_SIZE, limit + 1 - total))
            if not chunk:
                break
            total += len(chunk)
            if total > limit:
                raise PayloadTooLargeError(f"body exceeds {limit} bytes")
            chunks.append(chunk)
    except (OSError, ClientDisconnected) as exc:
        raise BodyReadError("failed to read request body") from exc

    body = b"".join(chunks)
    request.environ[RAW_BODY_ENVIRON_KEY] = body
    return body
