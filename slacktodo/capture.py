import logging

from fastapi import Request
from starlette.requests import ClientDisconnect

from slacktodo.errors import AbortedBody

logger = logging.getLogger(__name__)


async def read_body_stream(request: Request) -> bytes:
    """
    Drain the request stream into one buffer, byte for byte, in arrival order.

    Returns only once the end of the stream has been reached. Nothing is
    decoded or transcoded here.
    """
    chunks = []
    try:
        async for chunk in request.stream():
            if chunk:
                chunks.append(chunk)
    except ClientDisconnect as exc:
        raise AbortedBody("client disconnected before the body was complete") from exc
    return b"".join(chunks)


async def capture_raw_body(request: Request) -> bytes:
    # Cached per request so every dependency in the chain sees the same bytes
    raw_body = getattr(request.state, "raw_body", None)
    if raw_body is None:
        raw_body = await read_body_stream(request)
        request.state.raw_body = raw_body
        logger.debug("Captured %d body bytes for %s", len(raw_body), request.url.path)
    return raw_body
