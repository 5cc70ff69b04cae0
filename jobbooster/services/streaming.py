"""Server-Sent Events relay from the completion stream to the browser."""
import json
import logging
from typing import Callable, Iterable, Iterator, Optional

from flask import Response, stream_with_context

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_frame(payload):
    return f"data: {json.dumps(payload)}\n\n"


def relay(chunks: Iterable[str], on_complete: Optional[Callable[[str], None]] = None) -> Iterator[str]:
    """Forward each non-empty delta as one ``data: {"content": ...}`` frame.

    After the upstream is exhausted exactly one ``{"done": true}`` frame is
    sent. If iteration fails, a single ``{"error": ...}`` frame is sent in
    its place and the channel ends, so a missing ``done`` means failure.
    When the consumer stops early (client disconnect) the upstream iterator
    is closed.
    """
    parts = []
    try:
        for delta in chunks:
            if not delta:
                continue
            parts.append(delta)
            yield sse_frame({"content": delta})
    except GeneratorExit:
        logger.info("Client disconnected after %d chunk(s); closing upstream", len(parts))
        raise
    except Exception as e:
        logger.error("Stream interrupted after %d chunk(s): %s", len(parts), e)
        yield sse_frame({"error": "Stream interrupted"})
        return
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()

    if on_complete is not None:
        try:
            on_complete("".join(parts))
        except Exception as e:
            # persistence failures do not abort the stream
            logger.error("Failed to persist streamed content: %s", e)

    yield sse_frame({"done": True})


def sse_response(chunks: Iterable[str], on_complete: Optional[Callable[[str], None]] = None) -> Response:
    return Response(
        stream_with_context(relay(chunks, on_complete)),
        mimetype="text/event-stream",
        headers=SSE_HEADERS,
    )
