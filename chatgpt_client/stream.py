"""
Parser for the conversation event stream.

The backend streams the whole reply again in every frame, so only the last
data frame before the terminator matters.
"""
from typing import AsyncIterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from stream_debug import StreamTracer

DATA_PREFIX = "data: "
DONE_PAYLOAD = "[DONE]"


class ConversationStreamParser:
    """Incremental parser for text/event-stream conversation payloads."""

    def __init__(self) -> None:
        self._buffer = ""
        self.final_frame: Optional[str] = None
        self.frame_count = 0
        self.done = False

    def feed(self, chunk: str) -> List[str]:
        """Consume raw chunk text and return the data payloads it completed."""
        payloads: List[str] = []
        if not chunk or self.done:
            return payloads

        self._buffer += chunk

        while not self.done:
            newline_idx = self._buffer.find("\n")
            if newline_idx == -1:
                break

            line = self._buffer[:newline_idx]
            self._buffer = self._buffer[newline_idx + 1:]

            payload = self.feed_line(line)
            if payload is not None:
                payloads.append(payload)

        return payloads

    def feed_line(self, line: str) -> Optional[str]:
        """Consume one line; return its payload if it was a data frame."""
        if self.done:
            return None

        # Trim CR from Windows-style endings
        if line.endswith("\r"):
            line = line[:-1]

        if not line or not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):]
        if payload == DONE_PAYLOAD:
            self.done = True
            return None

        self.final_frame = payload
        self.frame_count += 1
        return payload

    def flush(self) -> Optional[str]:
        """Process a trailing line without newline (used at stream end)."""
        remaining, self._buffer = self._buffer, ""
        if remaining:
            return self.feed_line(remaining)
        return None


async def read_final_frame(
    chunks: AsyncIterable[str],
    tracer: Optional["StreamTracer"] = None,
) -> Optional[str]:
    """Read a conversation stream and return its last data payload.

    Reading stops at the [DONE] terminator.

    Args:
        chunks: Text chunks of the response body
        tracer: Optional stream tracer for debugging

    Returns:
        The final frame payload, or None if the stream carried no frame
    """
    parser = ConversationStreamParser()
    async for chunk in chunks:
        if tracer:
            tracer.log_source_chunk(chunk)
        parser.feed(chunk)
        if parser.done:
            break
    else:
        parser.flush()

    if tracer:
        tracer.log_note(f"stream finished: frames={parser.frame_count} done={parser.done}")
    return parser.final_frame
