"""
Capture of raw conversation streams for troubleshooting.

When STREAM_TRACE_ENABLED is set, every conversation request gets its own
trace file under STREAM_TRACE_DIR. Each line of the file is one JSON
record: the status note, every raw chunk received from the backend and a
closing summary. Traces stop growing once STREAM_TRACE_MAX_BYTES is reached.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Optional

TRUNCATED_RECORD = '{"kind": "truncated"}\n'


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class StreamTracer:
    """Writes one conversation stream to a JSON-lines file"""

    def __init__(self, request_id: str, route: str, base_dir: str, max_bytes: Optional[int]):
        self.request_id = request_id
        self.route = route.strip("/").replace("/", "-").replace(" ", "-") or "stream"

        directory = Path(base_dir)
        directory.mkdir(parents=True, exist_ok=True)
        stamp = _utcnow().strftime("%Y%m%dT%H%M%SZ")
        self.path = directory / f"{stamp}_{self.route}_{request_id}.log"
        self._file = self.path.open("w", encoding="utf-8")

        # Non-positive budgets mean unlimited
        self.budget = max_bytes if isinstance(max_bytes, int) and max_bytes > 0 else None
        self.bytes_written = 0
        self.chunks = 0
        self.truncated = False

        self.log_note("stream tracer initialized")

    @property
    def closed(self) -> bool:
        return self._file.closed

    def log_source_chunk(self, chunk: str) -> None:
        """Record a raw chunk of the conversation stream"""
        self.chunks += 1
        self._record("chunk", chunk, seq=self.chunks)

    def log_note(self, note: str) -> None:
        self._record("note", note)

    def log_error(self, message: str) -> None:
        self._record("error", message)

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._record("note", f"stream tracer closed after {self.chunks} chunks")
        finally:
            self._file.close()

    def _record(self, kind: str, data: str, **extra) -> None:
        if self.closed or self.truncated:
            return

        record = {"ts": _utcnow().isoformat(timespec="milliseconds"), "kind": kind}
        record.update(extra)
        record["data"] = data if isinstance(data, str) else repr(data)
        line = json.dumps(record, ensure_ascii=False) + "\n"
        size = len(line.encode("utf-8"))

        if self.budget is not None and self.bytes_written + size > self.budget:
            # Whole records only, so every line stays valid JSON
            self._file.write(TRUNCATED_RECORD)
            self._file.flush()
            self.truncated = True
            return

        self._file.write(line)
        self._file.flush()
        self.bytes_written += size


def maybe_create_stream_tracer(
    enabled: bool,
    request_id: str,
    route: str,
    base_dir: str,
    max_bytes: Optional[int],
) -> Optional[StreamTracer]:
    """Return a tracer when tracing is enabled, else None"""
    if not enabled:
        return None
    return StreamTracer(request_id=request_id, route=route, base_dir=base_dir, max_bytes=max_bytes)
