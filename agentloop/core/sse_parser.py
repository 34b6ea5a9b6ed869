"""SSE Parser: splits an incrementally delivered text stream into event records.

Invariants:
    - Feeding the same text split at any chunk boundaries yields the same records
    - No record is emitted before its terminating blank line
    - Multiple data: lines join with "\\n"; one leading space after ":" is stripped
    - Lines starting with ":" are comments; unknown fields are ignored
    - \\n, \\r\\n and \\r all terminate a line; a trailing \\r is held until the
      next chunk tells whether it is half of a \\r\\n

Design Decisions:
    - One parser per turn: no cross-turn state for the loop to manage
"""

import re
from dataclasses import dataclass

_LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class SSEEvent:
    """One blank-line-terminated record."""
    event: str | None
    data: str


class SSEParser:
    """Incremental parser for `field: value` records delimited by blank lines."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._buffer = ""
        self._event: str | None = None
        self._data: list[str] = []
        self._has_fields = False

    def feed(self, chunk: str) -> list[SSEEvent]:
        """Consume a chunk; return the records it completed, in order."""
        self._buffer += chunk
        records: list[SSEEvent] = []
        pos = 0
        while True:
            match = _LINE_END.search(self._buffer, pos)
            if match is None:
                break
            if match.group() == "\r" and match.end() == len(self._buffer):
                break  # may be the first half of a split \r\n
            record = self._process_line(self._buffer[pos:match.start()])
            if record is not None:
                records.append(record)
            pos = match.end()
        self._buffer = self._buffer[pos:]
        return records

    def _process_line(self, line: str) -> SSEEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None
        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
            self._has_fields = True
        elif name == "data":
            self._data.append(value)
            self._has_fields = True
        return None

    def _dispatch(self) -> SSEEvent | None:
        if not self._has_fields:
            return None
        record = SSEEvent(event=self._event, data="\n".join(self._data))
        self._event = None
        self._data = []
        self._has_fields = False
        return record
