"""
Incremental framing of a streamed sequence of JSON objects.

The generation endpoint streams adjacent JSON objects (wrapped in an array,
separated by commas and newlines) with no framing beyond balanced braces.
``StreamDecoder`` scans characters as they arrive, tracking brace depth and
string/escape state, and emits each complete top-level object as soon as its
closing brace is seen, regardless of how the text was split across reads.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Iterator, Optional

from core.errors import DecodeError, TruncatedStreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtocolUnit:
    """One complete top-level object extracted from the stream."""

    raw: str
    data: Optional[dict[str, Any]] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StreamDecoder:
    """Extracts complete JSON objects from an unframed text stream.

    Scanner registers survive between ``feed`` calls, so scanning resumes
    exactly where the previous fragment ended. Text between objects at depth
    zero (array brackets, commas, whitespace) is discarded.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._pos = 0
        self.brace_depth = 0
        self.in_string = False
        self.escape_pending = False
        self.unit_start = 0
        self.units_emitted = 0

    @property
    def pending(self) -> str:
        """Text of the unit or top-level string still open, if any."""
        if self.brace_depth == 0 and not self.in_string:
            return ""
        return self._buffer[self.unit_start:]

    def feed(self, fragment: str) -> Iterator[ProtocolUnit]:
        """Append a fragment and return an iterator over newly completed units.

        The fragment is buffered immediately; units are produced lazily as the
        returned iterator is consumed.
        """
        if fragment:
            self._buffer += fragment
        return self._scan()

    def decode(self, fragments: Iterable[str]) -> Iterator[ProtocolUnit]:
        """Decode a whole sequence of fragments, then check for truncation."""
        for fragment in fragments:
            yield from self.feed(fragment)
        self.finish()

    async def adecode(self, fragments: AsyncIterable[str]) -> AsyncIterator[ProtocolUnit]:
        """Async counterpart of ``decode``."""
        async for fragment in fragments:
            for unit in self.feed(fragment):
                yield unit
        self.finish()

    def finish(self) -> None:
        """Signal end of stream.

        Raises:
            TruncatedStreamError: if a unit, or a string outside any unit, was
                opened but never closed.
                Units already emitted are unaffected.
        """
        pending = self.pending
        if pending:
            raise TruncatedStreamError(pending)

    def _scan(self) -> Iterator[ProtocolUnit]:
        while self._pos < len(self._buffer):
            index = self._pos
            char = self._buffer[index]
            self._pos += 1

            if self.in_string:
                if self.escape_pending:
                    self.escape_pending = False
                elif char == "\\":
                    self.escape_pending = True
                elif char == '"':
                    self.in_string = False
                continue

            if char == '"':
                if self.brace_depth == 0:
                    logger.debug("String opened outside any object at offset %s", index)
                    self.unit_start = index
                self.in_string = True
            elif char == "{":
                if self.brace_depth == 0:
                    self.unit_start = index
                self.brace_depth += 1
            elif char == "}":
                if self.brace_depth == 0:
                    logger.debug("Ignoring stray closing brace at offset %s", index)
                    continue
                self.brace_depth -= 1
                if self.brace_depth == 0:
                    raw = self._buffer[self.unit_start:index + 1]
                    self._buffer = self._buffer[index + 1:]
                    self._pos = 0
                    self.unit_start = 0
                    self.units_emitted += 1
                    yield self._parse(raw)

        if self.brace_depth == 0 and not self.in_string:
            # Nothing pending: drop separators already scanned.
            self._buffer = self._buffer[self._pos:]
            self._pos = 0
        elif self.unit_start:
            # Drop separators preceding the open unit or string.
            self._buffer = self._buffer[self.unit_start:]
            self._pos -= self.unit_start
            self.unit_start = 0

    @staticmethod
    def _parse(raw: str) -> ProtocolUnit:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            return ProtocolUnit(raw=raw, error=DecodeError(f"Invalid JSON unit: {exc}", raw))
        if not isinstance(data, dict):
            return ProtocolUnit(raw=raw, error=DecodeError("Unit is not an object", raw))
        return ProtocolUnit(raw=raw, data=data)
