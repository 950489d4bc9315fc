"""
Packet assembler.

Folds a stream of device lines into complete TelemetryRecords. Header lines
open a packet, fix-status lines close it, and everything in between is
merged into the packet in progress. Whatever is still open when the stream
ends (or a stop is requested) is flushed, so no accumulated field is lost.
"""

import logging
import threading
from typing import Iterable, Optional, Protocol

from tracker.models.telemetry import TelemetryRecord
from tracker.services.interpreter import Clock, LineParseError, classify_line, extract_fields


logger = logging.getLogger(__name__)


class PacketSink(Protocol):
    """Downstream consumer of assembler output."""

    def on_packet(self, record: TelemetryRecord) -> None:
        ...

    def on_raw_line(self, line: str) -> None:
        ...

    def on_parse_error(self, line: str, kind: str) -> None:
        ...


class PacketAssembler:
    """
    Stateful line-to-packet assembler.

    Holds at most one record in progress. The record is private; callers
    interact only through feed_line(), flush() and run().
    """

    def __init__(self, sink: Optional[PacketSink] = None, clock: Optional[Clock] = None):
        self._sink = sink
        self._clock = clock
        self._current: Optional[TelemetryRecord] = None

    @property
    def has_pending(self) -> bool:
        return self._current is not None

    def feed_line(self, line: str) -> list[TelemetryRecord]:
        """
        Consume one line.

        Returns:
            Records completed while consuming this line, in emission order
        """
        emitted: list[TelemetryRecord] = []
        self._notify("on_raw_line", line)

        classification = classify_line(line)

        if classification.packet_start and self._current is not None:
            emitted.append(self._emit())

        try:
            partial = extract_fields(line, self._clock)
        except LineParseError as e:
            logger.debug(f"Unparsed line ({e.kind}): {line!r}")
            self._notify("on_parse_error", line, e.kind)
        else:
            if self._current is None:
                self._current = partial
            else:
                self._current.merge(partial)

        if classification.packet_end and self._current is not None:
            emitted.append(self._emit())

        return emitted

    def flush(self) -> Optional[TelemetryRecord]:
        """Emit the record in progress, if any."""
        if self._current is None:
            return None
        return self._emit()

    def run(self, lines: Iterable[str], stop_event: Optional[threading.Event] = None) -> int:
        """
        Drive the assembler from a line iterable until it ends or stop is set.

        The stop flag is checked between reads. The final flush always runs.

        Returns:
            Number of records emitted
        """
        count = 0
        line_iter = iter(lines)
        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    logger.info("Stop requested, ending read loop")
                    break
                try:
                    line = next(line_iter)
                except StopIteration:
                    logger.info("Line stream closed")
                    break
                count += len(self.feed_line(line))
        finally:
            if self.flush() is not None:
                count += 1
        return count

    def _emit(self) -> TelemetryRecord:
        record = self._current
        self._current = None
        self._notify("on_packet", record)
        return record

    def _notify(self, method: str, *args) -> None:
        # Sink delivery is best-effort: a failing sink must not stall the loop
        if self._sink is None:
            return
        try:
            getattr(self._sink, method)(*args)
        except Exception:
            logger.exception(f"Sink {method} failed")
