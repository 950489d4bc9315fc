"""
Packet Store - keeps assembled packets in memory for display and export.

Acts as the assembler's sink: completed packets, raw lines and parse
diagnostics are recorded here, and packets are grouped per node into
trackers. Nothing is written to disk; export is a separate service.
"""

import logging
import os
import threading
from collections import deque
from dataclasses import dataclass
from typing import Optional

from tracker.models.telemetry import TelemetryRecord, TrackerSummary
from tracker.utils.coordinates import bounding_box, path_length_m


logger = logging.getLogger(__name__)


HISTORY_LIMIT = int(os.getenv("TRACKER_HISTORY_LIMIT", "5000"))


@dataclass
class ParseDiagnostic:
    """A line the interpreter could not use."""

    line: str
    kind: str


class _Tracker:
    """Per-node counters and the most recent track points."""

    def __init__(self, history_limit: int):
        self.packet_count = 0
        self.lats: deque[float] = deque(maxlen=history_limit)
        self.lons: deque[float] = deque(maxlen=history_limit)
        self.latest: Optional[TelemetryRecord] = None


class PacketStore:
    """
    In-memory store of received packets.

    Safe to feed from the read-loop thread while the API reads from
    another thread.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        """
        Initialize the store.

        Args:
            history_limit: Maximum packets, raw lines, diagnostics and
                per-node track points kept
        """
        self._lock = threading.Lock()
        self._history_limit = history_limit
        self._packets: deque[TelemetryRecord] = deque(maxlen=history_limit)
        self._raw_lines: deque[str] = deque(maxlen=history_limit)
        self._diagnostics: deque[ParseDiagnostic] = deque(maxlen=history_limit)
        self._trackers: dict[str, _Tracker] = {}

    # Sink interface

    def on_packet(self, record: TelemetryRecord) -> None:
        with self._lock:
            self._packets.append(record)
            tracker = self._trackers.get(record.node_label)
            if tracker is None:
                tracker = self._trackers[record.node_label] = _Tracker(self._history_limit)
            tracker.packet_count += 1
            tracker.latest = record
            if record.has_position:
                tracker.lats.append(record.latitude)
                tracker.lons.append(record.longitude)
        logger.debug(f"Packet from {record.node_label}: fix={record.fix_status.value}")

    def on_raw_line(self, line: str) -> None:
        with self._lock:
            self._raw_lines.append(line)

    def on_parse_error(self, line: str, kind: str) -> None:
        with self._lock:
            self._diagnostics.append(ParseDiagnostic(line=line, kind=kind))

    # Queries

    @property
    def packet_count(self) -> int:
        with self._lock:
            return len(self._packets)

    def list_packets(self, limit: Optional[int] = None) -> list[TelemetryRecord]:
        """
        List stored packets, oldest first.

        Args:
            limit: Only return the most recent ``limit`` packets

        Returns:
            List of TelemetryRecord
        """
        with self._lock:
            return _tail(self._packets, limit)

    def list_raw_lines(self, limit: Optional[int] = None) -> list[str]:
        with self._lock:
            return _tail(self._raw_lines, limit)

    def list_diagnostics(self, limit: Optional[int] = None) -> list[ParseDiagnostic]:
        with self._lock:
            return _tail(self._diagnostics, limit)

    def list_trackers(self) -> list[TrackerSummary]:
        """
        Summarize each node seen so far.

        Returns:
            TrackerSummary list sorted by node label
        """
        with self._lock:
            items = [
                (node, t.packet_count, list(t.lats), list(t.lons), t.latest)
                for node, t in self._trackers.items()
            ]

        summaries = [
            TrackerSummary(
                node=node,
                packet_count=count,
                point_count=len(lats),
                path_length_m=path_length_m(lats, lons),
                bounding_box=bounding_box(lats, lons),
                latest=latest,
            )
            for node, count, lats, lons, latest in items
        ]
        summaries.sort(key=lambda s: s.node)
        return summaries

    def clear(self) -> None:
        """Drop all stored packets, lines and diagnostics."""
        with self._lock:
            self._packets.clear()
            self._raw_lines.clear()
            self._diagnostics.clear()
            self._trackers.clear()
        logger.info("Packet store cleared")


def _tail(items: deque, limit: Optional[int]) -> list:
    if limit is None or limit >= len(items):
        return list(items)
    if limit <= 0:
        return []
    return list(items)[-limit:]


# Global store instance (set up by app initialization)
_store: Optional[PacketStore] = None


def get_store() -> PacketStore:
    """Get the global packet store."""
    global _store
    if _store is None:
        _store = PacketStore()
    return _store


def init_store(history_limit: int = HISTORY_LIMIT) -> PacketStore:
    """Replace the global packet store with a fresh one."""
    global _store
    _store = PacketStore(history_limit)
    return _store
