"""
Line interpreter for the tracker's text telemetry dialect.

Each radio transmission arrives as several lines:

    Node 3: (20 bytes | -72 dBm | 9 dB):
    Latitude: 37.1234
    Longitude: -122.5678
    Satellites count: 8
    Fix status: FIX

Licensed operation replaces the node header with ``KD2YIE-1: (...)``, and
a receiver without a position prints ``No fix acquired`` instead of the
field lines. Unrelated diagnostic output may be interleaved anywhere.

Every rule is an independent pattern evaluated against every line; only
the two header dialects are mutually exclusive.
"""

import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tracker.models.telemetry import FixStatus, TelemetryRecord, fix_status_from_token


logger = logging.getLogger(__name__)

Clock = Callable[[], int]


# (<bytes> bytes | <rssi> dBm | <snr> dB)
_SIGNAL_TRIPLE = (
    r"\(\s*(?P<bytes>\d+)\s*bytes?\s*"
    r"\|\s*(?P<rssi>[-+]?[\d.]+)\s*dbm\s*"
    r"\|\s*(?P<snr>[-+]?[\d.]+)\s*db\s*\)"
)

# Unlicensed header: "Node 3: (20 bytes | -72 dBm | 9 dB):"
RE_HEADER_NODE = re.compile(
    r"\bnode\s*(?:id)?\s*[:=#-]?\s*(?P<node>\d+)\s*:?\s*" + _SIGNAL_TRIPLE,
    re.IGNORECASE,
)
# Licensed header: "KD2YIE-1: (13 bytes | -80 dBm | 7 dB):"
RE_HEADER_CALLSIGN = re.compile(
    r"\b(?P<callsign>[A-Z0-9]{3,7})-(?P<node>\d+)\s*:?\s*" + _SIGNAL_TRIPLE,
    re.IGNORECASE,
)

RE_LATITUDE = re.compile(r"\blat(?:itude)?\s*[:=]?\s*(?P<value>[-+]?\d+(?:\.\d+)?)", re.IGNORECASE)
RE_LONGITUDE = re.compile(r"\blon(?:g(?:itude)?)?\s*[:=]?\s*(?P<value>[-+]?\d+(?:\.\d+)?)", re.IGNORECASE)
RE_SATELLITES = re.compile(
    r"\bsat(?:ellite)?s?(?:\s*(?:count|in\s*view|used))?\s*[:=]?\s*(?P<value>\d+)",
    re.IGNORECASE,
)
RE_CALLSIGN = re.compile(r"\bcall\s*sign\s*[:=]?\s*(?P<value>[A-Z0-9]{3,7})\b", re.IGNORECASE)
RE_FIX_LABEL = re.compile(r"\bfix\s*status", re.IGNORECASE)
RE_FIX_STATUS = re.compile(r"\bfix\s*status\s*[:=]?\s*(?P<value>[A-Z_]+)", re.IGNORECASE)
RE_NO_FIX = re.compile(r"\bno\s*fix", re.IGNORECASE)

# Numeric ranges of the device's field types
NODE_ID_RANGE = (0, 255)
SATELLITE_RANGE = (0, 255)
SIGNAL_STRENGTH_RANGE = (-32768, 32767)
SIGNAL_QUALITY_RANGE = (-128, 127)


class LineParseError(ValueError):
    """A line could not be interpreted."""

    kind = "parse_error"

    def __init__(self, line: str, message: str):
        super().__init__(message)
        self.line = line


class NoMatchError(LineParseError):
    """The line carried no recognized field and no status."""

    kind = "no_match"


@dataclass(frozen=True)
class LineClassification:
    """Structural role of a line in the packet stream."""

    packet_start: bool
    packet_end: bool

    @property
    def is_plain(self) -> bool:
        return not (self.packet_start or self.packet_end)


def now_ms() -> int:
    """Wall clock in milliseconds since the epoch."""
    return int(time.time() * 1000)


def is_packet_start(line: str) -> bool:
    return bool(RE_HEADER_NODE.search(line) or RE_HEADER_CALLSIGN.search(line))


def is_packet_end(line: str) -> bool:
    return bool(RE_FIX_LABEL.search(line) or RE_NO_FIX.search(line))


def classify_line(line: str) -> LineClassification:
    """Classify a line by shape alone, regardless of what it extracts to."""
    return LineClassification(
        packet_start=is_packet_start(line),
        packet_end=is_packet_end(line),
    )


def _coerce_int(text: str, bounds: tuple[int, int]) -> Optional[int]:
    try:
        value = int(text)
    except ValueError:
        logger.debug(f"Not an integer: {text!r}")
        return None
    lo, hi = bounds
    if value < lo or value > hi:
        logger.debug(f"Integer out of range {bounds}: {value}")
        return None
    return value


def _coerce_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        logger.debug(f"Not a number: {text!r}")
        return None
    if not math.isfinite(value):
        return None
    return value


def _apply_header(record: TelemetryRecord, match: re.Match) -> None:
    record.node_id = _coerce_int(match.group("node"), NODE_ID_RANGE)
    record.receiver_signal_strength = _coerce_int(match.group("rssi"), SIGNAL_STRENGTH_RANGE)
    record.receiver_signal_quality = _coerce_int(match.group("snr"), SIGNAL_QUALITY_RANGE)


def extract_fields(line: str, clock: Optional[Clock] = None) -> TelemetryRecord:
    """
    Extract every recognized field from a single line.

    Args:
        line: One device line, terminator already stripped
        clock: Millisecond clock used for ``captured_at`` (defaults to now_ms)

    Returns:
        Partial TelemetryRecord carrying only the fields found on this line

    Raises:
        NoMatchError: if no field was recognized and no status was found
    """
    record = TelemetryRecord(
        captured_at=(clock or now_ms)(),
        source_lines=[line],
    )

    # Header dialects: node header wins, callsign header only as fallback
    header = RE_HEADER_NODE.search(line)
    if header:
        _apply_header(record, header)
    else:
        header = RE_HEADER_CALLSIGN.search(line)
        if header:
            _apply_header(record, header)
            record.callsign = header.group("callsign").upper()

    match = RE_LATITUDE.search(line)
    if match:
        record.latitude = _coerce_float(match.group("value"))

    match = RE_LONGITUDE.search(line)
    if match:
        record.longitude = _coerce_float(match.group("value"))

    match = RE_SATELLITES.search(line)
    if match:
        record.satellite_count = _coerce_int(match.group("value"), SATELLITE_RANGE)

    match = RE_CALLSIGN.search(line)
    if match and record.callsign is None:
        record.callsign = match.group("value").upper()

    match = RE_FIX_STATUS.search(line)
    if match:
        record.fix_status = fix_status_from_token(match.group("value"))
    elif RE_NO_FIX.search(line):
        record.fix_status = FixStatus.NO_FIX

    if not record.has_fields():
        raise NoMatchError(line, "no recognized fields")

    return record
