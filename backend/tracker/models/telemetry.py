"""
Telemetry record model.

A record is the logical packet reconstructed from several device text lines:
a header line (node / signal quality), optional field lines and a
terminating fix-status line. Every field is optional; ``None`` means the
field has not been seen yet.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class FixStatus(Enum):
    """GNSS fix status reported by the device."""

    NO_FIX = "NOFIX"
    FIX = "FIX"
    DIFFERENTIAL = "DIFF"
    ESTIMATED = "EST"
    UNKNOWN = "UNKNOWN"


def fix_status_from_token(token: Optional[str]) -> FixStatus:
    """
    Map a free-text status token onto FixStatus.

    Checks are substring checks in priority order, so "NOFIX" and "NO_FIX"
    both land on NO_FIX before the plain "FIX" check is reached.
    """
    if not token:
        return FixStatus.UNKNOWN
    upper = token.upper()
    if "NO" in upper:
        return FixStatus.NO_FIX
    if "DIFF" in upper:
        return FixStatus.DIFFERENTIAL
    if "EST" in upper:
        return FixStatus.ESTIMATED
    if "FIX" in upper:
        return FixStatus.FIX
    return FixStatus.UNKNOWN


# Fields that follow plain "present overwrites, absent keeps" merging
OPTIONAL_FIELDS = (
    "node_id",
    "callsign",
    "latitude",
    "longitude",
    "satellite_count",
    "receiver_signal_strength",
    "receiver_signal_quality",
)


@dataclass
class TelemetryRecord:
    """A (possibly partial) telemetry packet."""

    node_id: Optional[int] = None
    callsign: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    satellite_count: Optional[int] = None
    receiver_signal_strength: Optional[int] = None  # dBm
    receiver_signal_quality: Optional[int] = None   # SNR, dB
    fix_status: FixStatus = FixStatus.UNKNOWN
    captured_at: int = 0                            # ms since epoch
    source_lines: list[str] = field(default_factory=list)

    def merge(self, partial: "TelemetryRecord") -> "TelemetryRecord":
        """
        Merge a partial record into this one in place.

        A present incoming value overwrites, an absent one never erases.
        UNKNOWN fix status is treated as absent. The capture time always
        moves to the incoming record and source lines are appended.
        """
        for name in OPTIONAL_FIELDS:
            value = getattr(partial, name)
            if value is not None:
                setattr(self, name, value)

        if partial.fix_status is not FixStatus.UNKNOWN:
            self.fix_status = partial.fix_status

        self.captured_at = partial.captured_at
        self.source_lines.extend(partial.source_lines)
        return self

    def has_fields(self) -> bool:
        if self.fix_status is not FixStatus.UNKNOWN:
            return True
        return any(getattr(self, name) is not None for name in OPTIONAL_FIELDS)

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def node_label(self) -> str:
        """Display key used to group records per tracker."""
        if self.callsign and self.node_id is not None:
            return f"{self.callsign}-{self.node_id}"
        if self.node_id is not None:
            return str(self.node_id)
        if self.callsign:
            return self.callsign
        return "UNKNOWN"

    @property
    def captured_at_iso(self) -> str:
        ts = datetime.fromtimestamp(self.captured_at / 1000.0, tz=timezone.utc)
        return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class TrackerSummary:
    """Per-node aggregate of received records."""

    node: str
    packet_count: int
    point_count: int
    path_length_m: float
    bounding_box: Optional[tuple[float, float, float, float]]  # (min_lat, min_lon, max_lat, max_lon)
    latest: TelemetryRecord
