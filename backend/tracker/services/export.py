"""
CSV export of received packets.

One row per packet, in the column layout the field team loads into their
spreadsheets.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from tracker.models.telemetry import TelemetryRecord


logger = logging.getLogger(__name__)


EXPORT_DIR_ENV = "TRACKER_EXPORT_DIR"

CSV_COLUMNS = [
    "Time",
    "Node",
    "Latitude",
    "Longitude",
    "RSSI (dBm)",
    "SNR (dB)",
    "Fix",
    "Satellites in View",
]


class ExportError(ValueError):
    """Export request cannot be fulfilled."""


def default_export_dir() -> Path:
    """Configured export folder, else ~/Downloads, else home."""
    configured = os.getenv(EXPORT_DIR_ENV)
    if configured:
        return Path(configured)
    downloads = Path.home() / "Downloads"
    if downloads.is_dir():
        return downloads
    return Path.home()


def default_export_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"packets-{now.strftime('%Y%m%dT%H%M%S')}.csv"


def export_path(filename: str) -> Path:
    """
    Resolve a client-supplied file name inside the export folder.

    Raises:
        ExportError: if the name is empty or points at another directory
    """
    if not filename or filename in (".", "..") or Path(filename).name != filename or "\\" in filename:
        raise ExportError(f"Invalid export file name: {filename!r}")
    return default_export_dir() / filename


def _fmt(value, spec: str = "") -> str:
    if value is None:
        return ""
    return format(value, spec)


def packets_to_frame(records: Iterable[TelemetryRecord]) -> pd.DataFrame:
    """Build the export table; absent values become empty cells."""
    rows = [
        {
            "Time": r.captured_at_iso,
            "Node": r.node_label,
            "Latitude": _fmt(r.latitude, ".6f"),
            "Longitude": _fmt(r.longitude, ".6f"),
            "RSSI (dBm)": _fmt(r.receiver_signal_strength),
            "SNR (dB)": _fmt(r.receiver_signal_quality),
            "Fix": r.fix_status.value,
            "Satellites in View": _fmt(r.satellite_count),
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_packets_csv(records: list[TelemetryRecord], path: Optional[Path] = None) -> Path:
    """
    Write packets to a CSV file.

    Args:
        records: Packets to export, in row order
        path: Target file (defaults to a timestamped name in the export folder)

    Returns:
        Path of the written file

    Raises:
        ExportError: if there is nothing to export or the file cannot be written
    """
    if not records:
        raise ExportError("No packets to export")

    target = Path(path) if path is not None else default_export_dir() / default_export_name()

    df = packets_to_frame(records)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(target, index=False)
    except OSError as e:
        raise ExportError(f"Failed to write CSV: {e}") from e

    logger.info(f"Exported {len(df)} packets to {target}")
    return target
