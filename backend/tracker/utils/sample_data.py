"""
Sample data generator for demos and testing.

Produces device-dialect text lines for a handful of simulated trackers
circling a landing area, one tracker per time slot, plus a slot where a
receiver reports no fix.
"""

import math
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np


# URRG landing area
DEMO_BASE_LAT = 42.705122
DEMO_BASE_LON = -77.190666


@dataclass(frozen=True)
class DemoTracker:
    callsign: str
    node_id: int
    offset: float   # radians
    radius: float   # degrees


DEMO_TRACKERS = [
    DemoTracker("RISK", 1, 0.0, 0.0009),
    DemoTracker("OTIS", 2, math.pi / 2, 0.00075),
    DemoTracker("OMEN", 3, math.pi, 0.0006),
    DemoTracker("KONG", 4, 3 * math.pi / 2, 0.00085),
]
# Last slot is a node without a position
DEMO_VOID_NODE = 9
DEMO_SLOTS = len(DEMO_TRACKERS) + 1
PHASE_STEP = math.pi / 24


def generate_demo_lines(
    phase: float,
    slot: int,
    rng: Optional[np.random.Generator] = None,
) -> list[str]:
    """
    Generate the lines of one simulated transmission.

    Args:
        phase: Orbit phase in radians
        slot: Slot index; slots past the last tracker produce a no-fix packet
        rng: Random generator for signal noise (defaults to a fresh one)

    Returns:
        Lines as the device would print them, header first
    """
    rng = rng or np.random.default_rng()
    slot = slot % DEMO_SLOTS

    rssi = int(rng.integers(-100, -40))
    snr = int(rng.integers(-10, 25))
    n_bytes = int(rng.integers(10, 32))

    if slot >= len(DEMO_TRACKERS):
        return [
            f"Node {DEMO_VOID_NODE}: ({n_bytes} bytes | {rssi} dBm | {snr} dB):",
            "No fix acquired",
        ]

    tracker = DEMO_TRACKERS[slot]
    angle = phase + tracker.offset
    radius = tracker.radius + np.sin(phase + slot * 0.7) * 0.00015
    lat = DEMO_BASE_LAT + radius * np.cos(angle)
    lon = DEMO_BASE_LON + radius * np.sin(angle)

    return [
        f"{tracker.callsign}-{tracker.node_id}: ({n_bytes} bytes | {rssi} dBm | {snr} dB):",
        f"Latitude: {lat:.6f}",
        f"Longitude: {lon:.6f}",
        f"Satellites count: {8 + slot}",
        "Fix status: FIX",
    ]


def iter_demo_lines(seed: Optional[int] = None) -> Iterator[list[str]]:
    """Cycle through the demo slots forever, one transmission per step."""
    rng = np.random.default_rng(seed)
    phase = 0.0
    slot = 0
    while True:
        yield generate_demo_lines(phase, slot, rng)
        slot = (slot + 1) % DEMO_SLOTS
        phase = (phase + PHASE_STEP) % (2 * math.pi)
