"""
Line sources for the read loop.

A source opens a connection and yields terminator-stripped text lines until
it is closed or the stop event is set. Read timeouts are absorbed here so
the read loop only ever sees complete lines.
"""

import logging
import os
import threading
from typing import Iterator, Optional, Protocol

import serial
import serial.tools.list_ports

from tracker.utils.sample_data import iter_demo_lines


logger = logging.getLogger(__name__)


DEMO_PORT = "URRG DEMO"
DEFAULT_BAUD_RATE = int(os.getenv("TRACKER_BAUD_RATE", "115200"))
READ_TIMEOUT_S = float(os.getenv("TRACKER_READ_TIMEOUT_S", "1.0"))
DEMO_INTERVAL_S = float(os.getenv("TRACKER_DEMO_INTERVAL_S", "1.0"))


class TransportError(RuntimeError):
    """A line source could not be opened or read."""


class LineSource(Protocol):
    """Upstream producer of device lines."""

    name: str

    def lines(self, stop_event: threading.Event) -> Iterator[str]:
        ...

    def close(self) -> None:
        ...


def list_ports() -> list[str]:
    """List serial device names, with the demo source appended."""
    names = [port.device for port in serial.tools.list_ports.comports()]
    names.sort()
    names.append(DEMO_PORT)
    return names


class SerialLineSource:
    """Serial port producing newline-delimited text."""

    def __init__(self, port: str, baud_rate: int = DEFAULT_BAUD_RATE, timeout: float = READ_TIMEOUT_S):
        self.name = port
        try:
            self._serial = serial.Serial(port, baud_rate, timeout=timeout)
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Failed to open port {port}: {e}") from e
        logger.info(f"Serial port opened: {port} @ {baud_rate} baud")

    def lines(self, stop_event: threading.Event) -> Iterator[str]:
        while not stop_event.is_set():
            try:
                raw = self._serial.readline()
            except serial.SerialException as e:
                logger.warning(f"Serial read failed on {self.name}: {e}")
                return
            if not raw:
                # Read timeout, go back to the stop check
                continue
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if line:
                yield line

    def close(self) -> None:
        if self._serial.is_open:
            self._serial.close()
            logger.info(f"Serial port closed: {self.name}")


class DemoLineSource:
    """Simulated trackers, one transmission every interval."""

    def __init__(self, interval_s: float = DEMO_INTERVAL_S, seed: Optional[int] = None):
        self.name = DEMO_PORT
        self.interval_s = interval_s
        self._seed = seed

    def lines(self, stop_event: threading.Event) -> Iterator[str]:
        for transmission in iter_demo_lines(self._seed):
            if stop_event.is_set():
                return
            yield from transmission
            if stop_event.wait(self.interval_s):
                return

    def close(self) -> None:
        pass


def open_source(port: str, baud_rate: int = DEFAULT_BAUD_RATE) -> LineSource:
    """Open the demo source or a serial port by name."""
    if port == DEMO_PORT:
        return DemoLineSource()
    return SerialLineSource(port, baud_rate)
