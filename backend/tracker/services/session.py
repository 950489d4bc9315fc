"""
Reader session - owns the read loop for one open line source.

The loop runs on a worker thread: lines are pulled from the source and fed
to a PacketAssembler whose sink is the packet store. Stopping is
cooperative; the assembler flushes whatever is in progress on the way out.
"""

import logging
import threading
import time
from typing import Optional

from tracker.services.assembler import PacketAssembler, PacketSink
from tracker.services.repository import get_store
from tracker.services.transport import DEFAULT_BAUD_RATE, LineSource, open_source


logger = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """Invalid session state transition."""


class ReaderSession:
    """Read loop for a single line source."""

    def __init__(self, source: LineSource, sink: PacketSink):
        self.source = source
        self.assembler = PacketAssembler(sink)
        self.started_at: Optional[float] = None
        self.emitted = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> str:
        return self.source.name

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise SessionError("Session already started")
        self.started_at = time.time()
        self._thread = threading.Thread(
            target=self._run,
            name=f"reader-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Read loop started on {self.port}")

    def stop(self, timeout: float = 5.0) -> None:
        """Request stop, wait for the final flush and close the source."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"Read loop on {self.port} did not stop within {timeout}s")
        self.source.close()

    def _run(self) -> None:
        try:
            self.emitted = self.assembler.run(
                self.source.lines(self._stop_event),
                self._stop_event,
            )
        except Exception:
            logger.exception(f"Read loop on {self.port} failed")
        finally:
            logger.info(f"Read loop stopped on {self.port} ({self.emitted} packets)")


class SessionManager:
    """Keeps at most one reader session open."""

    def __init__(self):
        self._lock = threading.Lock()
        self._session: Optional[ReaderSession] = None
        self.baud_rate: Optional[int] = None

    @property
    def session(self) -> Optional[ReaderSession]:
        return self._session

    def open(self, port: str, baud_rate: int = DEFAULT_BAUD_RATE) -> ReaderSession:
        """
        Open a line source and start reading.

        Args:
            port: Serial device name, or the demo port name
            baud_rate: Serial baud rate (ignored by the demo source)

        Returns:
            The started ReaderSession

        Raises:
            SessionError: if a session is already running
            TransportError: if the source could not be opened
        """
        with self._lock:
            if self._session is not None and self._session.is_running:
                raise SessionError(f"Port already open: {self._session.port}")
            if self._session is not None:
                # Loop ended on its own (e.g. device unplugged); release the port
                self._session.stop()
                self._session = None
            source = open_source(port, baud_rate)
            session = ReaderSession(source, get_store())
            session.start()
            self._session = session
            self.baud_rate = baud_rate
            return session

    def close(self) -> bool:
        """Stop the current session. Returns False if none was open."""
        with self._lock:
            session = self._session
            self._session = None
            self.baud_rate = None
        if session is None:
            return False
        session.stop()
        return True


_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """Get the global session manager."""
    global _manager
    if _manager is None:
        _manager = SessionManager()
    return _manager
