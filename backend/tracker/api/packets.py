"""
API routes for packets, trackers, the read session and export.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from tracker.api.schemas import (
    ClearResponse,
    ErrorResponse,
    ExportRequest,
    ExportResponse,
    IngestRequest,
    IngestResponse,
    OpenSessionRequest,
    PacketResponse,
    ParseDiagnosticResponse,
    SessionResponse,
    TrackerResponse,
)
from tracker.models.telemetry import TelemetryRecord, TrackerSummary
from tracker.services.assembler import PacketAssembler
from tracker.services.export import ExportError, export_packets_csv, export_path
from tracker.services.repository import PacketStore, ParseDiagnostic, get_store
from tracker.services.session import SessionError, get_session_manager
from tracker.services.transport import TransportError, list_ports


router = APIRouter(prefix="/packets", tags=["packets"])


def _packet_response(record: TelemetryRecord) -> PacketResponse:
    """Build packet response from TelemetryRecord."""
    return PacketResponse(
        node=record.node_label,
        node_id=record.node_id,
        callsign=record.callsign,
        latitude=record.latitude,
        longitude=record.longitude,
        satellite_count=record.satellite_count,
        receiver_signal_strength=record.receiver_signal_strength,
        receiver_signal_quality=record.receiver_signal_quality,
        fix_status=record.fix_status.value,
        captured_at=record.captured_at,
        source_lines=list(record.source_lines),
    )


def _diagnostic_response(diagnostic: ParseDiagnostic) -> ParseDiagnosticResponse:
    return ParseDiagnosticResponse(line=diagnostic.line, kind=diagnostic.kind)


def _tracker_response(summary: TrackerSummary) -> TrackerResponse:
    return TrackerResponse(
        node=summary.node,
        packet_count=summary.packet_count,
        point_count=summary.point_count,
        path_length_m=summary.path_length_m,
        bounding_box=summary.bounding_box,
        latest=_packet_response(summary.latest),
    )


class _CollectingSink:
    """Forwards to the store and keeps what this request produced."""

    def __init__(self, store: PacketStore):
        self.store = store
        self.packets: list[TelemetryRecord] = []
        self.diagnostics: list[ParseDiagnostic] = []

    def on_packet(self, record: TelemetryRecord) -> None:
        self.packets.append(record)
        self.store.on_packet(record)

    def on_raw_line(self, line: str) -> None:
        self.store.on_raw_line(line)

    def on_parse_error(self, line: str, kind: str) -> None:
        self.diagnostics.append(ParseDiagnostic(line=line, kind=kind))
        self.store.on_parse_error(line, kind)


@router.get("", response_model=list[PacketResponse])
async def list_packets(
    limit: Optional[int] = Query(None, ge=1, description="Only the most recent packets"),
):
    """
    List received packets, oldest first.
    """
    store = get_store()
    return [_packet_response(r) for r in store.list_packets(limit)]


@router.delete("", response_model=ClearResponse)
async def clear_packets():
    """Drop all received packets, raw lines and diagnostics."""
    store = get_store()
    store.clear()
    return ClearResponse(cleared=True, packet_count=store.packet_count)


@router.get("/raw", response_model=list[str])
async def list_raw_lines(
    limit: Optional[int] = Query(None, ge=1, description="Only the most recent lines"),
):
    """Raw device lines as received, for the debug view."""
    return get_store().list_raw_lines(limit)


@router.get("/diagnostics", response_model=list[ParseDiagnosticResponse])
async def list_diagnostics(
    limit: Optional[int] = Query(None, ge=1, description="Only the most recent diagnostics"),
):
    """Lines that yielded no fields."""
    return [_diagnostic_response(d) for d in get_store().list_diagnostics(limit)]


@router.post("/ingest", response_model=IngestResponse)
async def ingest_lines(request: IngestRequest):
    """
    Replay captured device lines through a fresh assembler.

    Packets land in the store like live ones. A packet still open after the
    last line is flushed.
    """
    sink = _CollectingSink(get_store())
    assembler = PacketAssembler(sink)
    assembler.run(request.lines)

    return IngestResponse(
        packets=[_packet_response(r) for r in sink.packets],
        diagnostics=[_diagnostic_response(d) for d in sink.diagnostics],
    )


# ============================================================================
# Tracker Routes
# ============================================================================

tracker_router = APIRouter(prefix="/trackers", tags=["trackers"])


@tracker_router.get("", response_model=list[TrackerResponse])
async def list_trackers():
    """Per-node summaries: packet count, path and latest packet."""
    return [_tracker_response(s) for s in get_store().list_trackers()]


# ============================================================================
# Port / Session Routes
# ============================================================================

port_router = APIRouter(prefix="/ports", tags=["session"])


@port_router.get("", response_model=list[str])
async def get_ports():
    """List serial ports available to open, plus the demo source."""
    return list_ports()


session_router = APIRouter(prefix="/session", tags=["session"])


def _session_response() -> SessionResponse:
    manager = get_session_manager()
    session = manager.session
    connected = session is not None and session.is_running
    return SessionResponse(
        connected=connected,
        port=session.port if connected else None,
        baud_rate=manager.baud_rate if connected else None,
        started_at=session.started_at if connected else None,
        packet_count=get_store().packet_count,
    )


@session_router.get("", response_model=SessionResponse)
async def get_session():
    """Current read-loop state."""
    return _session_response()


@session_router.post(
    "",
    response_model=SessionResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def open_session(request: OpenSessionRequest):
    """
    Open a port and start assembling packets from it.
    """
    manager = get_session_manager()
    try:
        manager.open(request.port, request.baud_rate)
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _session_response()


@session_router.delete("", response_model=SessionResponse)
def close_session():
    """
    Stop reading. The packet in progress, if any, is flushed first.
    """
    get_session_manager().close()
    return _session_response()


# ============================================================================
# Export Routes
# ============================================================================

export_router = APIRouter(prefix="/export", tags=["export"])


@export_router.post("", response_model=ExportResponse, responses={400: {"model": ErrorResponse}})
def export_csv(request: ExportRequest):
    """
    Export all stored packets to CSV.
    """
    packets = get_store().list_packets()
    try:
        path = export_path(request.filename) if request.filename else None
        target = export_packets_csv(packets, path)
    except ExportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ExportResponse(path=str(target), packet_count=len(packets))
