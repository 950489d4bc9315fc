"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Optional
from pydantic import BaseModel, Field

from tracker.services.transport import DEFAULT_BAUD_RATE


# ============================================================================
# Packet Schemas
# ============================================================================

class PacketResponse(BaseModel):
    """A completed telemetry packet."""
    node: str
    node_id: Optional[int] = None
    callsign: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    satellite_count: Optional[int] = None
    receiver_signal_strength: Optional[int] = None
    receiver_signal_quality: Optional[int] = None
    fix_status: str
    captured_at: int  # ms since epoch
    source_lines: list[str]


class ClearResponse(BaseModel):
    """Result of dropping stored packets."""
    cleared: bool
    packet_count: int


class ParseDiagnosticResponse(BaseModel):
    """A line that produced no usable fields."""
    line: str
    kind: str


class IngestRequest(BaseModel):
    """Captured device lines to replay through the assembler."""
    lines: list[str]


class IngestResponse(BaseModel):
    """Result of replaying captured lines."""
    packets: list[PacketResponse]
    diagnostics: list[ParseDiagnosticResponse]


# ============================================================================
# Tracker Schemas
# ============================================================================

class TrackerResponse(BaseModel):
    """Per-node summary."""
    node: str
    packet_count: int
    point_count: int
    path_length_m: float
    bounding_box: Optional[tuple[float, float, float, float]] = None  # (min_lat, min_lon, max_lat, max_lon)
    latest: PacketResponse


# ============================================================================
# Session Schemas
# ============================================================================

class OpenSessionRequest(BaseModel):
    """Request to open a port and start reading."""
    port: str
    baud_rate: int = Field(default=DEFAULT_BAUD_RATE, gt=0)


class SessionResponse(BaseModel):
    """State of the read loop."""
    connected: bool
    port: Optional[str] = None
    baud_rate: Optional[int] = None
    started_at: Optional[float] = None
    packet_count: int


# ============================================================================
# Export Schemas
# ============================================================================

class ExportRequest(BaseModel):
    """Request to export packets to CSV."""
    filename: Optional[str] = None  # bare name, written into the export folder


class ExportResponse(BaseModel):
    """Location of the written CSV."""
    path: str
    packet_count: int


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
