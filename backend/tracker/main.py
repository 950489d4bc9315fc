"""
Tracker Telemetry Console - FastAPI Backend

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracker.api.packets import (
    router as packets_router,
    export_router,
    port_router,
    session_router,
    tracker_router,
)
from tracker.services.repository import get_store
from tracker.services.session import get_session_manager
from tracker.services.transport import DEFAULT_BAUD_RATE, TransportError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Port to open at startup (optional)
SERIAL_PORT_ENV = "TRACKER_SERIAL_PORT"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Tracker Telemetry Backend")

    manager = get_session_manager()
    port = os.getenv(SERIAL_PORT_ENV)
    if port:
        try:
            manager.open(port, DEFAULT_BAUD_RATE)
            logger.info(f"Reading from {port} @ {DEFAULT_BAUD_RATE} baud")
        except TransportError as e:
            logger.error(f"Could not open {port}: {e}")
            logger.info("Use POST /session to open a port")
    else:
        logger.info("No port configured, use POST /session to open one")

    yield

    # Shutdown: stop the read loop so the packet in progress is flushed
    manager.close()
    logger.info("Shutting down Tracker Telemetry Backend")


# Create FastAPI app
app = FastAPI(
    title="Tracker Telemetry Console",
    description="""
    Backend API for radio tracker telemetry.

    ## Features
    - Read the tracker's text telemetry from a serial port (or a demo source)
    - Reassemble multi-line transmissions into position packets
    - Group packets per node into trackers
    - Export received packets to CSV

    ## Data Flow
    1. List ports via GET /ports
    2. Start reading via POST /session
    3. Watch packets via GET /packets and GET /trackers
    4. Export via POST /export
    """,
    version="0.1.0",
    lifespan=lifespan,
)


# CORS middleware (allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(packets_router)
app.include_router(tracker_router)
app.include_router(port_router)
app.include_router(session_router)
app.include_router(export_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": "Tracker Telemetry Console",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    session = get_session_manager().session

    return {
        "status": "healthy",
        "port": session.port if session is not None and session.is_running else None,
        "packet_count": get_store().packet_count,
    }
