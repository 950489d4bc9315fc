#!/usr/bin/env python3
"""
Launch script for Tracker Telemetry Backend.

Usage:
    python run_server.py [--serial-port DEVICE] [--baud RATE] [--port PORT] [--host HOST]

Examples:
    python run_server.py                              # Open a port later via POST /session
    python run_server.py --serial-port /dev/ttyUSB0   # Start reading at startup
    python run_server.py --serial-port "URRG DEMO"    # Simulated trackers
    python run_server.py --port 5000                  # Run on port 5000
"""

import argparse
import os
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="Tracker Telemetry Backend Server")
    parser.add_argument(
        "--serial-port", "-s",
        default=None,
        help="Serial device to read at startup (default: none)"
    )
    parser.add_argument(
        "--baud", "-b",
        type=int,
        default=115200,
        help="Serial baud rate (default: 115200)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    print(f"Tracker Telemetry Backend")
    print(f"=" * 40)
    print(f"Serial port: {args.serial_port or '(none)'}")
    print(f"Server: http://{args.host}:{args.port}")
    print(f"=" * 40)

    # Configure the transport for the FastAPI lifespan
    os.environ["TRACKER_BAUD_RATE"] = str(args.baud)
    if args.serial_port:
        os.environ["TRACKER_SERIAL_PORT"] = args.serial_port

    print("\nAPI Endpoints:")
    print("  GET    /                     - Health check")
    print("  GET    /health               - Detailed health")
    print("  GET    /ports                - Available ports")
    print("  GET    /session              - Read loop state")
    print("  POST   /session              - Open port and start reading")
    print("  DELETE /session              - Stop reading")
    print("  GET    /packets              - Received packets")
    print("  GET    /packets/raw          - Raw device lines")
    print("  GET    /packets/diagnostics  - Unparsed lines")
    print("  POST   /packets/ingest       - Replay captured lines")
    print("  GET    /trackers             - Per-node summaries")
    print("  POST   /export               - Export packets to CSV")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "tracker.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
