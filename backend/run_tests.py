#!/usr/bin/env python3
"""
Standalone test runner for the tracker telemetry backend.

Does not require pytest - runs a smoke suite with plain asserts.
"""

import sys
import tempfile
import traceback
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

# Track test results
passed = 0
failed = 0
errors = []


def test(name):
    """Decorator to mark and run a test function."""
    def decorator(func):
        global passed, failed, errors
        try:
            func()
            print(f"  ✓ {name}")
            passed += 1
        except AssertionError as e:
            print(f"  ✗ {name}")
            print(f"    AssertionError: {e}")
            failed += 1
            errors.append((name, str(e)))
        except Exception as e:
            print(f"  ✗ {name}")
            print(f"    {type(e).__name__}: {e}")
            failed += 1
            errors.append((name, traceback.format_exc()))
        return func
    return decorator


class ListSink:
    def __init__(self):
        self.packets = []
        self.errors = []

    def on_packet(self, record):
        self.packets.append(record)

    def on_raw_line(self, line):
        pass

    def on_parse_error(self, line, kind):
        self.errors.append((line, kind))


# ============================================================================
# Interpreter Tests
# ============================================================================

print("\n=== Line Interpreter Tests ===")

from tracker.models.telemetry import FixStatus
from tracker.services.interpreter import NoMatchError, extract_fields, classify_line


@test("Interpreter: node header")
def test_node_header():
    r = extract_fields("Node 3: (20 bytes | -72 dBm | 9 dB):")
    assert r.node_id == 3, f"node_id {r.node_id}"
    assert r.receiver_signal_strength == -72
    assert r.receiver_signal_quality == 9


@test("Interpreter: callsign header")
def test_callsign_header():
    r = extract_fields("KD2YIE-1: (13 bytes | -80 dBm | 7 dB):")
    assert r.callsign == "KD2YIE"
    assert r.node_id == 1


@test("Interpreter: no-fix phrase")
def test_no_fix():
    assert extract_fields("No fix acquired").fix_status == FixStatus.NO_FIX


@test("Interpreter: garbage raises NoMatchError")
def test_garbage():
    try:
        extract_fields("garbage line")
    except NoMatchError:
        return
    raise AssertionError("expected NoMatchError")


@test("Interpreter: classification")
def test_classification():
    assert classify_line("Node 3: (20 bytes | -72 dBm | 9 dB):").packet_start
    assert classify_line("Fix status: FIX").packet_end
    assert classify_line("Latitude: 1.0").is_plain


# ============================================================================
# Assembler Tests
# ============================================================================

print("\n=== Packet Assembler Tests ===")

from tracker.services.assembler import PacketAssembler


@test("Assembler: full packet")
def test_full_packet():
    sink = ListSink()
    PacketAssembler(sink).run([
        "Node 3: (20 bytes | -72 dBm | 9 dB):",
        "Latitude: 37.1234",
        "Longitude: -122.5678",
        "Fix status: FIX",
    ])
    assert len(sink.packets) == 1, f"{len(sink.packets)} packets"
    p = sink.packets[0]
    assert p.latitude == 37.1234
    assert p.fix_status == FixStatus.FIX


@test("Assembler: final flush")
def test_final_flush():
    sink = ListSink()
    PacketAssembler(sink).run([
        "garbage line",
        "Node 5: (10 bytes | -60 dBm | 5 dB):",
        "Satellites count: 8",
    ])
    assert sink.errors == [("garbage line", "no_match")]
    assert len(sink.packets) == 1
    assert sink.packets[0].satellite_count == 8


@test("Assembler: back-to-back headers")
def test_back_to_back():
    sink = ListSink()
    PacketAssembler(sink).run([
        "Node 1: (10 bytes | -60 dBm | 5 dB):",
        "Node 2: (10 bytes | -60 dBm | 5 dB):",
    ])
    assert [p.node_id for p in sink.packets] == [1, 2]


# ============================================================================
# Store / Export Tests
# ============================================================================

print("\n=== Store and Export Tests ===")

from tracker.services.repository import PacketStore
from tracker.services.export import export_packets_csv
from tracker.utils.sample_data import generate_demo_lines, DEMO_SLOTS


@test("Store: demo trackers")
def test_demo_trackers():
    store = PacketStore()
    assembler = PacketAssembler(store)
    for slot in range(DEMO_SLOTS):
        assembler.run(generate_demo_lines(0.0, slot))
    nodes = [t.node for t in store.list_trackers()]
    assert len(nodes) == DEMO_SLOTS, f"nodes {nodes}"


@test("Export: CSV written")
def test_export():
    store = PacketStore()
    PacketAssembler(store).run(generate_demo_lines(0.0, 0))
    with tempfile.TemporaryDirectory() as tmpdir:
        target = export_packets_csv(store.list_packets(), Path(tmpdir) / "out.csv")
        content = target.read_text().splitlines()
        assert content[0].startswith("Time,Node,Latitude")
        assert len(content) == 2


# ============================================================================
# API Tests
# ============================================================================

print("\n=== API Tests ===")

try:
    from fastapi.testclient import TestClient
    from tracker.main import app

    client = TestClient(app)

    @test("API: root endpoint")
    def test_api_root():
        r = client.get("/")
        assert r.status_code == 200
        assert r.json()["status"] == "running"

    @test("API: ingest lines")
    def test_api_ingest():
        r = client.post("/packets/ingest", json={"lines": [
            "KD2YIE-1: (13 bytes | -80 dBm | 7 dB):",
            "No fix acquired",
        ]})
        assert r.status_code == 200
        assert r.json()["packets"][0]["fix_status"] == "NOFIX"

except ImportError as e:
    print(f"  ⚠ API tests skipped: {e}")


# ============================================================================
# Summary
# ============================================================================

print("\n" + "=" * 50)
print(f"RESULTS: {passed} passed, {failed} failed")
print("=" * 50)

if errors:
    print("\nFailures:")
    for name, error in errors:
        print(f"\n--- {name} ---")
        print(error)

sys.exit(0 if failed == 0 else 1)
