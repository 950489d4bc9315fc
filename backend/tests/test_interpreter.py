"""
Tests for the line interpreter.
"""

import pytest

from tracker.models.telemetry import FixStatus, fix_status_from_token
from tracker.services.interpreter import (
    NoMatchError,
    classify_line,
    extract_fields,
    is_packet_end,
    is_packet_start,
)


@pytest.fixture
def clock():
    """Fixed millisecond clock."""
    return lambda: 1_700_000_000_000


class TestHeaderRules:
    """Tests for the two header dialects."""

    def test_node_header(self, clock):
        """Node header should populate node and signal fields."""
        record = extract_fields("Node 3: (20 bytes | -72 dBm | 9 dB):", clock)

        assert record.node_id == 3
        assert record.receiver_signal_strength == -72
        assert record.receiver_signal_quality == 9
        assert record.callsign is None
        assert record.fix_status == FixStatus.UNKNOWN

    def test_callsign_header(self, clock):
        """Licensed header should populate callsign and node."""
        record = extract_fields("KD2YIE-1: (13 bytes | -80 dBm | 7 dB):", clock)

        assert record.callsign == "KD2YIE"
        assert record.node_id == 1
        assert record.receiver_signal_strength == -80
        assert record.receiver_signal_quality == 7

    def test_header_case_insensitive(self, clock):
        record = extract_fields("NODE 12: (5 BYTES | -101 DBM | -3 DB)", clock)

        assert record.node_id == 12
        assert record.receiver_signal_strength == -101
        assert record.receiver_signal_quality == -3

    def test_node_header_wins_over_callsign_header(self, clock):
        """Only one header dialect applies per line."""
        record = extract_fields("Node-4: (10 bytes | -60 dBm | 5 dB):", clock)

        assert record.node_id == 4
        assert record.callsign is None

    def test_unparseable_signal_quality_dropped(self, clock):
        """A bad number drops that field only."""
        record = extract_fields("Node 3: (20 bytes | -72 dBm | 9.5 dB):", clock)

        assert record.node_id == 3
        assert record.receiver_signal_strength == -72
        assert record.receiver_signal_quality is None

    def test_out_of_range_node_dropped(self, clock):
        record = extract_fields("Node 300: (20 bytes | -72 dBm | 9 dB):", clock)

        assert record.node_id is None
        assert record.receiver_signal_strength == -72


class TestFieldRules:
    """Tests for labelled field lines."""

    def test_latitude(self, clock):
        record = extract_fields("Latitude: 37.1234", clock)
        assert record.latitude == pytest.approx(37.1234)
        assert record.longitude is None

    def test_longitude(self, clock):
        record = extract_fields("Longitude: -122.5678", clock)
        assert record.longitude == pytest.approx(-122.5678)

    def test_short_labels(self, clock):
        record = extract_fields("lat=42.7 lon=-77.19 sats=9", clock)

        assert record.latitude == pytest.approx(42.7)
        assert record.longitude == pytest.approx(-77.19)
        assert record.satellite_count == 9

    def test_satellite_count(self, clock):
        record = extract_fields("Satellites count: 8", clock)
        assert record.satellite_count == 8

    def test_standalone_callsign(self, clock):
        record = extract_fields("Callsign: kd2yie", clock)
        assert record.callsign == "KD2YIE"

    def test_header_callsign_not_overridden(self, clock):
        """Callsign from the header takes precedence on the same line."""
        record = extract_fields("KD2YIE-1: (13 bytes | -80 dBm | 7 dB): callsign W1AW", clock)
        assert record.callsign == "KD2YIE"


class TestFixStatus:
    """Tests for fix status extraction."""

    @pytest.mark.parametrize(
        "token, expected",
        [
            ("FIX", FixStatus.FIX),
            ("NOFIX", FixStatus.NO_FIX),
            ("NO_FIX", FixStatus.NO_FIX),
            ("DIFF", FixStatus.DIFFERENTIAL),
            ("DGPS_DIFF", FixStatus.DIFFERENTIAL),
            ("EST", FixStatus.ESTIMATED),
            ("BOGUS", FixStatus.UNKNOWN),
        ],
    )
    def test_token_mapping(self, token, expected):
        assert fix_status_from_token(token) == expected

    def test_fix_status_line(self, clock):
        record = extract_fields("Fix status: FIX", clock)
        assert record.fix_status == FixStatus.FIX

    def test_no_fix_phrase(self, clock):
        record = extract_fields("No fix acquired", clock)
        assert record.fix_status == FixStatus.NO_FIX


class TestNoMatch:
    """Tests for lines without recognized fields."""

    def test_garbage_line(self, clock):
        with pytest.raises(NoMatchError) as exc_info:
            extract_fields("garbage line", clock)

        assert exc_info.value.kind == "no_match"
        assert exc_info.value.line == "garbage line"

    def test_empty_line(self, clock):
        with pytest.raises(NoMatchError):
            extract_fields("", clock)

    def test_unknown_status_token_is_no_match(self, clock):
        """A fix label with an unmapped token carries nothing."""
        with pytest.raises(NoMatchError):
            extract_fields("Fix status: ???", clock)


class TestExtractionMetadata:
    """Tests for capture time and source trail."""

    def test_source_line_recorded(self, clock):
        record = extract_fields("Latitude: 37.1234", clock)

        assert record.source_lines == ["Latitude: 37.1234"]
        assert record.captured_at == 1_700_000_000_000

    def test_reparse_identical_except_timestamp(self):
        """Extracting the same line twice yields the same fields."""
        line = "KD2YIE-1: (13 bytes | -80 dBm | 7 dB): lat 42.1 lon -77.2"
        first = extract_fields(line, lambda: 1)
        second = extract_fields(line, lambda: 2)

        assert first.captured_at != second.captured_at
        second.captured_at = first.captured_at
        assert first == second


class TestClassification:
    """Tests for structural line classification."""

    def test_header_is_start(self):
        c = classify_line("Node 3: (20 bytes | -72 dBm | 9 dB):")
        assert c.packet_start
        assert not c.packet_end

    def test_fix_line_is_end(self):
        assert is_packet_end("Fix status: FIX")
        assert is_packet_end("No fix acquired")
        assert not is_packet_start("Fix status: FIX")

    def test_field_line_is_plain(self):
        assert classify_line("Latitude: 37.1234").is_plain

    def test_end_independent_of_extraction(self):
        """An unmapped status token still ends the packet."""
        assert is_packet_end("Fix status: ???")

    def test_start_independent_of_extraction(self):
        """A header with out-of-range numbers still starts a packet."""
        assert is_packet_start("Node 999: (20 bytes | -72 dBm | 9.5 dB):")
