# =============================================================================
# test_pins.py - Pin Bank, Primitive Library and Event Log Tests
# =============================================================================
# Tests for the simulated board and the built-ins sketches call.
#
# Test coverage includes:
#   - Pin labels, membership and reset
#   - Pin I/O primitives and change notifications
#   - Invalid pins and modes (logged, never raised)
#   - Random numbers, math helpers and Serial formatting
#   - C division semantics helpers
#   - Event log entries and filtering
# =============================================================================

import re

import pytest
from arduino_sim.runtime.log import EventLog, LogKind
from arduino_sim.runtime.pins import PinBank, PinMode
from arduino_sim.runtime.primitives import PrimitiveLibrary


# =============================================================================
# Pin Bank Tests
# =============================================================================

class TestPinBank:
    """Test the fixed pin set."""

    def test_twenty_pins(self):
        bank = PinBank()
        assert len(bank) == 20
        assert bank.labels[:3] == (0, 1, 2)
        assert bank.labels[-1] == "A5"

    @pytest.mark.parametrize("label", [0, 13, "A0", "A5"])
    def test_valid_labels(self, label):
        assert label in PinBank()

    @pytest.mark.parametrize("label", [14, -1, "13", "A6", True, None, [13]])
    def test_invalid_labels(self, label):
        assert label not in PinBank()

    def test_get_unknown_pin(self):
        with pytest.raises(KeyError):
            PinBank().get(42)

    def test_reset(self):
        bank = PinBank()
        pin = bank.get(9)
        pin.mode = PinMode.OUTPUT
        pin.pwm_value = 100
        pin.input_value = 3
        bank.reset()
        assert pin.mode is PinMode.INPUT
        assert pin.pwm_value == 0
        assert pin.input_value is None

    def test_snapshot(self):
        bank = PinBank()
        bank.get(13).digital_value = 1
        snapshot = bank.snapshot()
        assert snapshot[13] == (1, 0)
        assert snapshot["A0"] == (0, 0)


# =============================================================================
# Pin I/O Primitive Tests
# =============================================================================

class TestPinPrimitives:
    """Primitives called outside a run behave normally."""

    def test_digital_write_notifies(self, sim, recorder):
        sim.primitives.digital_write(13, 1)
        sim.primitives.digital_write(13, "LOW")
        assert recorder.pins == [(13, 1, 0), (13, 0, 0)]
        assert sim.pins.get(13).digital_value == 0

    def test_digital_write_clears_pwm(self, sim):
        sim.primitives.analog_write(9, 100)
        sim.primitives.digital_write(9, 1)
        assert sim.pins.get(9).pwm_value == 0

    @pytest.mark.parametrize("value,expected", [(300, 255), (-5, 0), (128, 128)])
    def test_analog_write_clamps(self, sim, value, expected):
        sim.primitives.analog_write(9, value)
        assert sim.pins.get(9).pwm_value == expected
        assert sim.pins.get(9).digital_value == (1 if expected else 0)

    def test_invalid_pin_logged(self, sim, recorder):
        sim.primitives.digital_write(99, 1)
        assert recorder.errors() == ["Error: Invalid pin 99"]
        assert recorder.pins == []

    @pytest.mark.parametrize("mode,expected", [
        ("OUTPUT", PinMode.OUTPUT),
        ("INPUT_PULLUP", PinMode.INPUT_PULLUP),
        (1, PinMode.OUTPUT),
        (PinMode.INPUT, PinMode.INPUT),
    ])
    def test_pin_mode(self, sim, mode, expected):
        sim.primitives.pin_mode(5, mode)
        assert sim.pins.get(5).mode is expected

    def test_invalid_mode_logged(self, sim, recorder):
        sim.primitives.pin_mode(5, "SIDEWAYS")
        assert recorder.errors() == ["Error: Invalid pin mode SIDEWAYS"]
        assert sim.pins.get(5).mode is PinMode.INPUT

    def test_digital_read_output_readback(self, sim):
        sim.primitives.pin_mode(7, "OUTPUT")
        sim.primitives.digital_write(7, 1)
        assert sim.primitives.digital_read(7) == 1

    def test_digital_read_inputs(self, sim):
        primitives = sim.primitives
        assert primitives.digital_read(2) == 0
        primitives.pin_mode(2, "INPUT_PULLUP")
        assert primitives.digital_read(2) == 1
        sim.set_input(2, 0)
        assert primitives.digital_read(2) == 0
        sim.set_input(3, 700)
        assert primitives.digital_read(3) == 1

    def test_analog_read(self, sim):
        assert sim.primitives.analog_read("A1") == 0
        sim.set_input("A1", 5000)
        assert sim.primitives.analog_read("A1") == 1023

    def test_invalid_read_returns_zero(self, sim, recorder):
        assert sim.primitives.analog_read("A9") == 0
        assert recorder.errors() == ["Error: Invalid pin A9"]


# =============================================================================
# Helper Primitive Tests
# =============================================================================

class TestHelperPrimitives:
    """Random numbers, math and C semantics helpers."""

    def test_seeded_random_is_deterministic(self, sim):
        first = [sim.primitives.random(100) for _ in range(5)]
        again = PrimitiveLibrary(sim)
        assert [again.random(100) for _ in range(5)] == first

    def test_random_single_bound(self, sim):
        values = {sim.primitives.random(5) for _ in range(200)}
        assert values <= {0, 1, 2, 3, 4}
        assert len(values) > 1

    def test_random_ranges(self, sim):
        values = {sim.primitives.random(3, 6) for _ in range(200)}
        assert values <= {3, 4, 5}
        assert sim.primitives.random(5, 5) == 5
        assert sim.primitives.random(0) == 0

    def test_random_seed(self, sim):
        sim.primitives.random_seed(7)
        first = sim.primitives.random(1000)
        sim.primitives.random_seed(7)
        assert sim.primitives.random(1000) == first

    def test_map_range(self, sim):
        assert sim.primitives.map_range(512, 0, 1023, 0, 255) == 127
        assert sim.primitives.map_range(5, 0, 10, 100, 0) == 50

    def test_constrain(self, sim):
        assert sim.primitives.constrain(-3, 0, 10) == 0
        assert sim.primitives.constrain(4, 0, 10) == 4

    @pytest.mark.parametrize("a,b,quotient,remainder", [
        (7, 2, 3, 1),
        (-7, 2, -3, -1),
        (7, -2, -3, 1),
        (-7, -2, 3, -1),
    ])
    def test_div_and_mod_truncate(self, a, b, quotient, remainder):
        assert PrimitiveLibrary.div(a, b) == quotient
        assert PrimitiveLibrary.mod(a, b) == remainder

    def test_integer_division_by_zero_raises(self):
        with pytest.raises(ZeroDivisionError):
            PrimitiveLibrary.div(1, 0)

    def test_float_division_by_zero(self):
        assert PrimitiveLibrary.div(1.0, 0) == float("inf")
        assert PrimitiveLibrary.div(-1, 0.0) == float("-inf")

    def test_to_int(self):
        assert PrimitiveLibrary.to_int(-3.9) == -3
        assert PrimitiveLibrary.to_int("A") == 65
        assert PrimitiveLibrary.to_int(True) == 1

    def test_concat(self):
        assert PrimitiveLibrary.concat("a", 1.5) == "a1.50"
        assert PrimitiveLibrary.concat(3, "b") == "3b"

    def test_store_returns_value(self):
        values = [0, 0]
        assert PrimitiveLibrary.store(values, 1, 9) == 9
        assert values == [0, 9]


# =============================================================================
# Serial Output Tests
# =============================================================================

class TestSerial:
    """Serial.print buffering and value formatting."""

    @pytest.mark.parametrize("value,fmt,text", [
        (3.14159, None, "3.14"),
        (3.14159, 4, "3.1416"),
        (255, 16, "FF"),
        (-1, 16, "FFFFFFFF"),
        (5, 2, "101"),
        (8, 8, "10"),
        (42, 10, "42"),
        (True, None, "1"),
        ("text", None, "text"),
    ])
    def test_format_value(self, value, fmt, text):
        assert PrimitiveLibrary.format_value(value, fmt) == text

    def test_print_buffers_until_println(self, sim, recorder):
        sim.primitives.serial_print("a")
        sim.primitives.serial_print(1)
        assert recorder.outputs() == []
        sim.primitives.serial_println("b")
        assert recorder.outputs() == ["a1b"]

    def test_println_without_argument(self, sim):
        sim.primitives.serial_println()
        assert sim.log.messages(LogKind.OUTPUT) == [""]

    def test_begin_run_clears_buffer(self, sim):
        sim.primitives.serial_print("stale")
        sim.primitives.begin_run()
        sim.primitives.serial_println("fresh")
        assert sim.log.messages(LogKind.OUTPUT) == ["fresh"]


# =============================================================================
# Timing Primitive Tests
# =============================================================================

class TestTiming:
    """delay() and the clock outside a run."""

    @pytest.mark.asyncio
    async def test_delay_outside_run_returns(self, sim):
        await sim.primitives.delay(10000)

    @pytest.mark.asyncio
    async def test_checkpoint_outside_run(self, sim):
        for _ in range(25):
            await sim.primitives.checkpoint()

    def test_clock_starts_at_zero(self, sim):
        sim.primitives.begin_run()
        assert 0 <= sim.primitives.millis() < 1000
        assert sim.primitives.micros() >= sim.primitives.millis()


# =============================================================================
# Event Log Tests
# =============================================================================

class TestEventLog:
    """Append-only log with notifications."""

    def test_append_notifies(self):
        seen = []
        log = EventLog(seen.append)
        entry = log.append("hello")
        assert seen == [entry]
        assert entry.kind is LogKind.OUTPUT

    def test_format(self):
        entry = EventLog().system("Compiling...")
        assert re.fullmatch(r"\[\d\d:\d\d:\d\d\] Compiling\.\.\.", entry.format())

    def test_filter_by_kind(self):
        log = EventLog()
        log.system("start")
        log.append("out")
        log.error("bad")
        assert log.messages(LogKind.SYSTEM) == ["start"]
        assert log.messages("error") == ["bad"]
        assert log.messages() == ["start", "out", "bad"]
        assert len(log) == 3

    def test_has_errors_and_clear(self):
        log = EventLog()
        assert not log.has_errors()
        log.error("bad")
        assert log.has_errors()
        log.clear()
        assert len(log) == 0
        assert not log.has_errors()

    def test_entries_are_timestamped_in_order(self):
        log = EventLog()
        first = log.append("a")
        second = log.append("b")
        assert first.timestamp <= second.timestamp
        assert first.timestamp.tzinfo is not None
