"""
Primitive Library
=================

The built-in functions that transformed sketch code calls through the
``_rt`` name: pin I/O, timing, random numbers, math helpers, Serial output,
and the small helpers the emitter uses to keep C semantics (truncating
division, integer coercion, assignment-as-expression on array elements).

Every primitive validates its pin label. An unknown label produces an
``Error: Invalid pin <label>`` log entry and the call becomes a no-op;
primitives never raise for bad pins.

After stop(), a run that is still in flight must not touch the board.
Every primitive and loop checkpoint therefore raises ExecutionHalted when
called from a halted run. Calls made outside any run behave normally.

Primitive Reference
-------------------
pinMode(pin, mode)          -> pin_mode
digitalWrite(pin, value)    -> digital_write
analogWrite(pin, value)     -> analog_write
digitalRead(pin)            -> digital_read
analogRead(pin)             -> analog_read
delay(ms)                   -> await delay
delayMicroseconds(us)       -> await delay_microseconds
millis() / micros()         -> millis / micros
random(a[, b])              -> random
randomSeed(n)               -> random_seed
map(v, fl, fh, tl, th)      -> map_range
constrain(v, lo, hi)        -> constrain
Serial.begin/print/println  -> serial_begin / serial_print / serial_println
"""

from typing import Any, Optional, TYPE_CHECKING
import asyncio
import logging
import math
import random as _random
import time

from arduino_sim.errors import InvalidPinAccess, ExecutionHalted
from arduino_sim.runtime.pins import PinMode, PinLabel, PWM_MAX, ANALOG_MAX

if TYPE_CHECKING:
    from arduino_sim.runtime.simulator import Simulator

logger = logging.getLogger(__name__)

# Arduino numeric mode constants, accepted alongside the string labels
_NUMERIC_MODES = {0: PinMode.INPUT, 1: PinMode.OUTPUT, 2: PinMode.INPUT_PULLUP}

_NUMBER_BASES = {2: "b", 8: "o", 10: "d", 16: "X"}


class PrimitiveLibrary:
    """
    Built-ins bound to one Simulator session.

    The emitter refers to every method here by name, so renaming one is a
    change to the generated code as well.

    Attributes:
        rng: Seedable generator used by random()
    """

    def __init__(self, simulator: "Simulator"):
        self._sim = simulator
        self.rng = _random.Random(simulator.config.random_seed)
        self._serial_buffer: list[str] = []
        self._ticks = 0
        self._started_at = time.monotonic()

    def begin_run(self) -> None:
        """Reset per-run state: clock origin, Serial buffer, checkpoint counter."""
        self._started_at = time.monotonic()
        self._serial_buffer.clear()
        self._ticks = 0

    # =========================================================================
    # Session Helpers
    # =========================================================================

    def _check_halted(self) -> None:
        if self._sim.halted:
            raise ExecutionHalted()

    def _valid_pin(self, pin: Any) -> bool:
        if pin in self._sim.pins:
            return True
        self._sim.log.error(str(InvalidPinAccess(pin)))
        return False

    def _notify(self, pin: PinLabel, digital: int, pwm: int) -> None:
        if self._sim.on_pin_change:
            self._sim.on_pin_change(pin, digital, pwm)

    # =========================================================================
    # Pin I/O
    # =========================================================================

    def pin_mode(self, pin: PinLabel, mode: Any) -> None:
        self._check_halted()
        if not self._valid_pin(pin):
            return

        if isinstance(mode, PinMode):
            resolved = mode
        elif isinstance(mode, int) and mode in _NUMERIC_MODES:
            resolved = _NUMERIC_MODES[mode]
        else:
            try:
                resolved = PinMode(mode)
            except ValueError:
                self._sim.log.error(f"Error: Invalid pin mode {mode}")
                return

        self._sim.pins.get(pin).mode = resolved

    def digital_write(self, pin: PinLabel, value: Any) -> None:
        """
        Drive a pin HIGH or LOW.

        "HIGH", True and any other truthy value except "LOW" give 1.
        PWM on the pin is cleared.
        """
        self._check_halted()
        if not self._valid_pin(pin):
            return

        level = 1 if value == "HIGH" or (value != "LOW" and bool(value)) else 0
        state = self._sim.pins.get(pin)
        state.digital_value = level
        state.pwm_value = 0
        self._notify(pin, level, 0)

    def analog_write(self, pin: PinLabel, value: Any) -> None:
        """Set a PWM duty level, clamped to 0-255; the pin reads HIGH while pwm > 0."""
        self._check_halted()
        if not self._valid_pin(pin):
            return

        pwm = max(0, min(PWM_MAX, int(value)))
        state = self._sim.pins.get(pin)
        state.pwm_value = pwm
        state.digital_value = 1 if pwm > 0 else 0
        self._notify(pin, state.digital_value, pwm)

    def digital_read(self, pin: PinLabel) -> int:
        """
        Read a pin's logic level.

        OUTPUT pins read back what was written. Input pins read 1 when the
        driven input is above zero; an undriven INPUT_PULLUP pin reads 1.
        """
        self._check_halted()
        if not self._valid_pin(pin):
            return 0

        state = self._sim.pins.get(pin)
        if state.mode is PinMode.OUTPUT:
            return state.digital_value
        if state.input_value is None:
            return 1 if state.mode is PinMode.INPUT_PULLUP else 0
        return 1 if state.input_value > 0 else 0

    def analog_read(self, pin: PinLabel) -> int:
        self._check_halted()
        if not self._valid_pin(pin):
            return 0

        state = self._sim.pins.get(pin)
        if state.input_value is None:
            return 0
        return max(0, min(ANALOG_MAX, int(state.input_value)))

    # =========================================================================
    # Timing
    # =========================================================================

    async def delay(self, ms: Any) -> None:
        """
        Suspend the sketch for ``ms`` milliseconds of unpaused wall time.

        Waits in delay_poll slices and returns as soon as the session is no
        longer running. While paused, it polls every pause_frame and the
        time does not count. A slice is credited only if no pause began
        during it, so the unpaused wait is never shorter than ``ms``.
        """
        self._check_halted()
        sim = self._sim
        config = sim.config

        total = float(ms) / 1000.0
        if not sim.is_running or not total > 0:
            await asyncio.sleep(0)
            return

        clock = asyncio.get_running_loop()
        elapsed = 0.0
        while sim.is_running and elapsed < total:
            if sim.is_paused:
                await asyncio.sleep(config.pause_frame)
                continue

            epoch = sim.pause_epoch
            start = clock.time()
            await asyncio.sleep(min(config.delay_poll, total - elapsed))
            if sim.pause_epoch == epoch and not sim.is_paused:
                elapsed += clock.time() - start

    async def delay_microseconds(self, us: Any) -> None:
        await self.delay(float(us) / 1000.0)

    def millis(self) -> int:
        self._check_halted()
        return int((time.monotonic() - self._started_at) * 1000)

    def micros(self) -> int:
        self._check_halted()
        return int((time.monotonic() - self._started_at) * 1_000_000)

    async def checkpoint(self) -> None:
        """
        Suspension point injected at the top of every loop body.

        Raises ExecutionHalted for a halted run, holds while paused, and
        yields to the event loop every checkpoint_interval calls.
        """
        self._check_halted()
        sim = self._sim
        while sim.is_paused:
            await asyncio.sleep(sim.config.pause_frame)
            self._check_halted()

        self._ticks += 1
        if self._ticks >= sim.config.checkpoint_interval:
            self._ticks = 0
            await asyncio.sleep(0)

    # =========================================================================
    # Random Numbers
    # =========================================================================

    def random(self, a: Any, b: Any = None) -> int:
        """
        random(max) -> [0, max); random(min, max) -> [min, max).

        An empty range returns its lower bound.
        """
        self._check_halted()
        low, high = (0, int(a)) if b is None else (int(a), int(b))
        if high <= low:
            return low
        return self.rng.randrange(low, high)

    def random_seed(self, seed: Any) -> None:
        self._check_halted()
        self.rng.seed(int(seed))

    # =========================================================================
    # Math Helpers
    # =========================================================================

    def map_range(self, value: Any, from_low: Any, from_high: Any, to_low: Any, to_high: Any) -> Any:
        """Arduino map(): linear re-mapping with integer truncation for ints."""
        self._check_halted()
        return self.div((value - from_low) * (to_high - to_low), from_high - from_low) + to_low

    def constrain(self, value: Any, low: Any, high: Any) -> Any:
        self._check_halted()
        if value < low:
            return low
        if value > high:
            return high
        return value

    def min(self, a: Any, b: Any) -> Any:
        return a if a < b else b

    def max(self, a: Any, b: Any) -> Any:
        return a if a > b else b

    def abs(self, value: Any) -> Any:
        return -value if value < 0 else value

    def sqrt(self, value: Any) -> float:
        return math.sqrt(value) if value >= 0 else math.nan

    def pow(self, base: Any, exponent: Any) -> float:
        return math.pow(base, exponent)

    def sin(self, value: Any) -> float:
        return math.sin(value)

    def cos(self, value: Any) -> float:
        return math.cos(value)

    def tan(self, value: Any) -> float:
        return math.tan(value)

    # =========================================================================
    # Serial
    # =========================================================================

    def serial_begin(self, baud: Any = 9600) -> None:
        self._check_halted()
        logger.debug("Serial.begin(%s)", baud)

    def serial_print(self, value: Any = "", fmt: Optional[Any] = None) -> None:
        self._check_halted()
        self._serial_buffer.append(self.format_value(value, fmt))

    def serial_println(self, value: Any = "", fmt: Optional[Any] = None) -> None:
        """Emit the buffered text plus ``value`` as one output log entry."""
        self._check_halted()
        self._serial_buffer.append(self.format_value(value, fmt))
        line = "".join(self._serial_buffer)
        self._serial_buffer.clear()
        self._sim.log.append(line)

    @staticmethod
    def format_value(value: Any, fmt: Optional[Any] = None) -> str:
        """
        Format a value the way Serial.print does.

        Floats print with 2 decimals, or ``fmt`` decimals when given.
        Integers print in base ``fmt`` (DEC, HEX, OCT, BIN); negative
        values in a non-decimal base print as 32-bit two's complement.
        """
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, float):
            digits = 2 if fmt is None else max(0, int(fmt))
            return f"{value:.{digits}f}"
        if isinstance(value, int):
            base = 10 if fmt is None else int(fmt)
            if base == 10 or base not in _NUMBER_BASES:
                return str(value)
            if value < 0:
                value &= 0xFFFFFFFF
            return format(value, _NUMBER_BASES[base])
        return str(value)

    # =========================================================================
    # C Semantics Helpers (used by generated code)
    # =========================================================================

    @staticmethod
    def div(a: Any, b: Any) -> Any:
        """'/' with C semantics: truncation toward zero for two integers."""
        if isinstance(a, int) and isinstance(b, int):
            if b == 0:
                raise ZeroDivisionError("integer division by zero")
            quotient = abs(a) // abs(b)
            return quotient if (a < 0) == (b < 0) else -quotient
        if b == 0:
            if a == 0 or math.isnan(a):
                return math.nan
            return math.copysign(math.inf, a) * math.copysign(1.0, b)
        return a / b

    @classmethod
    def mod(cls, a: Any, b: Any) -> Any:
        """'%' with C semantics: the result takes the sign of the dividend."""
        if isinstance(a, int) and isinstance(b, int):
            return a - b * cls.div(a, b)
        return math.fmod(a, b)

    @staticmethod
    def to_int(value: Any) -> int:
        """Coerce a value assigned to an integer variable (truncates floats)."""
        if isinstance(value, str) and len(value) == 1:
            return ord(value)
        return int(value)

    @classmethod
    def concat(cls, a: Any, b: Any) -> str:
        """String '+': the non-string side is formatted as Serial.print would."""
        left = a if isinstance(a, str) else cls.format_value(a)
        right = b if isinstance(b, str) else cls.format_value(b)
        return left + right

    @staticmethod
    def store(target: Any, index: Any, value: Any) -> Any:
        """Assign ``target[index] = value`` and return ``value``."""
        target[index] = value
        return value
