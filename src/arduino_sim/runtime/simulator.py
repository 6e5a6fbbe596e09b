"""
Simulator Session - Execution Scheduler
=======================================

This module provides the `Simulator` class, which owns one simulator
session: the pin bank, the event log, the primitive library, and the
execution state machine that runs a transformed sketch on the asyncio
event loop.

State Machine
-------------
    IDLE ──run()──> RUNNING <──resume()── PAUSED
                       │  └────pause()────────^
                       └──stop()──> STOPPED ──run()──> RUNNING

STOPPED and IDLE both accept a new run(). pause() and resume() are no-ops
outside the state they leave from. stop() always applies.

Run Sequence
------------
1. Stop any run in progress and wait for it to finish unwinding
2. Reset the pins, log "Compiling..."
3. Transform the sketch (errors are logged and the session stops)
4. Log "Upload execution started." and await setup() once
5. Await loop() repeatedly until stopped, sleeping loop_yield between
   iterations and pause_poll while paused

Nothing raised by the sketch reaches the caller of run(): every failure
becomes an ``error`` log entry followed by stop(). The only exception that
propagates is asyncio.CancelledError when the task running run() is
itself cancelled, and the session is stopped first.

Example usage:

    >>> import asyncio
    >>> from arduino_sim import Simulator
    >>> sim = Simulator(on_pin_change=lambda pin, value, pwm: print(pin, value, pwm))
    >>> async def main():
    ...     task = asyncio.create_task(sim.run(BLINK))
    ...     await asyncio.sleep(2)
    ...     sim.stop()
    ...     await task
    >>> asyncio.run(main())
"""

from enum import Enum, auto
from typing import Callable, Optional
import asyncio
import logging

from arduino_sim.config import SimulatorConfig
from arduino_sim.errors import (
    MalformedSourceError,
    RuntimeExecutionError,
    MissingEntryPoint,
    InvalidPinAccess,
    ExecutionHalted,
)
from arduino_sim.dialect.transformer import ExecutableUnit, translate
from arduino_sim.runtime.log import EventLog, LogCallback
from arduino_sim.runtime.pins import PinBank, PinLabel, ANALOG_MAX
from arduino_sim.runtime.primitives import PrimitiveLibrary

logger = logging.getLogger(__name__)

PinChangeCallback = Callable[[PinLabel, int, int], None]


class ExecutionState(Enum):
    """Lifecycle state of a simulator session."""
    IDLE = auto()       # Created, never run
    RUNNING = auto()    # setup() or loop() in progress
    PAUSED = auto()     # Run suspended at a delay or checkpoint
    STOPPED = auto()    # Stopped by the user or by an error


class Simulator:
    """
    One simulator session.

    Attributes:
        config: Timing and behaviour settings
        pins: The simulated pin bank
        log: The user-facing event log
        primitives: Built-ins bound to this session (the ``_rt`` of sketches)
        on_pin_change: Called as on_pin_change(label, digital, pwm)
        unit: Executable unit of the run in progress, if any

    Example:
        >>> sim = Simulator(SimulatorConfig(loop_yield_ms=1))
        >>> sim.state
        <ExecutionState.IDLE: 1>
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        on_pin_change: Optional[PinChangeCallback] = None,
        on_log: Optional[LogCallback] = None,
    ):
        self.config = config or SimulatorConfig()
        self.on_pin_change = on_pin_change
        self.pins = PinBank()
        self.log = EventLog(on_log)
        self.primitives = PrimitiveLibrary(self)
        self.unit: Optional[ExecutableUnit] = None

        self._state = ExecutionState.IDLE
        self._pause_epoch = 0
        self._run_active = False
        self._run_done: Optional[asyncio.Event] = None

    # =========================================================================
    # State Inspection
    # =========================================================================

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def is_running(self) -> bool:
        """True while a run is RUNNING or PAUSED."""
        return self._state in (ExecutionState.RUNNING, ExecutionState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self._state is ExecutionState.PAUSED

    @property
    def halted(self) -> bool:
        """True when a run is still unwinding after stop()."""
        return self._run_active and self._state is ExecutionState.STOPPED

    @property
    def pause_epoch(self) -> int:
        """Incremented on every pause(); lets delay() detect pauses."""
        return self._pause_epoch

    @property
    def on_log(self) -> Optional[LogCallback]:
        return self.log.on_log

    @on_log.setter
    def on_log(self, callback: Optional[LogCallback]) -> None:
        self.log.on_log = callback

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self, source: str) -> None:
        """
        Transform and run a sketch until it is stopped.

        A run already in progress is stopped first, and this call waits for
        it to finish unwinding before the new run starts.

        Args:
            source: Sketch source text
        """
        while self._run_active:
            if self.is_running:
                self.stop()
            await self._run_done.wait()

        done = asyncio.Event()
        self._run_done = done
        self._run_active = True
        try:
            await self._execute(source)
        except asyncio.CancelledError:
            if self._state is not ExecutionState.STOPPED:
                self.stop()
            raise
        finally:
            self._run_active = False
            self.unit = None
            done.set()
            logger.info("run finished")

    async def _execute(self, source: str) -> None:
        self._state = ExecutionState.RUNNING
        self.primitives.begin_run()
        self.pins.reset()
        self.log.system("Compiling...")
        logger.info("run started")

        try:
            unit = translate(source, self.config.sketch_name).load(self.primitives)
        except MalformedSourceError as e:
            self.log.error(str(e))
            self.stop()
            return

        self.unit = unit
        self.log.system("Upload execution started.")

        if unit.setup is None:
            logger.warning("sketch has no setup() function")
        elif not await self._invoke(unit.setup, "setup"):
            return

        if not self.is_running:
            return

        if unit.loop is None:
            self.log.error(str(MissingEntryPoint()))
            self.stop()
            return

        while self.is_running:
            if self.is_paused:
                await asyncio.sleep(self.config.pause_poll)
                continue
            if not await self._invoke(unit.loop, "loop"):
                return
            await asyncio.sleep(self.config.loop_yield)

    async def _invoke(self, routine, name: str) -> bool:
        """
        Await one entry point.

        Returns:
            False if the run must end (halted or failed)
        """
        try:
            await routine()
        except ExecutionHalted:
            logger.debug("%s() unwound after stop", name)
            return False
        except Exception as e:
            error = RuntimeExecutionError(name, e)
            error.__cause__ = e
            self.log.error(str(error))
            logger.debug("%s() raised", name, exc_info=e)
            self.stop()
            return False
        return True

    # =========================================================================
    # Control
    # =========================================================================

    def pause(self) -> None:
        """Pause a RUNNING session; no-op in any other state."""
        if self._state is not ExecutionState.RUNNING:
            return
        self._state = ExecutionState.PAUSED
        self._pause_epoch += 1
        self.log.system("Execution paused.")
        logger.debug("state -> PAUSED")

    def resume(self) -> None:
        """Resume a PAUSED session; no-op in any other state."""
        if self._state is not ExecutionState.PAUSED:
            return
        self._state = ExecutionState.RUNNING
        self.log.system("Execution resumed.")
        logger.debug("state -> RUNNING")

    def stop(self) -> None:
        """Stop unconditionally, reset the pins and report every pin as 0."""
        self._state = ExecutionState.STOPPED
        self.log.system("Execution stopped.")
        logger.debug("state -> STOPPED")
        self.pins.reset()
        if self.on_pin_change:
            for label in self.pins.labels:
                self.on_pin_change(label, 0, 0)

    def reset_pins(self) -> None:
        """Reset the pin bank without changing the execution state."""
        self.pins.reset()

    def clear_log(self) -> None:
        self.log.clear()

    def set_input(self, pin: PinLabel, value: Optional[int]) -> None:
        """
        Drive an input level read by digitalRead()/analogRead().

        Args:
            pin: Pin label
            value: Reading 0-1023 (clamped), or None to leave the pin floating

        Raises:
            InvalidPinAccess: If the pin does not exist
        """
        if pin not in self.pins:
            raise InvalidPinAccess(pin)
        state = self.pins.get(pin)
        state.input_value = None if value is None else max(0, min(ANALOG_MAX, int(value)))

    def __repr__(self) -> str:
        return f"Simulator(state={self._state.name})"
