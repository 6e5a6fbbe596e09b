"""
Arduino Simulator - Test Configuration
======================================

Shared fixtures for the test suite:

- fast_config: SimulatorConfig with millisecond polling so runs stay short
- recorder: Collects on_pin_change and on_log callbacks
- sim: Simulator wired to the recorder
- run_sketch: Runs a sketch until a condition holds (or a time limit),
  then stops it and waits for the run to unwind
"""

import asyncio
from typing import Callable, Optional

import pytest

from arduino_sim.config import SimulatorConfig
from arduino_sim.runtime.log import LogEntry, LogKind
from arduino_sim.runtime.simulator import Simulator


# ═══════════════════════════════════════════════════════════════════════════════
# CALLBACK RECORDER
# ═══════════════════════════════════════════════════════════════════════════════


class Recorder:
    """Records every pin change and log entry a Simulator reports."""

    def __init__(self) -> None:
        self.pins: list[tuple] = []
        self.entries: list[LogEntry] = []

    def on_pin_change(self, pin, digital: int, pwm: int) -> None:
        self.pins.append((pin, digital, pwm))

    def on_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def messages(self, kind: Optional[LogKind] = None) -> list[str]:
        return [e.message for e in self.entries if kind is None or e.kind is kind]

    def outputs(self) -> list[str]:
        return self.messages(LogKind.OUTPUT)

    def errors(self) -> list[str]:
        return self.messages(LogKind.ERROR)


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def fast_config() -> SimulatorConfig:
    """Fixture: configuration with 1ms polling and a fixed random seed."""
    return SimulatorConfig(
        delay_poll_ms=1,
        pause_frame_ms=1,
        pause_poll_ms=1,
        loop_yield_ms=1,
        checkpoint_interval=10,
        random_seed=1234,
        sketch_name="test.ino",
    )


@pytest.fixture
def recorder() -> Recorder:
    """Fixture: fresh callback recorder."""
    return Recorder()


@pytest.fixture
def sim(fast_config: SimulatorConfig, recorder: Recorder) -> Simulator:
    """Fixture: Simulator reporting to the recorder."""
    return Simulator(fast_config, on_pin_change=recorder.on_pin_change, on_log=recorder.on_log)


@pytest.fixture
def run_sketch(sim: Simulator):
    """
    Fixture: coroutine that runs a sketch on ``sim``.

    Usage:
        await run_sketch(source, until=lambda: ..., timeout=2.0)

    The run is stopped when ``until`` returns True or ``timeout`` seconds
    pass, whichever comes first. Returns the simulator.
    """

    async def run(
        source: str,
        until: Optional[Callable[[], bool]] = None,
        timeout: float = 2.0,
    ) -> Simulator:
        loop = asyncio.get_running_loop()
        task = asyncio.create_task(sim.run(source))
        deadline = loop.time() + timeout
        while not task.done() and loop.time() < deadline:
            if until is not None and until():
                break
            await asyncio.sleep(0.002)
        if not task.done():
            sim.stop()
        await asyncio.wait_for(task, timeout=2.0)
        return sim

    return run
