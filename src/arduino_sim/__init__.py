"""
Arduino Sketch Simulator
========================

Runs Arduino sketches written in a C-like dialect on a simulated board,
without hardware.

A sketch is translated into a Python module of coroutines: every function
becomes ``async def``, ``delay()`` becomes an awaited primitive, and loop
bodies get cooperative checkpoints. The scheduler then awaits ``setup()``
once and ``loop()`` repeatedly on the asyncio event loop, where it can be
paused, resumed and stopped at any time.

Main Components
---------------
- **dialect**: Sketch transformer
    Preprocessor, lexer, parser and Python emitter

- **runtime**: Simulated board
    Pin bank, event log, primitive library and the Simulator scheduler

- **sketches**: Built-in example sketches

- **cli**: The ``ardsim`` command

Quick Start
-----------
Run a sketch for two seconds:
    >>> import asyncio
    >>> from arduino_sim import Simulator
    >>> from arduino_sim.sketches import BLINK
    >>> sim = Simulator(on_pin_change=lambda pin, value, pwm: print(pin, value))
    >>> async def main():
    ...     task = asyncio.create_task(sim.run(BLINK))
    ...     await asyncio.sleep(2)
    ...     sim.stop()
    ...     await task
    >>> asyncio.run(main())

See the generated Python:
    >>> from arduino_sim import translate
    >>> print(translate(BLINK).python_source)

Or use the command-line tool:
    $ ardsim run --template blink
    $ ardsim transpile blink.ino
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from arduino_sim.config import SimulatorConfig
from arduino_sim.errors import (
    SimulatorError,
    SourceLocation,
    MalformedSourceError,
    SketchSyntaxError,
    PreprocessorError,
    RuntimeExecutionError,
    InvalidPinAccess,
    MissingEntryPoint,
    ExecutionHalted,
)
from arduino_sim.dialect import (
    ExecutableUnit,
    Translation,
    translate,
    transform,
)
from arduino_sim.runtime import (
    Simulator,
    ExecutionState,
    PinBank,
    PinMode,
    EventLog,
    LogEntry,
    LogKind,
    PrimitiveLibrary,
)

__all__ = [
    "__version__",
    # Configuration
    "SimulatorConfig",
    # Exception hierarchy
    "SimulatorError",
    "SourceLocation",
    "MalformedSourceError",
    "SketchSyntaxError",
    "PreprocessorError",
    "RuntimeExecutionError",
    "InvalidPinAccess",
    "MissingEntryPoint",
    "ExecutionHalted",
    # Transformer
    "ExecutableUnit",
    "Translation",
    "translate",
    "transform",
    # Runtime
    "Simulator",
    "ExecutionState",
    "PinBank",
    "PinMode",
    "EventLog",
    "LogEntry",
    "LogKind",
    "PrimitiveLibrary",
]
