"""
Simulated Board Runtime
=======================

The pin bank, the event log, the primitive library that sketches call
through ``_rt``, and the Simulator that schedules a sketch's coroutines.
"""

from arduino_sim.runtime.pins import PinBank, Pin, PinMode, PinLabel, ALL_PINS
from arduino_sim.runtime.log import EventLog, LogEntry, LogKind
from arduino_sim.runtime.primitives import PrimitiveLibrary
from arduino_sim.runtime.simulator import Simulator, ExecutionState

__all__ = [
    "PinBank",
    "Pin",
    "PinMode",
    "PinLabel",
    "ALL_PINS",
    "EventLog",
    "LogEntry",
    "LogKind",
    "PrimitiveLibrary",
    "Simulator",
    "ExecutionState",
]
