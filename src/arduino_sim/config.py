"""
Arduino Simulator - Configuration
=================================

Timing and behaviour settings for a simulator session. Configuration can
come from:
- Default values (defined here)
- Explicit construction: ``SimulatorConfig(delay_poll_ms=5)``
- Environment variables via ``SimulatorConfig.from_env()``

All timing values are in wall-clock milliseconds. The defaults give a
cancellation latency of roughly one delay poll (10ms) while keeping the
host event loop responsive.
"""

from dataclasses import dataclass, replace
from typing import Optional
import os


@dataclass(frozen=True)
class SimulatorConfig:
    """
    Configuration for a Simulator session.

    Attributes:
        delay_poll_ms: Slice length used while a delay() is counting down.
                       Bounds how quickly stop() is noticed inside a delay.
        pause_frame_ms: Poll interval of a delay() while the run is paused
                        (roughly one animation frame).
        pause_poll_ms: Poll interval of the scheduler between loop()
                       iterations while the run is paused.
        loop_yield_ms: Sleep after every loop() iteration, even when the
                       sketch never delays.
        checkpoint_interval: Loop back-edges executed between forced
                             yields to the event loop.
        random_seed: Seed for random(); None seeds from system entropy.
        sketch_name: Filename used in error locations.

    Example:
        >>> config = SimulatorConfig(loop_yield_ms=1)
        >>> config = SimulatorConfig.from_env()
    """
    delay_poll_ms: float = 10.0
    pause_frame_ms: float = 16.0
    pause_poll_ms: float = 100.0
    loop_yield_ms: float = 10.0
    checkpoint_interval: int = 1000
    random_seed: Optional[int] = None
    sketch_name: str = "sketch.ino"

    def __post_init__(self):
        for name in ("delay_poll_ms", "pause_frame_ms", "pause_poll_ms", "loop_yield_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be at least 1")

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls, base: Optional["SimulatorConfig"] = None) -> "SimulatorConfig":
        """
        Create a SimulatorConfig from environment variables.

        Environment variables (all optional):
            ARDSIM_DELAY_POLL_MS: delay() slice length
            ARDSIM_PAUSE_FRAME_MS: delay() poll while paused
            ARDSIM_PAUSE_POLL_MS: scheduler poll while paused
            ARDSIM_LOOP_YIELD_MS: sleep between loop() iterations
            ARDSIM_CHECKPOINT_INTERVAL: back-edges between forced yields
            ARDSIM_RANDOM_SEED: integer seed for random()

        Args:
            base: Configuration to start from (defaults to SimulatorConfig())

        Returns:
            SimulatorConfig with values from environment variables

        Raises:
            ValueError: If a variable holds a value of the wrong type
        """
        config = base or cls()
        overrides = {}

        float_vars = {
            "ARDSIM_DELAY_POLL_MS": "delay_poll_ms",
            "ARDSIM_PAUSE_FRAME_MS": "pause_frame_ms",
            "ARDSIM_PAUSE_POLL_MS": "pause_poll_ms",
            "ARDSIM_LOOP_YIELD_MS": "loop_yield_ms",
        }
        for var, field_name in float_vars.items():
            if value := os.environ.get(var):
                overrides[field_name] = _parse_env(var, value, float)

        if value := os.environ.get("ARDSIM_CHECKPOINT_INTERVAL"):
            overrides["checkpoint_interval"] = _parse_env("ARDSIM_CHECKPOINT_INTERVAL", value, int)

        if value := os.environ.get("ARDSIM_RANDOM_SEED"):
            overrides["random_seed"] = _parse_env("ARDSIM_RANDOM_SEED", value, int)

        return replace(config, **overrides)

    # ═══════════════════════════════════════════════════════════════════════════
    # HELPER PROPERTIES (seconds, for asyncio.sleep)
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def delay_poll(self) -> float:
        return self.delay_poll_ms / 1000.0

    @property
    def pause_frame(self) -> float:
        return self.pause_frame_ms / 1000.0

    @property
    def pause_poll(self) -> float:
        return self.pause_poll_ms / 1000.0

    @property
    def loop_yield(self) -> float:
        return self.loop_yield_ms / 1000.0


def _parse_env(var: str, value: str, kind: type):
    try:
        return kind(value)
    except ValueError:
        raise ValueError(f"{var} must be {kind.__name__}, got {value!r}") from None
