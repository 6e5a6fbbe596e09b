# =============================================================================
# test_config.py - Simulator Configuration Tests
# =============================================================================
# Tests for SimulatorConfig defaults, validation and ARDSIM_* environment
# overrides.
# =============================================================================

from dataclasses import FrozenInstanceError

import pytest
from arduino_sim.config import SimulatorConfig


ENV_VARS = (
    "ARDSIM_DELAY_POLL_MS",
    "ARDSIM_PAUSE_FRAME_MS",
    "ARDSIM_PAUSE_POLL_MS",
    "ARDSIM_LOOP_YIELD_MS",
    "ARDSIM_CHECKPOINT_INTERVAL",
    "ARDSIM_RANDOM_SEED",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Fixture: no ARDSIM_* variables set."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


# =============================================================================
# Defaults and Validation
# =============================================================================

class TestDefaults:
    """Default values and construction checks."""

    def test_defaults(self):
        config = SimulatorConfig()
        assert config.delay_poll_ms == 10
        assert config.pause_frame_ms == 16
        assert config.pause_poll_ms == 100
        assert config.loop_yield_ms == 10
        assert config.checkpoint_interval == 1000
        assert config.random_seed is None
        assert config.sketch_name == "sketch.ino"

    def test_seconds_properties(self):
        config = SimulatorConfig(delay_poll_ms=20, pause_poll_ms=250)
        assert config.delay_poll == pytest.approx(0.02)
        assert config.pause_poll == pytest.approx(0.25)

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            SimulatorConfig().loop_yield_ms = 1

    def test_negative_timing_rejected(self):
        with pytest.raises(ValueError, match="delay_poll_ms"):
            SimulatorConfig(delay_poll_ms=-1)

    def test_zero_checkpoint_interval_rejected(self):
        with pytest.raises(ValueError, match="checkpoint_interval"):
            SimulatorConfig(checkpoint_interval=0)


# =============================================================================
# Environment Overrides
# =============================================================================

class TestFromEnv:
    """SimulatorConfig.from_env()."""

    def test_no_variables(self, clean_env):
        assert SimulatorConfig.from_env() == SimulatorConfig()

    def test_overrides(self, clean_env):
        clean_env.setenv("ARDSIM_DELAY_POLL_MS", "2.5")
        clean_env.setenv("ARDSIM_CHECKPOINT_INTERVAL", "50")
        clean_env.setenv("ARDSIM_RANDOM_SEED", "42")
        config = SimulatorConfig.from_env()
        assert config.delay_poll_ms == 2.5
        assert config.checkpoint_interval == 50
        assert config.random_seed == 42
        assert config.pause_poll_ms == 100

    def test_base_config_kept(self, clean_env):
        clean_env.setenv("ARDSIM_LOOP_YIELD_MS", "1")
        config = SimulatorConfig.from_env(SimulatorConfig(sketch_name="blink.ino"))
        assert config.sketch_name == "blink.ino"
        assert config.loop_yield_ms == 1

    def test_invalid_value_names_variable(self, clean_env):
        clean_env.setenv("ARDSIM_RANDOM_SEED", "lucky")
        with pytest.raises(ValueError, match="ARDSIM_RANDOM_SEED"):
            SimulatorConfig.from_env()
