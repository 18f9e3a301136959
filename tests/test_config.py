"""Tests for environment-driven configuration."""

import pytest

from posix_mq.adapter import build_adapter, get_default_adapter, set_default_adapter
from posix_mq.config import (
    ENV_BACKEND,
    ENV_LIBRARY,
    ENV_LOG_CAPACITY,
    Backend,
    MqConfig,
    load_config,
)
from posix_mq.simulated import SimulatedKernel

CUSTOM_CAPACITY = 16


class TestMqConfig:
    """Verify parsing of configuration variables."""

    def test_defaults(self) -> None:
        """An empty environment yields the defaults."""
        config = MqConfig.from_environ({})
        assert config == MqConfig()
        assert config.backend is Backend.NATIVE
        assert config.library == "rt"

    def test_simulated_backend(self) -> None:
        """The backend name is case-insensitive."""
        config = MqConfig.from_environ({ENV_BACKEND: " Simulated "})
        assert config.backend is Backend.SIMULATED

    def test_unknown_backend(self) -> None:
        """An unknown backend is a configuration error."""
        with pytest.raises(ValueError, match="Unknown POSIX_MQ_BACKEND"):
            MqConfig.from_environ({ENV_BACKEND: "redis"})

    def test_library_override(self) -> None:
        """The library name can be overridden; blank means default."""
        assert MqConfig.from_environ({ENV_LIBRARY: "c"}).library == "c"
        assert MqConfig.from_environ({ENV_LIBRARY: "  "}).library == "rt"

    def test_log_capacity(self) -> None:
        """The log capacity is parsed as an int."""
        config = MqConfig.from_environ({ENV_LOG_CAPACITY: str(CUSTOM_CAPACITY)})
        assert config.log_capacity == CUSTOM_CAPACITY

    @pytest.mark.parametrize("raw", ["zero", "0", "-5"])
    def test_bad_log_capacity(self, raw: str) -> None:
        """Non-numeric or non-positive capacities are rejected."""
        with pytest.raises(ValueError, match=ENV_LOG_CAPACITY):
            MqConfig.from_environ({ENV_LOG_CAPACITY: raw})

    def test_load_config_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """load_config looks at os.environ."""
        monkeypatch.setenv(ENV_BACKEND, "simulated")
        assert load_config().backend is Backend.SIMULATED


class TestDefaultAdapter:
    """Verify the lazily built, shared adapter."""

    def test_build_simulated(self) -> None:
        """The simulated backend builds an in-memory kernel."""
        adapter = build_adapter(MqConfig(backend=Backend.SIMULATED))
        assert isinstance(adapter, SimulatedKernel)

    def test_default_is_built_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The first call builds the adapter, later calls reuse it."""
        monkeypatch.setenv(ENV_BACKEND, "simulated")
        set_default_adapter(None)
        first = get_default_adapter()
        assert isinstance(first, SimulatedKernel)
        assert get_default_adapter() is first

    def test_default_can_be_replaced(self, kernel: SimulatedKernel) -> None:
        """set_default_adapter installs a specific adapter."""
        set_default_adapter(kernel)
        assert get_default_adapter() is kernel
