"""Configuration from environment variables.

Like a Unix process, the library takes its settings from ``KEY=VALUE``
string pairs.  Only three keys are recognised:

- ``POSIX_MQ_BACKEND`` — ``native`` (librt, the default) or
  ``simulated`` (an in-memory kernel, handy for tests and demos).
- ``POSIX_MQ_LIBRARY`` — name of the shared library to load
  (default ``rt``).
- ``POSIX_MQ_LOG_CAPACITY`` — how many audit log entries to keep.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

ENV_BACKEND = "POSIX_MQ_BACKEND"
ENV_LIBRARY = "POSIX_MQ_LIBRARY"
ENV_LOG_CAPACITY = "POSIX_MQ_LOG_CAPACITY"


class Backend(StrEnum):
    """Which implementation of the queue primitives to use."""

    NATIVE = "native"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class MqConfig:
    """Resolved library settings."""

    backend: Backend = Backend.NATIVE
    library: str = "rt"
    log_capacity: int = 1024

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "MqConfig":
        """Build a config from an environment mapping.

        Missing keys fall back to the defaults.

        Args:
            environ: The variables to read (usually ``os.environ``).

        Raises:
            ValueError: If the backend is unknown or the log capacity is
                not a positive integer.

        """
        raw_backend = environ.get(ENV_BACKEND, Backend.NATIVE.value).strip().lower()
        try:
            backend = Backend(raw_backend)
        except ValueError:
            choices = ", ".join(b.value for b in Backend)
            msg = f"Unknown {ENV_BACKEND} '{raw_backend}' (expected one of: {choices})"
            raise ValueError(msg) from None

        library = environ.get(ENV_LIBRARY, "").strip() or cls.library

        raw_capacity = environ.get(ENV_LOG_CAPACITY)
        capacity = cls.log_capacity
        if raw_capacity is not None:
            try:
                capacity = int(raw_capacity)
            except ValueError:
                msg = f"{ENV_LOG_CAPACITY} must be an integer, got '{raw_capacity}'"
                raise ValueError(msg) from None
            if capacity < 1:
                msg = f"{ENV_LOG_CAPACITY} must be positive, got {capacity}"
                raise ValueError(msg)

        return cls(backend=backend, library=library, log_capacity=capacity)


def load_config() -> MqConfig:
    """Return the config described by the current process environment."""
    return MqConfig.from_environ(os.environ)
