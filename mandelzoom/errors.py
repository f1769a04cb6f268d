"""
Exception types raised by the compute and color pipeline.

- BackendUnavailable: the requested hardware or library is missing.
  Recoverable, the caller falls back to another backend.
- BackendInitError: compilation or allocation failed. Fatal at startup.
- ComputeError: a dispatch failed on the device. The renderer retries once
  and then falls back to sequential evaluation.
- InvalidViewport: a viewport violates its invariants. Caller bug.
"""


class MandelzoomError(Exception):
    """Base class for all errors raised by this package."""


class BackendError(MandelzoomError):
    """An error tied to a specific compute backend."""

    stage = "backend"

    def __init__(self, backend, reason):
        self.backend = backend
        self.reason = reason
        super().__init__(f"[{backend}] {self.stage}: {reason}")


class BackendUnavailable(BackendError):
    stage = "availability"


class BackendInitError(BackendError):
    stage = "initialization"


class ComputeError(BackendError):
    stage = "dispatch"


class InvalidViewport(MandelzoomError, ValueError):
    """Raised when viewport bounds or dimensions are malformed."""
