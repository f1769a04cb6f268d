"""
Compute backends: dispatch the escape-time kernel over a whole viewport.

Every backend follows the same contract:

    backend = NumbaBackend()
    handle = backend.configure(viewport, iter_limit)
    buffer = backend.dispatch(handle)          # 1D uint32, row-major
    backend.update_viewport(handle, viewport.zoom(400, 300, 0.9))
    buffer = backend.dispatch(handle)
    backend.close()

Available backends:
- "sequential": single-threaded Numba loop, always available (fallback)
- "numba": Numba prange kernel spread over the CPU cores
- "torch": PyTorch tensors on a CUDA or Apple Silicon GPU (compute_gpu.py)
"""

import logging
import time

import numpy as np
from numba.core.errors import NumbaError

from .compute import (
    check_iter_limit,
    compute_escape_times,
    compute_escape_times_serial,
)
from .errors import BackendInitError, BackendUnavailable, ComputeError, InvalidViewport
from .viewport import Viewport

logger = logging.getLogger(__name__)


class BackendHandle:
    """
    Resources a backend allocated for one viewport size.

    The handle is read-only for callers; only the owning backend rebinds
    its viewport (ComputeBackend.update_viewport) or releases it.
    """

    def __init__(self, backend, viewport, iter_limit, state=None):
        self._backend = backend
        self._viewport = viewport
        self._iter_limit = iter_limit
        self._state = state
        self._released = False

    @property
    def backend(self):
        return self._backend

    @property
    def viewport(self):
        return self._viewport

    @property
    def iter_limit(self):
        return self._iter_limit

    @property
    def size(self):
        return self._viewport.size

    @property
    def released(self):
        return self._released

    def __repr__(self):
        state = "released" if self._released else "live"
        return (f"<BackendHandle {self._backend.name} {self._viewport!r} "
                f"iter_limit={self._iter_limit} {state}>")


class ComputeBackend:
    """
    Base class for compute backends.

    Subclasses implement _allocate (build per-handle state), _rebind
    (point existing state at new bounds) and _run (produce the 2D result).
    """

    name = "base"
    parallel = False

    def __init__(self):
        self._handles = []
        self._closed = False

    def describe(self):
        """Return a string describing the compute device."""
        return self.name

    def configure(self, viewport, iter_limit):
        """
        Allocate resources for evaluating viewport at iter_limit.

        Raises:
            BackendUnavailable: The backend cannot run on this machine
            BackendInitError: Compilation or allocation failed
            InvalidViewport: viewport is not a Viewport
            ValueError: iter_limit is not a positive integer
        """
        if self._closed:
            raise BackendInitError(self.name, "backend has been closed")
        _check_viewport(viewport)
        iter_limit = check_iter_limit(iter_limit)
        state = self._allocate(viewport, iter_limit)
        handle = BackendHandle(self, viewport, iter_limit, state)
        self._handles.append(handle)
        logger.debug("Configured %s for %r", self.name, viewport)
        return handle

    def dispatch(self, handle):
        """
        Evaluate every pixel of the handle's viewport. Blocks until done.

        Returns:
            1D numpy uint32 array of width * height iteration counts,
            index = row * width + col.

        Raises:
            ComputeError: The device failed during evaluation
        """
        self._check_handle(handle)
        start = time.perf_counter()
        result = self._run(handle)
        buffer = np.ascontiguousarray(result, dtype=np.uint32).reshape(-1)
        logger.debug("%s dispatch of %dx%d took %.1f ms", self.name,
                     handle.viewport.width, handle.viewport.height,
                     (time.perf_counter() - start) * 1000)
        return buffer

    def update_viewport(self, handle, viewport):
        """
        Rebind the handle to new bounds without re-initializing the backend.

        If the pixel dimensions change, the handle's buffers are reallocated.
        """
        self._check_handle(handle)
        _check_viewport(viewport)
        old = handle.viewport
        if (old.width, old.height) == (viewport.width, viewport.height):
            self._rebind(handle._state, viewport)
        else:
            self._free(handle._state)
            handle._state = self._allocate(viewport, handle.iter_limit)
        handle._viewport = viewport

    def release(self, handle):
        """Free the resources held by a handle. Safe to call twice."""
        if handle._released:
            return
        self._free(handle._state)
        handle._state = None
        handle._released = True
        if handle in self._handles:
            self._handles.remove(handle)

    def close(self):
        """Release every live handle. The backend cannot be configured again."""
        for handle in list(self._handles):
            self.release(handle)
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _check_handle(self, handle):
        if not isinstance(handle, BackendHandle) or handle.backend is not self:
            raise ValueError(f"handle {handle!r} does not belong to backend {self.name}")
        if handle.released:
            raise ValueError(f"handle {handle!r} has been released")

    def _allocate(self, viewport, iter_limit):
        return None

    def _rebind(self, state, viewport):
        pass

    def _free(self, state):
        pass

    def _run(self, handle):
        raise NotImplementedError


class _NumbaKernelBackend(ComputeBackend):
    """Shared logic for the two Numba backends; subclasses pick the kernel."""

    kernel = None
    _compiled = False

    def _allocate(self, viewport, iter_limit):
        # Compile once per process, on a tiny grid, so failures surface here
        if not type(self)._compiled:
            try:
                self.kernel(-2.0, 1.0, -1.0, 1.0, 4, 4, 4)
            except NumbaError as exc:
                raise BackendInitError(self.name, f"kernel compilation failed: {exc}") from exc
            type(self)._compiled = True
        return None

    def _run(self, handle):
        vp = handle.viewport
        try:
            return self.kernel(vp.re_min, vp.re_max, vp.im_min, vp.im_max,
                               vp.width, vp.height, handle.iter_limit)
        except (MemoryError, RuntimeError) as exc:
            raise ComputeError(self.name, str(exc)) from exc


class SequentialBackend(_NumbaKernelBackend):
    """One pixel at a time on the calling thread. The fallback of last resort."""

    name = "sequential"
    parallel = False
    kernel = staticmethod(compute_escape_times_serial)

    def describe(self):
        return "CPU (sequential)"


class NumbaBackend(_NumbaKernelBackend):
    """Rows distributed across CPU cores with numba.prange."""

    name = "numba"
    parallel = True
    kernel = staticmethod(compute_escape_times)

    def describe(self):
        import numba
        return f"CPU (Numba, {numba.get_num_threads()} threads)"


def _create_torch_backend(**options):
    # Imported lazily: loading torch is slow and it is an optional extra
    from .compute_gpu import TorchBackend
    return TorchBackend(**options)


# Registry of all available backends.
# Keys are names accepted by create_backend, values are factories.
BACKENDS = {
    "sequential": SequentialBackend,
    "numba": NumbaBackend,
    "torch": _create_torch_backend,
}

# Order tried by configure_backend(preference="auto")
AUTO_ORDER = ("torch", "numba", "sequential")


def list_backend_names():
    """Get list of backend names, plus 'auto'."""
    return ["auto"] + list(BACKENDS.keys())


def create_backend(name, **options):
    """
    Create a backend by name.

    Raises:
        ValueError if name is not a known backend
    """
    try:
        factory = BACKENDS[name]
    except KeyError:
        raise ValueError(f"unknown backend {name!r}, expected one of {sorted(BACKENDS)}") from None
    return factory(**options)


def configure_backend(viewport, iter_limit, preference="auto"):
    """
    Create and configure the best backend for preference.

    "auto" tries AUTO_ORDER in turn. A named backend that turns out to be
    unavailable falls back to the sequential backend. BackendInitError is
    never swallowed.

    Returns:
        (backend, handle) tuple
    """
    if preference == "auto":
        names = AUTO_ORDER
    elif preference == "sequential":
        names = ("sequential",)
    else:
        names = (preference, "sequential")

    for name in names:
        backend = create_backend(name)
        try:
            handle = backend.configure(viewport, iter_limit)
        except BackendUnavailable as exc:
            logger.info("%s; trying next backend", exc)
            backend.close()
            continue
        logger.info("Using %s backend: %s", backend.name, backend.describe())
        return backend, handle

    raise BackendUnavailable(preference, "no backend could be configured")


def _check_viewport(viewport):
    if not isinstance(viewport, Viewport):
        raise InvalidViewport(f"expected a Viewport, got {type(viewport).__name__}")
