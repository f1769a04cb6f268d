"""
GPU-accelerated escape-time computation using PyTorch.

This module provides the accelerator backend. It auto-detects available
hardware:
- CUDA (NVIDIA GPUs), float64
- MPS (Apple Silicon), float32 only

Without a GPU (or without PyTorch) configure() raises BackendUnavailable
and callers fall back to the Numba backends. Passing device="cpu" forces
the tensor kernel onto the CPU, which is mostly useful for testing.

The implementation processes all pixels simultaneously using tensor
operations; each pixel's orbit is frozen as soon as it escapes, so the
counts match the per-pixel kernels in compute.py.

Usage:
    from mandelzoom.compute_gpu import TorchBackend

    backend = TorchBackend()
    handle = backend.configure(viewport, iter_limit)
    buffer = backend.dispatch(handle)
"""

import numpy as np

from .backends import ComputeBackend
from .compute import ESCAPE_RADIUS_SQ
from .errors import BackendInitError, BackendUnavailable, ComputeError

# Try to import PyTorch
try:
    import torch
    TORCH_AVAILABLE = True
except ImportError:
    TORCH_AVAILABLE = False
    torch = None


class TorchBackend(ComputeBackend):
    """
    Escape-time backend running on PyTorch tensors.

    Automatically detects the best available device:
    - CUDA for NVIDIA GPUs (float64)
    - MPS for Apple Silicon (float32, so deep zooms lose detail sooner)

    Attributes:
        device: torch.device in use, or None when no accelerator was found
        dtype: Floating point dtype of the coordinate and orbit tensors
        available: Whether configure() can succeed
    """

    name = "torch"
    parallel = True

    def __init__(self, device=None, prefer_gpu=True, dtype=None):
        """
        Initialize the backend.

        Args:
            device: Explicit torch device string ("cuda", "mps", "cpu");
                    None auto-detects a GPU
            prefer_gpu: If False and no device is given, report unavailable
            dtype: Override the floating point dtype (torch.float32/float64)
        """
        super().__init__()
        self.device = None
        self.device_name = "None"
        self.dtype = None
        self.is_cuda = False
        self.is_mps = False
        self.reason = None

        if not TORCH_AVAILABLE:
            self.reason = "PyTorch not installed"
            return

        if device is not None:
            self.device = torch.device(device)
            self.is_cuda = self.device.type == "cuda"
            self.is_mps = self.device.type == "mps"
            if self.is_cuda and not torch.cuda.is_available():
                self.device = None
                self.reason = "CUDA requested but not available"
            elif self.is_mps and not _mps_available():
                self.device = None
                self.reason = "MPS requested but not available"
            elif self.is_cuda:
                self.device_name = torch.cuda.get_device_name(self.device)
            elif self.is_mps:
                self.device_name = "Apple Silicon GPU (MPS)"
            else:
                self.device_name = "CPU (PyTorch)"
        elif not prefer_gpu:
            self.reason = "GPU disabled"
        elif torch.cuda.is_available():
            self.device = torch.device("cuda")
            self.device_name = torch.cuda.get_device_name(0)
            self.is_cuda = True
        elif _mps_available():
            self.device = torch.device("mps")
            self.device_name = "Apple Silicon GPU (MPS)"
            self.is_mps = True
        else:
            self.reason = "no CUDA or MPS device found"

        if self.device is not None:
            if dtype is not None:
                self.dtype = dtype
            elif self.is_mps:
                self.dtype = torch.float32  # MPS only supports float32
            else:
                self.dtype = torch.float64

    @property
    def available(self):
        return self.device is not None

    def describe(self):
        if not self.available:
            return f"PyTorch unavailable ({self.reason})"
        return f"{self.device_name} [{self.device}, {str(self.dtype).replace('torch.', '')}]"

    def _coordinate_axes(self, viewport):
        """Real part per column and imaginary part per row, as 1D tensors."""
        cols = torch.arange(viewport.width, device=self.device, dtype=self.dtype)
        rows = torch.arange(viewport.height, device=self.device, dtype=self.dtype)
        re = viewport.re_min + cols * viewport.re_step
        im = viewport.im_min + rows * viewport.im_step
        return re, im

    def _allocate(self, viewport, iter_limit):
        if not self.available:
            raise BackendUnavailable(self.name, self.reason)
        try:
            re, im = self._coordinate_axes(viewport)
            shape = (viewport.height, viewport.width)
            # cr[y, x] and ci[y, x]
            cr = re.unsqueeze(0).expand(shape).contiguous()
            ci = im.unsqueeze(1).expand(shape).contiguous()
        except RuntimeError as exc:
            raise BackendInitError(self.name, f"allocation on {self.device} failed: {exc}") from exc
        return {"cr": cr, "ci": ci}

    def _rebind(self, state, viewport):
        re, im = self._coordinate_axes(viewport)
        state["cr"].copy_(re.unsqueeze(0).expand_as(state["cr"]))
        state["ci"].copy_(im.unsqueeze(1).expand_as(state["ci"]))

    def _free(self, state):
        if state:
            state.clear()
        if self.is_cuda:
            torch.cuda.empty_cache()

    def _run(self, handle):
        try:
            return self._escape_times(handle._state["cr"], handle._state["ci"],
                                      handle.iter_limit)
        except RuntimeError as exc:
            raise ComputeError(self.name, f"{self.device_name}: {exc}") from exc

    def _escape_times(self, cr, ci, iter_limit):
        """
        Iterate all pixels at once.

        Returns:
            numpy array (height, width) of uint32 iteration counts
        """
        zr = torch.zeros_like(cr)
        zi = torch.zeros_like(ci)

        # Interior until proven otherwise
        counts = torch.full(cr.shape, iter_limit, device=self.device, dtype=torch.int64)
        active = torch.ones(cr.shape, device=self.device, dtype=torch.bool)

        # Checking for early exit forces a device sync, so only do it periodically
        check_interval = max(16, iter_limit // 16)

        for iteration in range(iter_limit):
            new_zr = zr * zr - zi * zi + cr
            new_zi = 2 * zr * zi + ci
            zr = torch.where(active, new_zr, zr)
            zi = torch.where(active, new_zi, zi)

            just_escaped = active & ((zr * zr + zi * zi) > ESCAPE_RADIUS_SQ)
            counts.masked_fill_(just_escaped, iteration)
            active &= ~just_escaped

            if (iteration + 1) % check_interval == 0 and not bool(active.any()):
                break

        return counts.cpu().numpy().astype(np.uint32)


def _mps_available():
    return hasattr(torch.backends, "mps") and torch.backends.mps.is_available()
