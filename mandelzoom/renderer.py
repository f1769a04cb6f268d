"""
Mandelbrot renderer: viewport + compute backend + color mapper.

The MandelbrotRenderer class handles:
- Picking a compute backend (GPU when available, CPU otherwise)
- Retrying a failed dispatch once, then falling back to the sequential
  backend so a frame is never dropped
- Zoom and pan as explicit calls that rebind the backend handle
- Supersampled anti-aliasing (optional, 2x)

Rendering is blocking: one frame is in flight at a time and a zoom issued
while the caller is rendering simply waits for the next render() call.
"""

import logging

import numpy as np

from .backends import SequentialBackend, configure_backend
from .colormaps import ColorMapper, Frame, get_palette
from .compute import check_iter_limit, downscale_2x, warmup_jit
from .errors import ComputeError
from .viewport import Viewport

logger = logging.getLogger(__name__)


class MandelbrotRenderer:
    """
    Renders frames of the Mandelbrot set for a mutable view.

    Usage:
        renderer = MandelbrotRenderer(Viewport.default(800, 600), iter_limit=256)
        frame = renderer.render()
        renderer.zoom(400, 300, 0.9)
        frame = renderer.render()
        renderer.close()

    Attributes:
        viewport: Current display viewport
        iter_limit: Maximum iteration count
        color_mapper: ColorMapper used to turn buffers into frames
        supersample: 1 (off) or 2 (2x2 box-filtered)
        backend, handle: Compute backend in use and its handle
    """

    SUPERSAMPLE_FACTORS = (1, 2)

    def __init__(self, viewport, iter_limit, color_mapper=None, backend="auto",
                 supersample=1, warmup=False):
        """
        Initialize the renderer.

        Args:
            viewport: Initial Viewport (display resolution)
            iter_limit: Maximum iteration count
            color_mapper: ColorMapper (default: Classic gradient)
            backend: Backend name or "auto"
            supersample: Supersampling factor for anti-aliasing (1 or 2)
            warmup: Pre-compile the Numba kernels before the first frame

        Raises:
            BackendInitError: The chosen backend failed to initialize
        """
        if supersample not in self.SUPERSAMPLE_FACTORS:
            raise ValueError(f"supersample must be one of {self.SUPERSAMPLE_FACTORS}, "
                             f"got {supersample!r}")
        self._viewport = viewport
        self.iter_limit = check_iter_limit(iter_limit)
        self.color_mapper = color_mapper or ColorMapper(get_palette('Classic'))
        self.supersample = supersample
        self.preference = backend

        if warmup:
            warmup_jit(self.color_mapper.palette.colors)

        self.backend, self.handle = configure_backend(
            self._render_viewport(viewport), self.iter_limit, backend
        )

    @classmethod
    def from_config(cls, config, warmup=False):
        """Build a renderer from a RenderConfig."""
        return cls(config.make_viewport(), config.iter_limit,
                   color_mapper=config.make_color_mapper(),
                   backend=config.backend,
                   supersample=config.supersample,
                   warmup=warmup)

    @property
    def viewport(self):
        return self._viewport

    def _render_viewport(self, viewport):
        if self.supersample == 1:
            return viewport
        return viewport.resized(viewport.width * self.supersample,
                                viewport.height * self.supersample)

    def compute(self):
        """
        Run one dispatch for the current viewport.

        A ComputeError is retried once; if the retry also fails the renderer
        switches to the sequential backend for this and all later frames.

        Returns:
            1D uint32 iteration buffer at render resolution
        """
        try:
            return self.backend.dispatch(self.handle)
        except ComputeError as exc:
            logger.warning("%s; retrying once", exc)

        try:
            return self.backend.dispatch(self.handle)
        except ComputeError as exc:
            if isinstance(self.backend, SequentialBackend):
                raise
            logger.error("%s; falling back to sequential evaluation", exc)

        self._fall_back_to_sequential()
        return self.backend.dispatch(self.handle)

    def _fall_back_to_sequential(self):
        viewport = self.handle.viewport
        self.backend.close()
        self.backend = SequentialBackend()
        self.handle = self.backend.configure(viewport, self.iter_limit)

    def render(self):
        """
        Compute and colorize the current viewport.

        Returns:
            Frame at display resolution
        """
        render_vp = self.handle.viewport
        buffer = self.compute()
        frame = self.color_mapper.colorize(buffer, render_vp.width, render_vp.height,
                                           self.iter_limit)
        if self.supersample == 1:
            return frame

        rgba = np.empty((self._viewport.height, self._viewport.width, 4), dtype=np.uint8)
        downscale_2x(frame.rgba, rgba)
        return Frame(rgba)

    def set_viewport(self, viewport):
        """Replace the viewport and rebind the backend handle. Does not render."""
        self.backend.update_viewport(self.handle, self._render_viewport(viewport))
        self._viewport = viewport

    def zoom(self, cursor_px, cursor_py, scale_factor):
        """Recenter on the cursor and scale the view (see Viewport.zoom)."""
        self.set_viewport(self._viewport.zoom(cursor_px, cursor_py, scale_factor))
        return self._viewport

    def zoom_anchored(self, cursor_px, cursor_py, scale_factor):
        """Scale the view keeping the point under the cursor fixed."""
        self.set_viewport(self._viewport.zoom_anchored(cursor_px, cursor_py, scale_factor))
        return self._viewport

    def pan(self, dx_px, dy_px):
        """Shift the view by a pixel offset."""
        self.set_viewport(self._viewport.pan(dx_px, dy_px))
        return self._viewport

    def reset(self):
        """Return to the default overview at the current resolution."""
        self.set_viewport(Viewport.default(self._viewport.width, self._viewport.height))
        return self._viewport

    def update_settings(self, iter_limit=None, color_mapper=None):
        """
        Update rendering settings.

        A new iteration limit reconfigures the backend handle; a new color
        mapper only affects later colorization.

        Returns:
            True if any setting changed, False otherwise
        """
        changed = False
        if iter_limit is not None:
            iter_limit = check_iter_limit(iter_limit)
            if iter_limit != self.iter_limit:
                viewport = self.handle.viewport
                self.backend.release(self.handle)
                self.handle = self.backend.configure(viewport, iter_limit)
                self.iter_limit = iter_limit
                changed = True
        if color_mapper is not None and color_mapper is not self.color_mapper:
            self.color_mapper = color_mapper
            changed = True
        return changed

    def describe(self):
        """Short description of the active backend and view."""
        return f"{self.backend.describe()} | {self._viewport!r} | iter_limit={self.iter_limit}"

    def close(self):
        """Release the backend's resources."""
        self.backend.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
