"""
Mandelbrot Set Zoom Package

Computes and colors the Mandelbrot set over a rectangle of the complex plane,
on a GPU via PyTorch when one is present and on the CPU via Numba otherwise,
and supports interactive zoom through a Pygame window.

Quick Start:
    from mandelzoom import MandelbrotRenderer, Viewport

    with MandelbrotRenderer(Viewport.default(800, 800), iter_limit=256) as r:
        frame = r.render()      # Frame: (height, width, 4) RGBA
        r.zoom(400, 400, 0.9)
        frame = r.render()

Or from command line:
    python -m mandelzoom

Package Structure:
    - viewport.py: Plane rectangle, pixel mapping, zoom and pan
    - compute.py: JIT-compiled escape-time and coloring kernels
    - backends.py: Sequential and Numba compute backends, backend selection
    - compute_gpu.py: PyTorch accelerator backend
    - colormaps.py: Palettes, ColorMapper and Frame
    - renderer.py: Pipeline with retry and fallback
    - config.py: RenderConfig defaults
    - app.py: Pygame window and event loop

Controls:
    - Scroll: Zoom in/out at mouse position
    - Drag: Pan around
    - R: Reset to default view
    - S: Save the current frame as PNG
    - ESC: Quit
"""

from .backends import (
    BackendHandle,
    ComputeBackend,
    NumbaBackend,
    SequentialBackend,
    configure_backend,
    create_backend,
)
from .colormaps import COLORMAPS, ColorMapper, Frame, Palette, get_palette, list_palette_names
from .compute import escape_time, evaluate
from .config import RenderConfig
from .errors import (
    BackendInitError,
    BackendUnavailable,
    ComputeError,
    InvalidViewport,
    MandelzoomError,
)
from .renderer import MandelbrotRenderer
from .viewport import Viewport

__version__ = "1.0.0"
__all__ = [
    "BackendHandle",
    "BackendInitError",
    "BackendUnavailable",
    "COLORMAPS",
    "ColorMapper",
    "ComputeBackend",
    "ComputeError",
    "Frame",
    "InvalidViewport",
    "MandelbrotRenderer",
    "MandelzoomError",
    "NumbaBackend",
    "Palette",
    "RenderConfig",
    "SequentialBackend",
    "Viewport",
    "configure_backend",
    "create_backend",
    "escape_time",
    "evaluate",
    "get_palette",
    "list_palette_names",
]
