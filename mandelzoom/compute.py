"""
Escape-time and coloring kernels using Numba JIT compilation.

This module contains all the performance-critical functions that are
JIT-compiled for speed:
- The escape-time evaluator for z -> z² + c (scalar, pure)
- Grid kernels that evaluate it for every pixel, in parallel or sequentially
- Discrete and continuous-gradient color policies (scalar, pure)
- Frame kernels applying those policies to a whole iteration buffer
- Image downscaling for anti-aliasing

The grid kernels compute pixel coordinates as ``re_min + px * re_step``,
the same arithmetic as Viewport.pixel_to_plane, so every backend samples
identical plane points. fastmath is deliberately off: the parallel and
sequential paths must produce the same iteration counts.
"""

import math

import numpy as np
from numba import jit, prange


ESCAPE_RADIUS_SQ = 4.0  # |z|² above this means the orbit escaped
MAX_ITER_LIMIT = 2 ** 32 - 1  # buffers are uint32


def check_iter_limit(iter_limit):
    """Validate an iteration limit and return it as a Python int."""
    if isinstance(iter_limit, bool) or int(iter_limit) != iter_limit:
        raise ValueError(f"iter_limit must be an integer, got {iter_limit!r}")
    iter_limit = int(iter_limit)
    if not 0 < iter_limit <= MAX_ITER_LIMIT:
        raise ValueError(f"iter_limit must be in [1, {MAX_ITER_LIMIT}], got {iter_limit}")
    return iter_limit


@jit(nopython=True, cache=True)
def escape_time(cr, ci, iter_limit):
    """
    Escape-time iteration count for the point c = cr + i·ci.

    Starts from z = 0 and iterates z = z² + c. Returns the index of the
    iteration at which |z|² first exceeded 4, or iter_limit when the orbit
    stayed bounded (interior point).
    """
    zr = 0.0
    zi = 0.0
    for iteration in range(iter_limit):
        zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci
        if zr * zr + zi * zi > ESCAPE_RADIUS_SQ:
            return iteration
    return iter_limit


def evaluate(c, iter_limit):
    """Escape-time count for a Python complex number."""
    c = complex(c)
    return int(escape_time(c.real, c.imag, int(iter_limit)))


@jit(nopython=True, parallel=True, cache=True)
def compute_escape_times(re_min, re_max, im_min, im_max, width, height, iter_limit):
    """
    Evaluate every pixel of the grid, rows distributed across CPU cores.

    Args:
        re_min, re_max: Real axis bounds in the complex plane
        im_min, im_max: Imaginary axis bounds in the complex plane
        width, height: Grid dimensions in pixels
        iter_limit: Maximum iteration count (interior value)

    Returns:
        2D numpy array (height, width) of uint32 iteration counts.
    """
    result = np.empty((height, width), dtype=np.uint32)
    re_step = (re_max - re_min) / width
    im_step = (im_max - im_min) / height

    for py in prange(height):
        ci = im_min + py * im_step
        for px in range(width):
            result[py, px] = escape_time(re_min + px * re_step, ci, iter_limit)

    return result


@jit(nopython=True, cache=True)
def compute_escape_times_serial(re_min, re_max, im_min, im_max, width, height, iter_limit):
    """Single-threaded version of compute_escape_times, pixel by pixel."""
    result = np.empty((height, width), dtype=np.uint32)
    re_step = (re_max - re_min) / width
    im_step = (im_max - im_min) / height

    for py in range(height):
        ci = im_min + py * im_step
        for px in range(width):
            result[py, px] = escape_time(re_min + px * re_step, ci, iter_limit)

    return result


@jit(nopython=True, cache=True)
def discrete_color(iteration, iter_limit, palette):
    """
    Discrete palette lookup.

    The index follows a quarter sine wave, which spends more of the palette
    on low iteration counts: idx = round(sin(π/2 · n/limit) · (N-1)).

    Args:
        iteration: Escape-time count
        iter_limit: Maximum iteration value (interior points are black)
        palette: Nx3 array of RGB colors (uint8)

    Returns:
        (r, g, b, a) tuple of ints
    """
    if iteration >= iter_limit:
        return 0, 0, 0, 255
    last = palette.shape[0] - 1
    x = math.sin(0.5 * math.pi * iteration / iter_limit) * last
    idx = int(math.floor(x + 0.5))
    if idx < 0:
        idx = 0
    elif idx > last:
        idx = last
    return int(palette[idx, 0]), int(palette[idx, 1]), int(palette[idx, 2]), 255


@jit(nopython=True, cache=True)
def gradient_color(iteration, iter_limit, palette, contrast):
    """
    Continuous gradient lookup with logarithmic contrast.

    t = log2(n/limit · K + 1) / log2(K + 1) is placed on the gradient's
    [0, 1] domain and the two stops around it are linearly interpolated.
    Larger K brightens low iteration counts.

    Args:
        iteration: Escape-time count
        iter_limit: Maximum iteration value (interior points are black)
        palette: Nx3 array of RGB gradient stops (uint8), N >= 2
        contrast: The contrast constant K (> 0)

    Returns:
        (r, g, b, a) tuple of ints
    """
    if iteration >= iter_limit:
        return 0, 0, 0, 255
    last = palette.shape[0] - 1
    t = math.log2(iteration / iter_limit * contrast + 1.0) / math.log2(contrast + 1.0)
    pos = t * last
    idx0 = int(math.floor(pos))
    if idx0 < 0:
        idx0 = 0
    elif idx0 > last:
        idx0 = last
    idx1 = min(idx0 + 1, last)
    frac = pos - idx0

    r = palette[idx0, 0] * (1.0 - frac) + palette[idx1, 0] * frac
    g = palette[idx0, 1] * (1.0 - frac) + palette[idx1, 1] * frac
    b = palette[idx0, 2] * (1.0 - frac) + palette[idx1, 2] * frac
    return int(r), int(g), int(b), 255


@jit(nopython=True, parallel=True, cache=True)
def apply_palette_discrete(data, iter_limit, palette, out):
    """
    Color a 2D iteration array with discrete_color.

    Args:
        data: 2D array (height, width) of iteration counts
        iter_limit: Maximum iteration value
        palette: Nx3 array of RGB colors (uint8)
        out: Output RGBA image array (height, width, 4), modified in place
    """
    height, width = data.shape
    for py in prange(height):
        for px in range(width):
            r, g, b, a = discrete_color(data[py, px], iter_limit, palette)
            out[py, px, 0] = r
            out[py, px, 1] = g
            out[py, px, 2] = b
            out[py, px, 3] = a


@jit(nopython=True, parallel=True, cache=True)
def apply_palette_gradient(data, iter_limit, palette, contrast, out):
    """Color a 2D iteration array with gradient_color (see apply_palette_discrete)."""
    height, width = data.shape
    for py in prange(height):
        for px in range(width):
            r, g, b, a = gradient_color(data[py, px], iter_limit, palette, contrast)
            out[py, px, 0] = r
            out[py, px, 1] = g
            out[py, px, 2] = b
            out[py, px, 3] = a


@jit(nopython=True, parallel=True, cache=True)
def downscale_2x(src, dst):
    """
    Downscale an image by 2x using box filter (4-pixel average).

    Used for supersampled anti-aliasing: render at 2x resolution,
    then downscale for smooth edges.

    Args:
        src: Source image (2*height, 2*width, channels)
        dst: Destination image (height, width, channels), modified in place
    """
    height, width, channels = dst.shape
    for y in prange(height):
        y2 = y * 2
        for x in range(width):
            x2 = x * 2
            for c in range(channels):
                val = (int(src[y2, x2, c]) + int(src[y2, x2 + 1, c]) +
                       int(src[y2 + 1, x2, c]) + int(src[y2 + 1, x2 + 1, c])) // 4
                dst[y, x, c] = val


def warmup_jit(palette=None):
    """
    Warm up JIT compilation with small dummy arrays.

    Call this once at startup to pre-compile the Numba functions,
    avoiding a delay on the first real frame.

    Args:
        palette: Palette color array to compile the color kernels against
    """
    data = compute_escape_times(-2.0, 1.0, -1.0, 1.0, 10, 10, 10)
    compute_escape_times_serial(-2.0, 1.0, -1.0, 1.0, 10, 10, 10)
    if palette is not None:
        dummy = np.zeros((10, 10, 4), dtype=np.uint8)
        dummy_hi = np.zeros((20, 20, 4), dtype=np.uint8)
        apply_palette_discrete(data, 10, palette, dummy)
        apply_palette_gradient(data, 10, palette, 4.0, dummy)
        downscale_2x(dummy_hi, dummy)
