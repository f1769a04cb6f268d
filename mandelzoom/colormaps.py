"""
Palettes and the color mapper turning iteration buffers into RGBA frames.

A Palette is an immutable (N, 3) uint8 array of RGB colors. The same palette
can be used two ways, selected by the ColorMapper's mode:
- "discrete": the iteration count picks one entry of the table
- "gradient": the entries are stops of a continuous gradient and
  neighbouring stops are interpolated

To add a new palette:
1. Define a create_palette_xxx(mode) function that returns a Palette
2. Add it to the COLORMAPS dictionary below
"""

import numpy as np

from .compute import (
    apply_palette_discrete,
    apply_palette_gradient,
    check_iter_limit,
    discrete_color,
    gradient_color,
)


MODE_DISCRETE = "discrete"
MODE_GRADIENT = "gradient"
COLORING_MODES = (MODE_DISCRETE, MODE_GRADIENT)

DISCRETE_COLORS = 16   # Table size for generated palettes in discrete mode
GRADIENT_STOPS = 256   # Stop count for generated palettes in gradient mode


class Palette:
    """
    Named, read-only table of RGB colors.

    Attributes:
        name: Display name
        colors: (N, 3) uint8 numpy array, not writeable
    """

    def __init__(self, name, colors):
        arr = np.array(colors, dtype=np.uint8)
        if arr.ndim != 2 or arr.shape[1] != 3 or arr.shape[0] < 1:
            raise ValueError(f"palette {name!r} must be an (N, 3) array of RGB colors, "
                             f"got shape {arr.shape}")
        arr.setflags(write=False)
        self.name = name
        self.colors = arr

    def __len__(self):
        return self.colors.shape[0]

    def __getitem__(self, index):
        r, g, b = self.colors[index]
        return int(r), int(g), int(b)

    def __repr__(self):
        return f"Palette({self.name!r}, {len(self)} colors)"


# Escape bands of the classic dark-blue / gold look
CLASSIC_TABLE = (
    (25, 7, 26),
    (0, 120, 50),
    (9, 1, 47),
    (4, 4, 73),
    (0, 7, 100),
    (12, 44, 138),
    (24, 82, 177),
    (57, 125, 209),
    (134, 181, 229),
    (221, 236, 248),
    (241, 201, 95),
    (255, 170, 0),
    (204, 128, 0),
    (153, 87, 0),
    (106, 52, 3),
)

CLASSIC_STOPS = (
    (9, 1, 47),
    (4, 4, 47),
    (0, 7, 100),
    (12, 44, 138),
    (24, 82, 177),
    (57, 125, 209),
    (134, 181, 229),
    (211, 236, 248),
    (241, 233, 191),
    (248, 201, 95),
    (255, 170, 0),
    (106, 52, 3),
)


def _size_for(mode):
    return DISCRETE_COLORS if mode == MODE_DISCRETE else GRADIENT_STOPS


def create_palette_classic(mode=MODE_GRADIENT):
    """
    Classic palette: deep blue -> light blue -> gold -> brown.

    Discrete mode gets the 15-band table, gradient mode the 12 stops.
    """
    if mode == MODE_DISCRETE:
        return Palette("Classic", CLASSIC_TABLE)
    return Palette("Classic", CLASSIC_STOPS)


def create_palette_hot(mode=MODE_GRADIENT):
    """
    Hot palette: black -> red -> orange -> yellow -> white.

    Uses a power curve to spend more time in the bright colors.
    """
    t = np.linspace(0.0, 1.0, _size_for(mode)) ** 0.8
    red = np.clip(t * 2.5, 0, 1)
    green = np.clip((t - 0.4) * 2.5, 0, 1)
    blue = np.clip((t - 0.7) * 3.3, 0, 1)
    return Palette("Hot", (np.stack([red, green, blue], axis=1) * 255).astype(np.uint8))


def create_palette_ocean(mode=MODE_GRADIENT):
    """Ocean palette: deep blue -> cyan -> white."""
    t = np.linspace(0.0, 1.0, _size_for(mode))
    red = np.clip((t - 0.5) * 2, 0, 1) * 255
    green = t * 255
    blue = 50 + 205 * t
    return Palette("Ocean", np.stack([red, green, blue], axis=1).astype(np.uint8))


def create_palette_forest(mode=MODE_GRADIENT):
    """
    Forest palette: dark green -> lime -> yellow.

    Natural, earthy tones good for organic-looking renders.
    """
    t = np.linspace(0.0, 1.0, _size_for(mode))
    red = np.clip((t - 0.3) * 1.4, 0, 1) * 255
    green = 80 + 175 * t
    blue = np.clip((t - 0.7) * 3.3, 0, 1) * 255
    return Palette("Forest", np.stack([red, green, blue], axis=1).astype(np.uint8))


def create_palette_purple(mode=MODE_GRADIENT):
    """Purple palette: deep purple -> magenta -> pink -> white."""
    t = np.linspace(0.0, 1.0, _size_for(mode))
    red = 100 + 155 * t
    green = np.clip((t - 0.3) * 1.4, 0, 1) * 255
    blue = 80 + 175 * t
    return Palette("Purple", np.stack([red, green, blue], axis=1).astype(np.uint8))


def create_palette_rainbow(mode=MODE_GRADIENT):
    """
    Rainbow palette: cycles through hues (HSV with S=1, V=1).

    Gradient mode makes 5 complete hue rotations; the discrete table
    makes one so neighbouring bands stay distinct.
    """
    cycles = 1 if mode == MODE_DISCRETE else 5
    h = (np.linspace(0.0, 1.0, _size_for(mode)) * cycles) % 1.0
    sector = np.minimum((h * 6).astype(int), 5)
    f = h * 6 - sector
    rising = (f * 255).astype(np.uint8)
    falling = ((1 - f) * 255).astype(np.uint8)
    full = np.full_like(rising, 255)
    zero = np.zeros_like(rising)
    table = np.select(
        [sector[:, None] == k for k in range(6)],
        [
            np.stack([full, rising, zero], axis=1),
            np.stack([falling, full, zero], axis=1),
            np.stack([zero, full, rising], axis=1),
            np.stack([zero, falling, full], axis=1),
            np.stack([rising, zero, full], axis=1),
            np.stack([full, zero, falling], axis=1),
        ],
    )
    return Palette("Rainbow", table)


def create_palette_grayscale(mode=MODE_GRADIENT):
    """Grayscale palette: black -> white. Good for seeing raw iteration structure."""
    v = np.linspace(0, 255, _size_for(mode)).astype(np.uint8)
    return Palette("Grayscale", np.stack([v, v, v], axis=1))


# Registry of all available palettes.
# Keys are display names, values are factory functions taking the coloring mode.
COLORMAPS = {
    'Classic': create_palette_classic,
    'Hot': create_palette_hot,
    'Ocean': create_palette_ocean,
    'Forest': create_palette_forest,
    'Purple': create_palette_purple,
    'Rainbow': create_palette_rainbow,
    'Grayscale': create_palette_grayscale,
}


def get_palette(name, mode=MODE_GRADIENT):
    """
    Get a palette by name.

    Args:
        name: Key from COLORMAPS dictionary
        mode: Coloring mode the palette will be used with

    Raises:
        KeyError if name not found
    """
    return COLORMAPS[name](mode)


def list_palette_names():
    """Get list of available palette names."""
    return list(COLORMAPS.keys())


class Frame:
    """
    RGBA image produced by the color mapper.

    Row 0 corresponds to im_min (see viewport.py); use flipped() to get
    the usual screen orientation with the imaginary axis pointing up.

    Attributes:
        rgba: (height, width, 4) uint8 array
    """

    def __init__(self, rgba):
        if rgba.ndim != 3 or rgba.shape[2] != 4 or rgba.dtype != np.uint8:
            raise ValueError(f"expected a (height, width, 4) uint8 array, got "
                             f"{rgba.shape} {rgba.dtype}")
        self.rgba = rgba

    @property
    def width(self):
        return self.rgba.shape[1]

    @property
    def height(self):
        return self.rgba.shape[0]

    def __len__(self):
        return self.rgba.size

    def pixel(self, px, py):
        """The (r, g, b, a) tuple at column px, row py."""
        return tuple(int(v) for v in self.rgba[py, px])

    def tobytes(self):
        """Row-major RGBA bytes, 4 per pixel."""
        return self.rgba.tobytes()

    def flipped(self):
        """Copy with the rows reversed, for top-down presentation."""
        return np.flipud(self.rgba).copy()


class ColorMapper:
    """
    Converts iteration buffers into RGBA frames.

    Usage:
        mapper = ColorMapper(get_palette('Classic'), mode='gradient')
        frame = mapper.colorize(buffer, width, height, iter_limit)

    Both modes are pure functions of (iteration, iter_limit, palette), so a
    mapper holds no per-frame state and can be shared freely.
    """

    DEFAULT_CONTRAST = 4.0

    def __init__(self, palette, mode=MODE_GRADIENT, contrast=DEFAULT_CONTRAST):
        """
        Args:
            palette: Palette (or anything Palette() accepts)
            mode: "discrete" or "gradient"
            contrast: Contrast constant K of the gradient mode, > 0
        """
        if mode not in COLORING_MODES:
            raise ValueError(f"mode must be one of {COLORING_MODES}, got {mode!r}")
        if not isinstance(palette, Palette):
            palette = Palette("custom", palette)
        if mode == MODE_GRADIENT and len(palette) < 2:
            raise ValueError(f"gradient mode needs at least 2 stops, {palette!r} has {len(palette)}")
        if not contrast > 0:
            raise ValueError(f"contrast must be positive, got {contrast!r}")
        self.palette = palette
        self.mode = mode
        self.contrast = float(contrast)

    def color(self, iteration, iter_limit):
        """RGBA tuple for a single iteration count."""
        if self.mode == MODE_DISCRETE:
            return discrete_color(iteration, iter_limit, self.palette.colors)
        return gradient_color(iteration, iter_limit, self.palette.colors, self.contrast)

    def colorize(self, buffer, width, height, iter_limit, out=None):
        """
        Color a whole iteration buffer.

        Args:
            buffer: Row-major iteration counts, width * height entries
            width, height: Grid dimensions
            iter_limit: Iteration limit the buffer was computed with
            out: Optional (height, width, 4) uint8 array to write into

        Returns:
            Frame
        """
        iter_limit = check_iter_limit(iter_limit)
        data = np.asarray(buffer, dtype=np.uint32)
        if data.size != width * height:
            raise ValueError(f"buffer has {data.size} entries, expected {width}x{height}")
        data = data.reshape(height, width)
        if out is None:
            out = np.empty((height, width, 4), dtype=np.uint8)

        if self.mode == MODE_DISCRETE:
            apply_palette_discrete(data, iter_limit, self.palette.colors, out)
        else:
            apply_palette_gradient(data, iter_limit, self.palette.colors, self.contrast, out)
        return Frame(out)

    def __repr__(self):
        return f"ColorMapper({self.palette!r}, mode={self.mode!r}, contrast={self.contrast})"
