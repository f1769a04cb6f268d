"""
Render configuration: defaults, validation and factories for the core objects.
"""

from .backends import list_backend_names
from .colormaps import COLORING_MODES, ColorMapper, get_palette, list_palette_names
from .compute import check_iter_limit
from .viewport import Viewport


class RenderConfig:
    """
    Settings for one rendering session.

    Any argument left as None takes the class default. Values are validated
    on construction so a bad configuration fails before a window opens.
    """

    # Default configuration
    DEFAULT_WIDTH = 800
    DEFAULT_HEIGHT = 800
    DEFAULT_ITER_LIMIT = 256
    DEFAULT_BOUNDS = Viewport.DEFAULT_BOUNDS  # re_min, re_max, im_min, im_max

    # Scroll up multiplies the spans by this, scroll down by its inverse
    DEFAULT_ZOOM_FACTOR = 0.9

    DEFAULT_MODE = "gradient"
    DEFAULT_PALETTE = "Classic"
    DEFAULT_CONTRAST = ColorMapper.DEFAULT_CONTRAST
    DEFAULT_BACKEND = "auto"
    DEFAULT_SUPERSAMPLE = 1

    def __init__(self, width=None, height=None, iter_limit=None, bounds=None,
                 zoom_factor=None, mode=None, palette=None, contrast=None,
                 backend=None, supersample=None):
        self.width = self.DEFAULT_WIDTH if width is None else width
        self.height = self.DEFAULT_HEIGHT if height is None else height
        self.iter_limit = check_iter_limit(
            self.DEFAULT_ITER_LIMIT if iter_limit is None else iter_limit)
        self.bounds = tuple(bounds) if bounds is not None else self.DEFAULT_BOUNDS
        self.zoom_factor = self.DEFAULT_ZOOM_FACTOR if zoom_factor is None else zoom_factor
        self.mode = mode or self.DEFAULT_MODE
        self.palette = palette or self.DEFAULT_PALETTE
        self.contrast = self.DEFAULT_CONTRAST if contrast is None else contrast
        self.backend = backend or self.DEFAULT_BACKEND
        self.supersample = self.DEFAULT_SUPERSAMPLE if supersample is None else supersample

        if len(self.bounds) != 4:
            raise ValueError(f"bounds must be (re_min, re_max, im_min, im_max), got {self.bounds}")
        # Raises InvalidViewport for bad bounds or dimensions
        self.make_viewport()
        if not 0 < self.zoom_factor < 1:
            raise ValueError(f"zoom_factor must be in (0, 1), got {self.zoom_factor}")
        if not self.contrast > 0:
            raise ValueError(f"contrast must be positive, got {self.contrast!r}")
        if self.supersample not in (1, 2):
            raise ValueError(f"supersample must be 1 or 2, got {self.supersample!r}")
        if self.mode not in COLORING_MODES:
            raise ValueError(f"mode must be one of {COLORING_MODES}, got {self.mode!r}")
        if self.palette not in list_palette_names():
            raise ValueError(f"unknown palette {self.palette!r}, "
                             f"expected one of {list_palette_names()}")
        if self.backend not in list_backend_names():
            raise ValueError(f"unknown backend {self.backend!r}, "
                             f"expected one of {list_backend_names()}")

    @classmethod
    def from_args(cls, args):
        """Build a config from an argparse namespace (see __main__.py)."""
        return cls(
            width=args.width,
            height=args.height,
            iter_limit=args.iter_limit,
            zoom_factor=args.zoom_factor,
            mode=args.mode,
            palette=args.palette,
            contrast=args.contrast,
            backend=args.backend,
            supersample=args.supersample,
        )

    def make_viewport(self):
        return Viewport(*self.bounds, self.width, self.height)

    def make_palette(self):
        return get_palette(self.palette, self.mode)

    def make_color_mapper(self):
        return ColorMapper(self.make_palette(), mode=self.mode, contrast=self.contrast)

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"RenderConfig({fields})"
