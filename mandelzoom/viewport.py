"""
Viewport: the visible rectangle of the complex plane and its pixel grid.

Axis convention used throughout the package:
- column index px runs along the real axis (x)
- row index py runs along the imaginary axis (y), row 0 holds im_min

Presentation layers flip the rows so the imaginary axis grows upward
on screen.
"""

import math
import numbers

from .errors import InvalidViewport


class Viewport:
    """
    Immutable view of the complex plane mapped onto a width x height grid.

    Zoom and pan return a new Viewport instead of mutating this one, so a
    viewport can be shared with a backend handle without surprises.
    """

    DEFAULT_BOUNDS = (-2.25, 0.75, -1.5, 1.5)  # re_min, re_max, im_min, im_max

    __slots__ = ("_re_min", "_re_max", "_im_min", "_im_max", "_width", "_height")

    def __init__(self, re_min, re_max, im_min, im_max, width, height):
        bounds = (re_min, re_max, im_min, im_max)
        if not all(isinstance(b, numbers.Real) and math.isfinite(b) for b in bounds):
            raise InvalidViewport(f"bounds must be finite real numbers, got {bounds}")
        if not re_max > re_min:
            raise InvalidViewport(f"re_max ({re_max}) must be greater than re_min ({re_min})")
        if not im_max > im_min:
            raise InvalidViewport(f"im_max ({im_max}) must be greater than im_min ({im_min})")
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
                raise InvalidViewport(f"{name} must be a positive integer, got {value!r}")

        self._re_min = float(re_min)
        self._re_max = float(re_max)
        self._im_min = float(im_min)
        self._im_max = float(im_max)
        self._width = int(width)
        self._height = int(height)

    @classmethod
    def default(cls, width, height):
        """The classic overview of the whole set."""
        return cls(*cls.DEFAULT_BOUNDS, width, height)

    @classmethod
    def from_center(cls, center, re_span, im_span, width, height):
        """Build a viewport from its center point and axis spans."""
        half_re = re_span / 2
        half_im = im_span / 2
        return cls(center.real - half_re, center.real + half_re,
                   center.imag - half_im, center.imag + half_im,
                   width, height)

    re_min = property(lambda self: self._re_min)
    re_max = property(lambda self: self._re_max)
    im_min = property(lambda self: self._im_min)
    im_max = property(lambda self: self._im_max)
    width = property(lambda self: self._width)
    height = property(lambda self: self._height)

    @property
    def bounds(self):
        return (self._re_min, self._re_max, self._im_min, self._im_max)

    @property
    def size(self):
        """Number of pixels in the grid."""
        return self._width * self._height

    @property
    def re_span(self):
        return self._re_max - self._re_min

    @property
    def im_span(self):
        return self._im_max - self._im_min

    @property
    def re_step(self):
        """Plane distance between two neighbouring columns."""
        return (self._re_max - self._re_min) / self._width

    @property
    def im_step(self):
        """Plane distance between two neighbouring rows."""
        return (self._im_max - self._im_min) / self._height

    @property
    def center(self):
        return complex((self._re_min + self._re_max) / 2,
                       (self._im_min + self._im_max) / 2)

    def pixel_to_plane(self, px, py):
        """
        Map a pixel position to its point on the complex plane.

        The arithmetic matches the compute kernels exactly
        (``re_min + px * re_step``) so host-side lookups agree with
        the values the backends evaluated.
        """
        return complex(self._re_min + px * self.re_step,
                       self._im_min + py * self.im_step)

    def zoom(self, cursor_px, cursor_py, scale_factor):
        """
        Recenter on the plane point under the cursor and scale both spans.

        Args:
            cursor_px, cursor_py: Cursor position in pixel coordinates
            scale_factor: < 1 zooms in, > 1 zooms out

        Returns:
            New Viewport with the same pixel dimensions.
        """
        _check_scale(scale_factor)
        center = self.pixel_to_plane(cursor_px, cursor_py)
        return Viewport.from_center(center,
                                    self.re_span * scale_factor,
                                    self.im_span * scale_factor,
                                    self._width, self._height)

    def zoom_anchored(self, cursor_px, cursor_py, scale_factor):
        """
        Scale both spans while keeping the cursor's plane point under the cursor.
        """
        _check_scale(scale_factor)
        anchor = self.pixel_to_plane(cursor_px, cursor_py)
        x_ratio = cursor_px / self._width
        y_ratio = cursor_py / self._height
        new_re_span = self.re_span * scale_factor
        new_im_span = self.im_span * scale_factor
        return Viewport(anchor.real - x_ratio * new_re_span,
                        anchor.real + (1 - x_ratio) * new_re_span,
                        anchor.imag - y_ratio * new_im_span,
                        anchor.imag + (1 - y_ratio) * new_im_span,
                        self._width, self._height)

    def pan(self, dx_px, dy_px):
        """Shift the view by a pixel offset without changing the spans."""
        dre = dx_px * self.re_step
        dim = dy_px * self.im_step
        return Viewport(self._re_min + dre, self._re_max + dre,
                        self._im_min + dim, self._im_max + dim,
                        self._width, self._height)

    def resized(self, width, height):
        """Same plane rectangle sampled on a different pixel grid."""
        return Viewport(*self.bounds, width, height)

    def __eq__(self, other):
        if not isinstance(other, Viewport):
            return NotImplemented
        return (self.bounds == other.bounds
                and self._width == other._width
                and self._height == other._height)

    def __hash__(self):
        return hash((self.bounds, self._width, self._height))

    def __repr__(self):
        return (f"Viewport(re=[{self._re_min!r}, {self._re_max!r}], "
                f"im=[{self._im_min!r}, {self._im_max!r}], "
                f"{self._width}x{self._height})")


def _check_scale(scale_factor):
    if not (isinstance(scale_factor, numbers.Real)
            and math.isfinite(scale_factor) and scale_factor > 0):
        raise ValueError(f"scale_factor must be a finite positive number, got {scale_factor!r}")
