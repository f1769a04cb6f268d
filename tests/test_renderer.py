import numpy as np
import pytest

from mandelzoom.backends import NumbaBackend, SequentialBackend
from mandelzoom.colormaps import ColorMapper, get_palette
from mandelzoom.config import RenderConfig
from mandelzoom.errors import ComputeError
from mandelzoom.renderer import MandelbrotRenderer
from mandelzoom.viewport import Viewport


@pytest.fixture
def renderer():
    r = MandelbrotRenderer(Viewport.default(40, 30), iter_limit=50, backend="numba")
    yield r
    r.close()


def fail_first(backend, monkeypatch, failures):
    """Make backend.dispatch raise ComputeError for the first `failures` calls."""
    original = backend.dispatch
    calls = {"n": 0}

    def flaky(handle):
        calls["n"] += 1
        if calls["n"] <= failures:
            raise ComputeError(backend.name, "device lost")
        return original(handle)

    monkeypatch.setattr(backend, "dispatch", flaky)
    return calls


def test_render_produces_full_frame(renderer):
    frame = renderer.render()
    assert (frame.width, frame.height) == (40, 30)
    assert len(frame) == 40 * 30 * 4
    assert isinstance(renderer.backend, NumbaBackend)


def test_render_is_deterministic(renderer):
    np.testing.assert_array_equal(renderer.render().rgba, renderer.render().rgba)


def test_interior_pixels_are_black():
    vp = Viewport(-0.2, 0.2, -0.2, 0.2, 8, 8)  # inside the main cardioid
    with MandelbrotRenderer(vp, 30, backend="sequential") as r:
        frame = r.render()
    assert np.all(frame.rgba[:, :, :3] == 0)
    assert np.all(frame.rgba[:, :, 3] == 255)


def test_zoom_updates_viewport_and_handle(renderer):
    expected = renderer.viewport.zoom(10, 20, 0.9)
    renderer.zoom(10, 20, 0.9)
    assert renderer.viewport == expected
    assert renderer.handle.viewport == expected


def test_zoom_anchored_pan_and_reset(renderer):
    start = renderer.viewport
    renderer.zoom_anchored(5, 5, 0.5)
    assert renderer.viewport.re_span == pytest.approx(start.re_span * 0.5)
    renderer.pan(3, -2)
    assert renderer.handle.viewport == renderer.viewport
    renderer.reset()
    assert renderer.viewport == start


def test_zoom_then_render_matches_fresh_renderer(renderer):
    renderer.zoom(12, 7, 0.3)
    zoomed = renderer.render()
    with MandelbrotRenderer(renderer.viewport, 50, backend="sequential") as fresh:
        np.testing.assert_array_equal(zoomed.rgba, fresh.render().rgba)


def test_supersampled_frame_has_display_size():
    vp = Viewport.default(16, 12)
    with MandelbrotRenderer(vp, 40, backend="numba", supersample=2) as r:
        assert (r.handle.viewport.width, r.handle.viewport.height) == (32, 24)
        frame = r.render()
        r.zoom(8, 6, 0.5)
        assert r.handle.viewport.width == 32
    assert (frame.width, frame.height) == (16, 12)


def test_rejects_bad_supersample():
    with pytest.raises(ValueError):
        MandelbrotRenderer(Viewport.default(8, 8), 10, supersample=3)


def test_compute_error_is_retried_once(renderer, monkeypatch):
    backend = renderer.backend
    calls = fail_first(backend, monkeypatch, failures=1)

    buffer = renderer.compute()

    assert calls["n"] == 2
    assert renderer.backend is backend
    assert buffer.size == 40 * 30


def test_second_failure_falls_back_to_sequential(renderer, monkeypatch):
    viewport = renderer.handle.viewport
    fail_first(renderer.backend, monkeypatch, failures=2)

    buffer = renderer.compute()

    assert isinstance(renderer.backend, SequentialBackend)
    assert renderer.handle.viewport == viewport
    with SequentialBackend() as seq:
        np.testing.assert_array_equal(buffer, seq.dispatch(seq.configure(viewport, 50)))


def test_sequential_failures_propagate(monkeypatch):
    with MandelbrotRenderer(Viewport.default(8, 8), 10, backend="sequential") as r:
        fail_first(r.backend, monkeypatch, failures=2)
        with pytest.raises(ComputeError):
            r.compute()


def test_update_settings(renderer):
    assert not renderer.update_settings(iter_limit=50)
    assert renderer.update_settings(iter_limit=120)
    assert renderer.handle.iter_limit == 120
    assert renderer.compute().max() <= 120

    mapper = ColorMapper(get_palette("Grayscale", "discrete"), mode="discrete")
    assert renderer.update_settings(color_mapper=mapper)
    assert renderer.color_mapper is mapper


def test_from_config():
    config = RenderConfig(width=24, height=16, iter_limit=30, mode="discrete",
                          palette="Hot", backend="sequential")
    with MandelbrotRenderer.from_config(config) as r:
        assert r.viewport == Viewport.default(24, 16)
        assert r.color_mapper.mode == "discrete"
        assert r.color_mapper.palette.name == "Hot"
        assert len(r.render()) == 24 * 16 * 4


def test_describe_names_backend(renderer):
    assert "Numba" in renderer.describe()
