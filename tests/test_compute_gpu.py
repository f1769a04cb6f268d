import numpy as np
import pytest

torch = pytest.importorskip("torch")

from mandelzoom import compute_gpu
from mandelzoom.backends import NumbaBackend, SequentialBackend, configure_backend, create_backend
from mandelzoom.compute_gpu import TorchBackend
from mandelzoom.errors import BackendUnavailable, ComputeError
from mandelzoom.viewport import Viewport


def mismatch_fraction(a, b):
    return np.count_nonzero(a != b) / a.size


@pytest.fixture
def cpu_backend():
    backend = TorchBackend(device="cpu")
    yield backend
    backend.close()


def test_registry_creates_torch_backend():
    assert isinstance(create_backend("torch", device="cpu"), TorchBackend)


def test_cpu_device_uses_float64(cpu_backend):
    assert cpu_backend.available
    assert cpu_backend.dtype == torch.float64
    assert "CPU" in cpu_backend.describe()


def test_gpu_disabled_is_unavailable(small_viewport):
    backend = TorchBackend(prefer_gpu=False)
    assert not backend.available
    with pytest.raises(BackendUnavailable):
        backend.configure(small_viewport, 10)


def test_auto_selection_skips_torch_without_gpu(monkeypatch, small_viewport):
    monkeypatch.setattr(torch.cuda, "is_available", lambda: False)
    monkeypatch.setattr(compute_gpu, "_mps_available", lambda: False)

    assert TorchBackend().reason == "no CUDA or MPS device found"
    backend, handle = configure_backend(small_viewport, 10, "auto")
    try:
        assert isinstance(backend, NumbaBackend)
        assert handle.backend is backend
    finally:
        backend.close()


def test_buffer_shape_and_range(cpu_backend, small_viewport):
    buffer = cpu_backend.dispatch(cpu_backend.configure(small_viewport, 50))
    assert buffer.shape == (small_viewport.size,)
    assert buffer.dtype == np.uint32
    assert buffer.max() <= 50


@pytest.mark.parametrize("bounds, limit", [
    (Viewport.DEFAULT_BOUNDS, 100),
    ((-0.8, -0.7, 0.05, 0.15), 300),
])
def test_matches_sequential(cpu_backend, bounds, limit):
    vp = Viewport(*bounds, 64, 48)
    with SequentialBackend() as seq:
        expected = seq.dispatch(seq.configure(vp, limit))
    actual = cpu_backend.dispatch(cpu_backend.configure(vp, limit))
    assert mismatch_fraction(actual, expected) <= 0.001


def test_end_to_end_scenario(cpu_backend, scenario_viewport):
    handle = cpu_backend.configure(scenario_viewport, 10)
    buffer = cpu_backend.dispatch(handle)
    assert buffer.size == 16
    assert buffer[0] == 0
    assert buffer[10] == 10
    assert buffer[11] == 10
    np.testing.assert_array_equal(cpu_backend.dispatch(handle), buffer)


def test_update_viewport_reuses_tensors(cpu_backend):
    vp = Viewport.default(32, 24)
    handle = cpu_backend.configure(vp, 60)
    cr = handle._state["cr"]

    zoomed = vp.zoom(5, 7, 0.5)
    cpu_backend.update_viewport(handle, zoomed)

    assert handle._state["cr"] is cr
    with SequentialBackend() as seq:
        expected = seq.dispatch(seq.configure(zoomed, 60))
    assert mismatch_fraction(cpu_backend.dispatch(handle), expected) <= 0.001


def test_single_precision_stays_in_range(small_viewport):
    backend = TorchBackend(device="cpu", dtype=torch.float32)
    buffer = backend.dispatch(backend.configure(small_viewport, 40))
    assert buffer.max() <= 40
    assert buffer[0] == 0


def test_device_failure_becomes_compute_error(cpu_backend, small_viewport, monkeypatch):
    handle = cpu_backend.configure(small_viewport, 10)

    def lost(*args):
        raise RuntimeError("device lost")

    monkeypatch.setattr(cpu_backend, "_escape_times", lost)
    with pytest.raises(ComputeError) as excinfo:
        cpu_backend.dispatch(handle)
    assert "device lost" in str(excinfo.value)
