import numpy as np
import pytest

from mandelzoom.colormaps import (
    COLORING_MODES,
    COLORMAPS,
    ColorMapper,
    Frame,
    Palette,
    get_palette,
    list_palette_names,
)

BLACK = (0, 0, 0, 255)


@pytest.mark.parametrize("name", list(COLORMAPS))
@pytest.mark.parametrize("mode", COLORING_MODES)
def test_registry_palettes_are_valid(name, mode):
    palette = get_palette(name, mode)
    assert palette.name == name
    assert palette.colors.dtype == np.uint8
    assert palette.colors.shape[1] == 3
    assert len(palette) >= 2


def test_classic_palette_sizes():
    assert len(get_palette("Classic", "discrete")) == 15
    assert len(get_palette("Classic", "gradient")) == 12


def test_forest_and_purple_palettes():
    assert list_palette_names() == ["Classic", "Hot", "Ocean", "Forest", "Purple",
                                    "Rainbow", "Grayscale"]
    forest = get_palette("Forest")
    assert forest[0] == (0, 80, 0)
    assert forest[len(forest) - 1] == (249, 255, 252)
    # Green dominates the dark end of the forest
    assert all(g >= r for r, g, _ in forest.colors[:len(forest) // 2])

    purple = get_palette("Purple", "discrete")
    assert len(purple) == 16
    assert purple[0] == (100, 0, 80)
    assert purple[len(purple) - 1] == (255, 249, 255)


def test_list_palette_names():
    assert list_palette_names()[0] == "Classic"
    with pytest.raises(KeyError):
        get_palette("Nope")


def test_palette_is_immutable():
    colors = [[1, 2, 3], [4, 5, 6]]
    palette = Palette("tiny", colors)
    colors[0][0] = 99
    assert palette[0] == (1, 2, 3)
    with pytest.raises(ValueError):
        palette.colors[0, 0] = 7


@pytest.mark.parametrize("colors", [[], [1, 2, 3], [[1, 2]], np.zeros((2, 4))])
def test_palette_rejects_bad_shapes(colors):
    with pytest.raises(ValueError):
        Palette("bad", colors)


def test_mapper_validation():
    stops = get_palette("Classic")
    with pytest.raises(ValueError):
        ColorMapper(stops, mode="banded")
    with pytest.raises(ValueError):
        ColorMapper(Palette("one", [[10, 20, 30]]), mode="gradient")
    with pytest.raises(ValueError):
        ColorMapper(stops, contrast=0)
    # A single entry is a valid discrete table
    ColorMapper(Palette("one", [[10, 20, 30]]), mode="discrete")


def test_mapper_accepts_raw_arrays():
    mapper = ColorMapper([[0, 0, 0], [255, 255, 255]])
    assert mapper.palette.name == "custom"
    assert mapper.color(0, 10) == (0, 0, 0, 255)


@pytest.mark.parametrize("mode", COLORING_MODES)
def test_colorize_frame_size_and_interior(mode):
    mapper = ColorMapper(get_palette("Classic", mode), mode=mode)
    width, height, limit = 5, 3, 20
    buffer = np.arange(width * height, dtype=np.uint32) + 6  # 6..20

    frame = mapper.colorize(buffer, width, height, limit)

    assert isinstance(frame, Frame)
    assert len(frame) == 4 * width * height
    assert len(frame.tobytes()) == 4 * width * height
    assert (frame.width, frame.height) == (width, height)
    # Last entry is the interior value
    assert frame.pixel(4, 2) == BLACK
    assert np.all(frame.rgba[:, :, 3] == 255)


@pytest.mark.parametrize("mode", COLORING_MODES)
def test_colorize_matches_scalar_policy(mode):
    mapper = ColorMapper(get_palette("Hot", mode), mode=mode, contrast=8.0)
    limit = 64
    rng = np.random.default_rng(7)
    buffer = rng.integers(0, limit + 1, size=6 * 4).astype(np.uint32)

    frame = mapper.colorize(buffer, 6, 4, limit)

    for index, iteration in enumerate(buffer):
        py, px = divmod(index, 6)
        assert frame.pixel(px, py) == mapper.color(int(iteration), limit)


@pytest.mark.parametrize("mode", COLORING_MODES)
def test_colorize_is_deterministic(mode):
    mapper = ColorMapper(get_palette("Rainbow", mode), mode=mode)
    buffer = np.arange(100, dtype=np.uint32) % 41
    first = mapper.colorize(buffer, 10, 10, 40)
    second = mapper.colorize(buffer, 10, 10, 40)
    np.testing.assert_array_equal(first.rgba, second.rgba)


def test_doubled_buffer_gives_doubled_frame():
    mapper = ColorMapper(get_palette("Ocean"))
    small = np.arange(12, dtype=np.uint32).reshape(3, 4)
    large = np.repeat(np.repeat(small, 2, axis=0), 2, axis=1)

    small_frame = mapper.colorize(small.ravel(), 4, 3, 12)
    large_frame = mapper.colorize(large.ravel(), 8, 6, 12)

    assert len(large_frame) == 4 * len(small_frame)
    np.testing.assert_array_equal(large_frame.rgba[::2, ::2], small_frame.rgba)


def test_colorize_rejects_wrong_length():
    mapper = ColorMapper(get_palette("Grayscale"))
    with pytest.raises(ValueError):
        mapper.colorize(np.zeros(10, dtype=np.uint32), 4, 3, 10)


def test_colorize_writes_into_out():
    mapper = ColorMapper(get_palette("Grayscale"), mode="discrete")
    out = np.zeros((2, 2, 4), dtype=np.uint8)
    frame = mapper.colorize(np.array([0, 1, 2, 3], dtype=np.uint32), 2, 2, 3, out=out)
    assert frame.rgba is out
    assert tuple(out[1, 1]) == BLACK


def test_frame_flip_and_validation():
    rgba = np.zeros((2, 3, 4), dtype=np.uint8)
    rgba[0] = 255
    frame = Frame(rgba)
    flipped = frame.flipped()
    assert np.all(flipped[1] == 255)
    assert np.all(flipped[0] == 0)
    with pytest.raises(ValueError):
        Frame(np.zeros((2, 3, 3), dtype=np.uint8))
