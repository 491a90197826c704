import numpy as np
import pytest

from toyrender.color import luminance


@pytest.mark.parametrize(
    "color, expected",
    [
        ((1.0, 0.0, 0.0), 0.299),
        ((0.0, 1.0, 0.0), 0.587),
        ((0.0, 0.0, 1.0), 0.114),
    ],
)
def test_luminance_weights(color, expected):
    assert luminance(color) == pytest.approx(expected)


def test_luminance_of_black_is_zero():
    assert luminance((0.0, 0.0, 0.0)) == 0.0


def test_luminance_of_white_is_one():
    assert luminance((1.0, 1.0, 1.0)) == pytest.approx(1.0)


def test_luminance_is_linear():
    color = (0.2, 0.5, 0.7)
    doubled = tuple(2.0 * c for c in color)
    assert luminance(doubled) == pytest.approx(2.0 * luminance(color))


def test_luminance_ignores_alpha():
    assert luminance((0.2, 0.4, 0.6, 0.9)) == pytest.approx(luminance((0.2, 0.4, 0.6)))


def test_luminance_accepts_numpy_arrays():
    color = np.array([0.3, 0.3, 0.3], dtype=np.float32)
    assert luminance(color) == pytest.approx(luminance((0.3, 0.3, 0.3)))