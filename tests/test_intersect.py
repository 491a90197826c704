import numpy as np
import pytest

from toyrender.intersect import IntersectInfo


def _normalized(v):
    v = np.asarray(v, dtype=float)
    return v / np.linalg.norm(v)


@pytest.mark.parametrize(
    "normal, wo",
    [
        ((0.0, 0.0, 1.0), (0.3, 0.2, 0.9)),
        ((0.0, 1.0, 0.0), (1.0, 1.0, 0.0)),
        ((1.0, 2.0, -0.5), (-0.4, 0.1, 0.7)),
    ],
)
def test_frame_is_orthonormal(normal, wo):
    info = IntersectInfo(wo=_normalized(wo), shading_normal=_normalized(normal))
    frame = info.surface_frame()
    np.testing.assert_allclose(frame.T @ frame, np.eye(3), atol=1e-9)


def test_third_column_is_shading_normal():
    normal = _normalized((0.2, -0.3, 0.9))
    info = IntersectInfo(wo=_normalized((1.0, 0.0, 0.5)), shading_normal=normal)
    np.testing.assert_allclose(info.surface_frame()[:, 2], normal)


def test_y_axis_is_perpendicular_to_outgoing_direction():
    wo = _normalized((0.5, 0.5, 0.7))
    info = IntersectInfo(wo=wo, shading_normal=np.array([0.0, 0.0, 1.0]))
    y = info.surface_frame()[:, 1]
    assert float(np.dot(y, wo)) == pytest.approx(0.0, abs=1e-12)


def test_world_to_local_maps_normal_to_z():
    normal = _normalized((0.1, 0.8, 0.3))
    info = IntersectInfo(wo=_normalized((0.0, 0.0, 1.0)), shading_normal=normal)
    local = info.surface_frame().T @ normal
    np.testing.assert_allclose(local, [0.0, 0.0, 1.0], atol=1e-12)


@pytest.mark.parametrize(
    "normal",
    [(1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, -1.0, 0.0)],
)
def test_degenerate_outgoing_direction_still_gives_frame(normal):
    n = np.array(normal)
    info = IntersectInfo(wo=n.copy(), shading_normal=n)
    frame = info.surface_frame()
    assert np.all(np.isfinite(frame))
    np.testing.assert_allclose(frame.T @ frame, np.eye(3), atol=1e-9)
    np.testing.assert_allclose(frame[:, 2], n)