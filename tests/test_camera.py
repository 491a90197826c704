import math

import numpy as np

from toyrender.camera import Camera


def look_at_camera():
    return Camera.from_look_at((0.0, 0.0, 4.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), math.radians(45.0), 16.0 / 9.0)


def test_look_at_rotation_is_orthonormal():
    camera = Camera.from_look_at((3.0, 3.0, 3.0), (1.0, 1.0, -1.0), (0.0, 1.0, 0.0), math.radians(30.0), 1.5)
    r = camera.rotation
    assert np.allclose(r.T @ r, np.eye(3))
    assert np.isclose(np.linalg.det(r), 1.0)


def test_look_at_sets_origin_and_backward_axis():
    eye = np.array([3.0, 3.0, 3.0])
    center = np.array([1.0, 1.0, -1.0])
    camera = Camera.from_look_at(eye, center, (0.0, 1.0, 0.0), 0.5, 1.0)
    assert np.allclose(camera.origin, eye)
    backward = (eye - center) / np.linalg.norm(eye - center)
    assert np.allclose(camera.rotation[:, 2], backward)


def test_center_ray_points_at_target():
    camera = look_at_camera()
    origin, direction = camera.spawn_ray((0.5, 0.5))
    assert np.allclose(origin, (0.0, 0.0, 4.0))
    assert np.allclose(direction, (0.0, 0.0, -1.0))


def test_directions_are_unit_length():
    camera = look_at_camera()
    for coord in [(0.0, 0.0), (1.0, 1.0), (0.25, 0.8), (0.9, 0.1)]:
        _, direction = camera.spawn_ray(coord)
        assert np.isclose(np.linalg.norm(direction), 1.0)


def test_top_left_ray_goes_left_and_up():
    camera = look_at_camera()
    _, direction = camera.spawn_ray((0.0, 0.0))
    assert direction[0] < 0.0
    assert direction[1] > 0.0
    assert direction[2] < 0.0


def test_opposite_corners_are_mirrored():
    camera = look_at_camera()
    _, a = camera.spawn_ray((0.0, 0.0))
    _, b = camera.spawn_ray((1.0, 1.0))
    assert np.allclose(a[:2], -b[:2])
    assert np.isclose(a[2], b[2])


def test_horizontal_half_angle_matches_fov_and_aspect():
    fov = math.radians(60.0)
    camera = Camera((0.0, 0.0, 0.0), np.eye(3), fov, 2.0)
    _, direction = camera.spawn_ray((1.0, 0.5))
    assert np.isclose(direction[0] / -direction[2], 2.0 * math.tan(fov / 2.0))


def test_set_look_at_moves_camera():
    camera = Camera((5.0, 5.0, 5.0), np.eye(3), 1.0, 1.0)
    camera.look_at((0.0, 2.0, 0.0), (0.0, 2.0, -1.0), (0.0, 1.0, 0.0))
    origin, direction = camera.spawn_ray((0.5, 0.5))
    assert np.allclose(origin, (0.0, 2.0, 0.0))
    assert np.allclose(direction, (0.0, 0.0, -1.0))


def test_thin_lens_rays_meet_at_focal_plane():
    camera = Camera((1.0, 2.0, 3.0), np.eye(3), math.radians(45.0), 1.0)
    camera.lens_radius = 0.5
    camera.focal_distance = 4.0
    camera.rng = np.random.default_rng(3)
    focus = np.array([1.0, 2.0, 3.0 - 4.0])
    for _ in range(10):
        origin, direction = camera.spawn_ray((0.5, 0.5))
        assert abs(origin[2] - 3.0) < 1e-12
        assert np.all(np.abs(origin[:2] - (1.0, 2.0)) <= 0.5)
        t = (focus[2] - origin[2]) / direction[2]
        assert np.allclose(origin + t * direction, focus)


def test_lens_samples_are_resampled_until_accepted():
    camera = Camera((0.0, 0.0, 0.0), np.eye(3), 1.0, 1.0)
    camera.lens_radius = 1.0
    seen = []

    def reject(sample):
        seen.append(sample.copy())
        return sample[0] < 0.5

    camera.reject_lens_sample = reject
    camera.rng = np.random.default_rng(11)
    for _ in range(5):
        origin, _ = camera.spawn_ray((0.5, 0.5))
        assert origin[0] >= 0.0
    assert len(seen) >= 5
    assert seen[-1][0] >= 0.5


def test_zero_lens_radius_never_samples_lens():
    camera = look_at_camera()
    calls = []
    camera.reject_lens_sample = lambda s: calls.append(s) or False
    origin, _ = camera.spawn_ray((0.3, 0.7))
    assert calls == []
    assert np.allclose(origin, camera.origin)