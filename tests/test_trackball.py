import math

import numpy as np
import pytest

from hexascene.linalg import rotate_vector
from hexascene.scene import Camera, Transform
from hexascene.trackball import TrackballCamera


def test_defaults_match_source():
    cam = TrackballCamera()
    assert cam.radius == 2.0
    assert cam.azimuth == 0.3
    assert cam.elevation == 0.2
    assert np.allclose(cam.target, [0.0, 0.0, 0.0])
    assert cam.flip_x is False


@pytest.mark.parametrize(
    "elevation, expected",
    [(0.2, False), (2.0, True), (-2.0, True), (-1.0, False)],
)
def test_begin_tumble_sets_flip(elevation, expected):
    cam = TrackballCamera(elevation=elevation)
    cam.begin_tumble()
    assert cam.flip_x is expected


def test_dolly_ten_notches_halves_radius():
    cam = TrackballCamera()
    cam.dolly(10)
    assert cam.radius == pytest.approx(1.0)


def test_dolly_clamps_radius():
    near = TrackballCamera()
    near.dolly(10000)
    assert near.radius == pytest.approx(1e-1)
    far = TrackballCamera()
    far.dolly(-10000)
    assert far.radius == pytest.approx(1e6)


def test_dolly_round_trip():
    cam = TrackballCamera()
    cam.dolly(3)
    cam.dolly(-3)
    assert cam.radius == pytest.approx(2.0)


def test_rotation_is_unit_quaternion():
    cam = TrackballCamera(azimuth=1.1, elevation=-0.7)
    assert np.linalg.norm(cam.rotation()) == pytest.approx(1.0)


def test_position_is_radius_from_target():
    cam = TrackballCamera(radius=5.0, azimuth=-0.4, elevation=0.9, target=np.array([1.0, 2.0, 3.0]))
    assert np.linalg.norm(cam.position() - cam.target) == pytest.approx(5.0)


def test_camera_looks_at_target():
    cam = TrackballCamera(radius=3.0, azimuth=0.8, elevation=0.5, target=np.array([1.0, -1.0, 0.5]))
    forward = rotate_vector(cam.rotation(), (0.0, 0.0, -1.0))
    assert np.allclose(cam.position() + cam.radius * forward, cam.target)


def test_tumble_stays_in_range():
    cam = TrackballCamera()
    for _ in range(20):
        cam.drag(700, -900, (800, 800))
        assert -math.pi - 1e-6 <= cam.azimuth <= math.pi + 1e-6
        assert -math.pi - 1e-6 <= cam.elevation <= math.pi + 1e-6


def test_tumble_does_not_move_target_or_radius():
    cam = TrackballCamera()
    cam.drag(50, 30, (800, 600))
    assert np.allclose(cam.target, [0.0, 0.0, 0.0])
    assert cam.radius == 2.0
    assert cam.azimuth != pytest.approx(0.3)


def test_flip_reverses_azimuth_motion():
    normal = TrackballCamera()
    flipped = TrackballCamera(flip_x=True)
    normal.drag(40, 0, (800, 800))
    flipped.drag(40, 0, (800, 800))
    assert normal.azimuth - 0.3 == pytest.approx(-(flipped.azimuth - 0.3))
    assert normal.elevation == pytest.approx(flipped.elevation)


def test_vertical_drag_changes_only_elevation():
    cam = TrackballCamera()
    cam.drag(0, 25, (640, 480))
    assert cam.azimuth == pytest.approx(0.3)
    assert cam.elevation > 0.2


def test_pan_moves_target_in_view_plane():
    cam = TrackballCamera()
    forward = rotate_vector(cam.rotation(), (0.0, 0.0, -1.0))
    cam.drag(30, -20, (800, 600), pan=True)
    moved = np.asarray(cam.target)
    assert np.linalg.norm(moved) > 0.0
    assert float(np.dot(moved, forward)) == pytest.approx(0.0, abs=1e-9)
    assert cam.azimuth == 0.3
    assert cam.elevation == 0.2


def test_pan_round_trip():
    cam = TrackballCamera()
    cam.drag(30, -20, (800, 600), pan=True)
    cam.drag(-30, 20, (800, 600), pan=True)
    assert np.allclose(cam.target, [0.0, 0.0, 0.0])


def test_apply_to_camera():
    cam = TrackballCamera(radius=4.0, azimuth=0.5, elevation=0.3)
    scene_camera = Camera(Transform(scale=np.array([2.0, 2.0, 2.0])))
    cam.apply_to(scene_camera, (200, 100))
    assert scene_camera.aspect == pytest.approx(2.0)
    assert np.allclose(scene_camera.transform.scale, [1.0, 1.0, 1.0])
    assert np.allclose(scene_camera.transform.position, cam.position())
    assert np.allclose(scene_camera.transform.rotation, cam.rotation())
    world = scene_camera.transform.make_local_to_world()
    assert np.allclose(world[:, 3], cam.position())


def test_zero_window_raises():
    cam = TrackballCamera()
    with pytest.raises(ZeroDivisionError):
        cam.drag(1, 1, (0, 0))