"""Z-up trackball camera controls for inspecting scenes and meshes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from .linalg import angle_axis, quat_multiply, quat_to_mat3, rotate_vector

_PI = 3.1415926
_TWO_PI = 2.0 * _PI
_MIN_RADIUS = 1e-1
_MAX_RADIUS = 1e6


def _round_half_away(x: float) -> float:
    """Round to the nearest integer, halves away from zero."""
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _wrap_angle(angle: float) -> float:
    """Wrap ``angle`` (radians) into roughly [-pi, pi]."""
    turns = angle / _TWO_PI
    turns -= _round_half_away(turns)
    return turns * _TWO_PI


@dataclass
class TrackballCamera:
    """Orbit camera around ``target``; azimuth is ccw of -y, elevation above ground."""

    radius: float = 2.0
    azimuth: float = 0.3
    elevation: float = 0.2
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    flip_x: bool = False

    def begin_tumble(self) -> None:
        """Start a drag; azimuth motion is reversed when the camera is upside-down."""
        self.flip_x = abs(self.elevation) > 0.5 * _PI

    def drag(self, xrel: float, yrel: float, window_size, pan: bool = False) -> None:
        """Apply mouse motion ``(xrel, yrel)`` in a window of ``(width, height)``.

        With ``pan`` the target slides in the view plane; otherwise the camera tumbles.
        """
        width, height = (float(v) for v in window_size)
        dx = xrel / width * 2.0
        dx *= height / width
        dy = yrel / height * -2.0

        if pan:
            frame = quat_to_mat3(self.rotation())
            self.target = np.asarray(self.target, dtype=float) - (
                frame[:, 0] * (dx * self.radius) + frame[:, 1] * (dy * self.radius)
            )
        else:
            self.azimuth -= 3.0 * dx * (-1.0 if self.flip_x else 1.0)
            self.elevation -= 3.0 * dy
            self.azimuth = _wrap_angle(self.azimuth)
            self.elevation = _wrap_angle(self.elevation)

    def dolly(self, wheel_y: float) -> None:
        """Move toward (positive ``wheel_y``) or away from the target."""
        self.radius *= 0.5 ** (0.1 * wheel_y)
        self.radius = min(max(self.radius, _MIN_RADIUS), _MAX_RADIUS)

    def rotation(self) -> np.ndarray:
        """Camera orientation as a (w, x, y, z) quaternion."""
        return quat_multiply(
            angle_axis(self.azimuth, (0.0, 0.0, 1.0)),
            angle_axis(0.5 * _PI - self.elevation, (1.0, 0.0, 0.0)),
        )

    def position(self) -> np.ndarray:
        """Camera position: ``radius`` along the camera's +z axis from the target."""
        back = rotate_vector(self.rotation(), (0.0, 0.0, 1.0))
        return np.asarray(self.target, dtype=float) + self.radius * back

    def apply_to(self, camera, drawable_size) -> None:
        """Place ``camera`` (a scene Camera) and set its aspect for ``drawable_size``."""
        transform = camera.transform
        transform.rotation = self.rotation()
        transform.position = self.position()
        transform.scale = np.ones(3)
        width, height = (float(v) for v in drawable_size)
        camera.aspect = width / height