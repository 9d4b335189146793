"""Small vector, quaternion and matrix helpers built on numpy.

Quaternions are ``(w, x, y, z)`` arrays.  Matrices follow the usual
mathematical layout: ``m[row, column]``, so a 4x3 affine transform is a
3-row by 4-column array whose last column is the translation.
"""

from __future__ import annotations

import math

import numpy as np


def _vec(v) -> np.ndarray:
    return np.asarray(v, dtype=float)


def quat_to_mat3(q) -> np.ndarray:
    """Rotation matrix of quaternion ``q``."""
    w, x, y, z = (float(c) for c in q)
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array(
        [
            [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
            [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
            [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
        ]
    )


def quat_multiply(a, b) -> np.ndarray:
    """Hamilton product ``a * b`` (apply ``b`` first, then ``a``)."""
    aw, ax, ay, az = (float(c) for c in a)
    bw, bx, by, bz = (float(c) for c in b)
    return np.array(
        [
            aw * bw - ax * bx - ay * by - az * bz,
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
        ]
    )


def quat_inverse(q) -> np.ndarray:
    """Multiplicative inverse of quaternion ``q``."""
    q = _vec(q)
    conjugate = np.array([q[0], -q[1], -q[2], -q[3]])
    return conjugate / float(np.dot(q, q))


def angle_axis(angle: float, axis) -> np.ndarray:
    """Quaternion rotating by ``angle`` radians about ``axis`` (not normalised)."""
    half = 0.5 * angle
    s = math.sin(half)
    ax = _vec(axis)
    return np.array([math.cos(half), ax[0] * s, ax[1] * s, ax[2] * s])


def rotate_vector(q, v) -> np.ndarray:
    """Rotate vector ``v`` by quaternion ``q``."""
    q = _vec(q)
    v = _vec(v)
    qv = q[1:]
    uv = np.cross(qv, v)
    uuv = np.cross(qv, uv)
    return v + 2.0 * (uv * q[0] + uuv)


def normalize(v) -> np.ndarray:
    """``v`` scaled to unit length (NaN for a zero vector)."""
    v = _vec(v)
    with np.errstate(invalid="ignore", divide="ignore"):
        return v / np.linalg.norm(v)


def infinite_perspective(fovy: float, aspect: float, near: float) -> np.ndarray:
    """Right-handed perspective projection with the far plane at infinity."""
    extent = math.tan(0.5 * fovy) * near
    left, right = -extent * aspect, extent * aspect
    bottom, top = -extent, extent
    m = np.zeros((4, 4))
    m[0, 0] = 2.0 * near / (right - left)
    m[1, 1] = 2.0 * near / (top - bottom)
    m[2, 2] = -1.0
    m[3, 2] = -1.0
    m[2, 3] = -2.0 * near
    return m


def pad_mat4(m) -> np.ndarray:
    """Extend a 3x4 affine matrix to 4x4 with a ``(0, 0, 0, 1)`` bottom row."""
    out = np.zeros((4, 4))
    out[:3, :] = _vec(m)
    out[3, 3] = 1.0
    return out