"""
Geometry utilities for the swerve drivetrain core.

Provides angle wrapping, shortest-path angle differences, frame rotations and
small scalar helpers used by the module controllers, kinematics and odometry.
"""

from __future__ import annotations

from typing import Tuple
import math


TWO_PI = 2.0 * math.pi
HALF_PI = 0.5 * math.pi


# ---------------------------------------------------------------------------
# Angle helpers
# ---------------------------------------------------------------------------


def wrap_angle(theta: float) -> float:
    """Wrap angle to (-pi, pi] radians.

    Both +pi and -pi map to +pi, so the seam is resolved the same way
    everywhere in the drivetrain. Angles already in range are returned
    unchanged.
    """
    if -math.pi < theta <= math.pi:
        return theta
    wrapped = math.pi - (math.pi - theta) % TWO_PI
    # float modulo can round up to exactly 2*pi
    return math.pi if wrapped <= -math.pi else wrapped


def angle_diff(a: float, b: float) -> float:
    """Smallest signed difference from angle a to angle b (radians)."""
    return wrap_angle(b - a)


# ---------------------------------------------------------------------------
# Vector and frame helpers
# ---------------------------------------------------------------------------


def rotate(x: float, y: float, theta: float) -> Tuple[float, float]:
    """Rotate vector (x, y) counter-clockwise by theta."""
    c = math.cos(theta)
    s = math.sin(theta)
    return c * x - s * y, s * x + c * y


def body_to_world(
    bx: float,
    by: float,
    ox: float,
    oy: float,
    yaw: float,
) -> Tuple[float, float]:
    """Transform body frame (bx, by) to world with origin (ox, oy) and heading yaw."""
    wx, wy = rotate(bx, by, yaw)
    return ox + wx, oy + wy


def polar(dx: float, dy: float) -> Tuple[float, float]:
    """Return (magnitude, direction) of vector (dx, dy)."""
    return math.hypot(dx, dy), wrap_angle(math.atan2(dy, dx))


def clamp(value: float, vmin: float, vmax: float) -> float:
    """Clamp value to [vmin, vmax]."""
    return max(vmin, min(vmax, value))


def is_finite(*values: float) -> bool:
    """True if every value is a finite float (no NaN or inf)."""
    return all(math.isfinite(v) for v in values)
