"""
Swerve drive kinematics.

Converts between robot-frame chassis motion and per-module wheel states.

For a module mounted at (x, y) relative to the center of rotation, the wheel
velocity induced by a chassis command (vx, vy, omega) is

    v_wheel_x = vx - omega * y
    v_wheel_y = vy + omega * x

Stacking the two rows of every module gives the 2N x 3 Jacobian A. Inverse
kinematics is A @ [vx, vy, omega]; forward kinematics is the least-squares
solution pinv(A) @ [v1x, v1y, ..., vNx, vNy].
"""

from __future__ import annotations

from typing import List, Sequence, Tuple
import math

import numpy as np

from .errors import ConfigurationError
from .geometry_utils import polar
from .state import ChassisSpeeds, ModuleGeometry, ModulePosition, ModuleState, Twist2d

NUM_MODULES = 4


class KinematicsEngine:
    """Kinematics model for a four-module swerve drivetrain."""

    def __init__(self, geometries: Sequence[ModuleGeometry]) -> None:
        self.geometries = tuple(geometries)
        self._validate()

        self._jacobian = self._build_jacobian()
        self._jacobian_pinv = np.linalg.pinv(self._jacobian)

        # Directions returned for a zero command; a zero vector has no heading.
        self._last_angles: List[float] = [0.0] * NUM_MODULES

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    def _validate(self) -> None:
        if len(self.geometries) != NUM_MODULES:
            raise ConfigurationError(
                f"expected {NUM_MODULES} module geometries, got {len(self.geometries)}"
            )
        for g in self.geometries:
            if not (math.isfinite(g.x_m) and math.isfinite(g.y_m)):
                raise ConfigurationError(f"non-finite module offset: {g}")
        offsets = {(g.x_m, g.y_m) for g in self.geometries}
        if len(offsets) != NUM_MODULES:
            raise ConfigurationError("two modules share the same offset")

    def _build_jacobian(self) -> np.ndarray:
        rows = []
        for g in self.geometries:
            rows.append([1.0, 0.0, -g.y_m])
            rows.append([0.0, 1.0, g.x_m])
        jacobian = np.array(rows, dtype=np.float64)  # (8 x 3)
        if np.linalg.matrix_rank(jacobian) < 3:
            raise ConfigurationError("module geometry cannot resolve rotation")
        return jacobian

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------
    def inverse(self, speeds: ChassisSpeeds) -> List[ModuleState]:
        """Compute one module state per module from a chassis command.

        A zero command keeps every module at the angle it was last given,
        with speed exactly 0.
        """
        if speeds.is_zero():
            return [ModuleState(0.0, angle) for angle in self._last_angles]

        wheel = self._jacobian @ np.array([speeds.vx, speeds.vy, speeds.omega])
        states = []
        for i in range(NUM_MODULES):
            speed, angle = polar(float(wheel[2 * i]), float(wheel[2 * i + 1]))
            if speed == 0.0:
                # Module sits on the instantaneous center of rotation.
                angle = self._last_angles[i]
            states.append(ModuleState(speed, angle))
        self._last_angles = [s.angle for s in states]
        return states

    def forward(self, states: Sequence[ModuleState]) -> ChassisSpeeds:
        """Least-squares chassis velocity from measured module states."""
        vx, vy, omega = self._solve([s.vector() for s in self._check(states)])
        return ChassisSpeeds(vx=vx, vy=vy, omega=omega)

    def forward_deltas(self, deltas: Sequence[ModulePosition]) -> Twist2d:
        """Least-squares robot-frame displacement from per-module travel.

        Each delta carries the distance travelled since the previous sample and
        the module angle over that interval.
        """
        vectors = [
            (d.distance_m * math.cos(d.angle), d.distance_m * math.sin(d.angle))
            for d in self._check(deltas)
        ]
        dx, dy, dtheta = self._solve(vectors)
        return Twist2d(dx=dx, dy=dy, dtheta=dtheta)

    def reset_angles(self, angles: Sequence[float]) -> None:
        """Seed the angles held for zero commands (e.g. from measured modules)."""
        if len(angles) != NUM_MODULES:
            raise ValueError(f"expected {NUM_MODULES} angles, got {len(angles)}")
        self._last_angles = [float(a) for a in angles]

    # ------------------------------------------------------------------
    # Desaturation
    # ------------------------------------------------------------------
    @staticmethod
    def desaturate(states: Sequence[ModuleState], max_speed: float) -> List[ModuleState]:
        """Scale all states down by a common ratio so none exceeds max_speed.

        Relative wheel speeds (and so the intended path curvature) are
        preserved. Speeds are never scaled up.
        """
        if max_speed <= 0.0:
            raise ValueError("max_speed must be positive")
        peak = max((abs(s.speed_mps) for s in states), default=0.0)
        if peak <= max_speed:
            return list(states)
        ratio = max_speed / peak
        return [ModuleState(s.speed_mps * ratio, s.angle) for s in states]

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------
    def _solve(self, vectors: Sequence[Tuple[float, float]]) -> Tuple[float, float, float]:
        flat = np.array([c for v in vectors for c in v], dtype=np.float64)
        result = self._jacobian_pinv @ flat
        return float(result[0]), float(result[1]), float(result[2])

    @staticmethod
    def _check(items: Sequence) -> Sequence:
        if len(items) != NUM_MODULES:
            raise ValueError(f"expected {NUM_MODULES} modules, got {len(items)}")
        return items
