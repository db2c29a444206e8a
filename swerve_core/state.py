from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple
import math

from .geometry_utils import rotate, wrap_angle


@dataclass(frozen=True)
class ModuleState:
    """Commanded or measured velocity of one module.

    Attributes
    ----------
    speed_mps : float
        Signed wheel speed (m/s). Negative only after path optimization.
    angle : float
        Wheel direction (radians), CCW from robot +x.
    """

    speed_mps: float = 0.0
    angle: float = 0.0

    def vector(self) -> Tuple[float, float]:
        """Wheel velocity as (vx, vy) in the robot frame."""
        return self.speed_mps * math.cos(self.angle), self.speed_mps * math.sin(self.angle)

    def to_dict(self) -> Dict[str, Any]:
        return {"speed_mps": self.speed_mps, "angle_deg": math.degrees(self.angle)}


@dataclass(frozen=True)
class ModulePosition:
    """Cumulative wheel travel (meters) and current wheel direction (radians)."""

    distance_m: float = 0.0
    angle: float = 0.0


@dataclass(frozen=True)
class ModuleGeometry:
    """Offset of a module from the robot's center of rotation (meters).

    +x is forward, +y is left.
    """

    x_m: float
    y_m: float


@dataclass(frozen=True)
class CalibrationParams:
    """Maps the raw absolute sensor angle onto the module's mechanical zero."""

    absolute_offset_rad: float = 0.0
    reversed: bool = False


@dataclass(frozen=True)
class ChassisSpeeds:
    """Robot-frame velocity.

    Attributes
    ----------
    vx : float
        Forward velocity (m/s).
    vy : float
        Leftward velocity (m/s).
    omega : float
        Angular velocity (rad/s), CCW positive.
    """

    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0

    @classmethod
    def from_field_relative(
        cls, vx: float, vy: float, omega: float, heading: float
    ) -> "ChassisSpeeds":
        """Convert a field-frame command to the robot frame given the robot heading."""
        rx, ry = rotate(vx, vy, -heading)
        return cls(vx=rx, vy=ry, omega=omega)

    def is_zero(self) -> bool:
        return self.vx == 0.0 and self.vy == 0.0 and self.omega == 0.0


@dataclass(frozen=True)
class Twist2d:
    """Incremental robot-frame displacement (dx, dy meters, dtheta radians)."""

    dx: float = 0.0
    dy: float = 0.0
    dtheta: float = 0.0


@dataclass(frozen=True)
class Pose2d:
    """Robot pose in the field frame."""

    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "heading", wrap_angle(self.heading))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize pose to a dict for logging/telemetry."""
        return {"x": self.x, "y": self.y, "heading_deg": math.degrees(self.heading)}
