from __future__ import annotations

from typing import Optional

from robot.api import HeadingSensor
from swerve_core.geometry_utils import wrap_angle


class SimGyro(HeadingSensor):
    """Simulated heading sensor.

    Reports the true robot yaw relative to the yaw at the last `zero()`.
    `fault` works like SimAbsoluteEncoder: "nan" yields NaN readings.
    """

    def __init__(self, initial_yaw: float = 0.0) -> None:
        self.true_yaw = initial_yaw
        self._zero_yaw = 0.0
        self.zero_count = 0
        self.fault: Optional[str] = None

    def advance(self, omega: float, dt: float) -> None:
        """Integrate the true yaw by omega over dt."""
        self.true_yaw = wrap_angle(self.true_yaw + omega * dt)

    def read_heading(self) -> float:
        if self.fault == "nan":
            return float("nan")
        return wrap_angle(self.true_yaw - self._zero_yaw)

    def zero(self) -> None:
        self._zero_yaw = self.true_yaw
        self.zero_count += 1
