from __future__ import annotations

from typing import Optional

from robot.api import AngleSensor
from robot.drivers.motor_driver import SimTurnMotor
from swerve_core.errors import SensorFault
from swerve_core.geometry_utils import wrap_angle


class SimAbsoluteEncoder(AngleSensor):
    """Simulated absolute angle sensor attached to a turn motor.

    The raw reading is the mechanism angle as seen by a sensor mounted with
    `offset_rad` and optional reversal, so calibrating with the same values
    recovers the true angle.

    Fault injection: set `fault` to "nan" to return NaN readings, or to
    "error" to raise SensorFault, as an unresponsive device would.
    """

    def __init__(
        self,
        motor: SimTurnMotor,
        offset_rad: float = 0.0,
        reversed: bool = False,
        channel: Optional[int] = None,
    ) -> None:
        self.motor = motor
        self.offset_rad = offset_rad
        self.reversed = reversed
        self.channel = channel
        self.fault: Optional[str] = None

    def _check(self) -> None:
        if self.fault == "error":
            raise SensorFault(f"encoder {self.channel} not responding")

    def read_absolute_angle(self) -> float:
        self._check()
        if self.fault == "nan":
            return float("nan")
        angle = -self.motor.angle if self.reversed else self.motor.angle
        return wrap_angle(angle + self.offset_rad)

    def read_angular_velocity(self) -> float:
        self._check()
        if self.fault == "nan":
            return float("nan")
        return -self.motor.rate if self.reversed else self.motor.rate
