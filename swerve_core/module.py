"""
Single swerve module: calibration, state readout, path optimization and the
turn servo.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import logging
import math

from robot.api import AngleSensor, DriveActuator, TurnActuator

from .errors import CommandRejected, SensorFault
from .geometry_utils import HALF_PI, angle_diff, clamp, wrap_angle
from .pid import ContinuousPIDController, PIDConfig
from .state import CalibrationParams, ModulePosition, ModuleState

logger = logging.getLogger(__name__)


def optimize(current_angle: float, target: ModuleState) -> ModuleState:
    """Return the equivalent of `target` reachable with at most a 90 degree turn.

    If the shortest turn from `current_angle` to the target angle is more than
    pi/2, the wheel is pointed the opposite way and driven backwards instead.
    A turn of exactly pi/2 is not flipped.
    """
    delta = angle_diff(current_angle, target.angle)
    if abs(delta) > HALF_PI:
        return ModuleState(-target.speed_mps, wrap_angle(target.angle + math.pi))
    return ModuleState(target.speed_mps, wrap_angle(target.angle))


class ModuleController:
    """One swerve module and its exclusively owned hardware handles.

    Parameters
    ----------
    name : str
        Label used in logs, faults and telemetry keys.
    drive : DriveActuator
        Drive motor with wheel encoder.
    turn : TurnActuator
        Steering motor.
    sensor : AngleSensor
        Absolute steering angle sensor.
    calibration : CalibrationParams
        Offset and reversal mapping raw sensor angle to module angle.
    max_speed : float
        Physical maximum wheel speed (m/s); drive output is speed / max_speed.
    pid_config : PIDConfig
        Turn servo gains.
    stop_on_near_zero : bool
        If set, commands slower than `near_zero_speed` stop the module
        instead of steering it.
    """

    def __init__(
        self,
        name: str,
        drive: DriveActuator,
        turn: TurnActuator,
        sensor: AngleSensor,
        calibration: CalibrationParams,
        max_speed: float,
        pid_config: Optional[PIDConfig] = None,
        stop_on_near_zero: bool = False,
        near_zero_speed: float = 0.001,
    ) -> None:
        self.name = name
        self._drive = drive
        self._turn = turn
        self._sensor = sensor
        self._calibration = calibration
        self.max_speed = max_speed
        self.stop_on_near_zero = stop_on_near_zero
        self.near_zero_speed = near_zero_speed

        self.turn_pid = ContinuousPIDController(pid_config or PIDConfig())

        self._distance_ref = 0.0
        self._desired = ModuleState()

        # Last-known-good readings
        self.last_state = ModuleState()
        self.last_position = ModulePosition()

    @property
    def calibration(self) -> CalibrationParams:
        return self._calibration

    @property
    def desired_state(self) -> ModuleState:
        """Last optimized state sent to the actuators."""
        return self._desired

    # ------------------------------------------------------------------
    # Readout
    # ------------------------------------------------------------------
    def calibrated_angle(self) -> float:
        """Module angle in (-pi, pi] after offset and reversal."""
        raw = self._sensor.read_absolute_angle()
        if raw is None or not math.isfinite(raw):
            raise SensorFault(f"invalid absolute angle {raw!r}", self.name)
        angle = raw - self._calibration.absolute_offset_rad
        if self._calibration.reversed:
            angle = -angle
        return wrap_angle(angle)

    def turning_velocity(self) -> float:
        rate = self._sensor.read_angular_velocity()
        if rate is None or not math.isfinite(rate):
            raise SensorFault(f"invalid angular velocity {rate!r}", self.name)
        return -rate if self._calibration.reversed else rate

    def state(self) -> ModuleState:
        velocity = self._read_drive(self._drive.get_velocity(), "velocity")
        self.last_state = ModuleState(velocity, self.calibrated_angle())
        return self.last_state

    def position(self) -> ModulePosition:
        distance = self._read_drive(self._drive.get_distance(), "distance")
        self.last_position = ModulePosition(distance - self._distance_ref, self.calibrated_angle())
        return self.last_position

    def reset_calibration(self) -> None:
        """Re-seed the distance reference at the current wheel reading.

        The held angle is seeded from the measured angle so that `hold()`
        before any command keeps the wheel where it is.
        """
        self._distance_ref = self._read_drive(self._drive.get_distance(), "distance")
        self.turn_pid.reset()
        angle = self.calibrated_angle()
        self.last_position = ModulePosition(0.0, angle)
        self._desired = ModuleState(0.0, angle)
        logger.debug("%s: distance reference reset to %.4f m", self.name, self._distance_ref)

    # ------------------------------------------------------------------
    # Actuation
    # ------------------------------------------------------------------
    def set_desired_state(self, target: ModuleState) -> None:
        """Optimize `target` against the current angle and drive both motors."""
        if not (math.isfinite(target.speed_mps) and math.isfinite(target.angle)):
            raise CommandRejected(f"[{self.name}] non-finite target {target}")

        if self.stop_on_near_zero and abs(target.speed_mps) < self.near_zero_speed:
            self.stop()
            return

        current = self.calibrated_angle()
        optimized = optimize(current, target)

        drive_output = clamp(optimized.speed_mps / self.max_speed, -1.0, 1.0)
        turn_output = self.turn_pid.calculate(current, optimized.angle)

        self._drive.set_output(drive_output)
        self._turn.set_output(turn_output)
        self._desired = optimized

    def hold(self) -> None:
        """Zero drive speed while keeping the wheel at its commanded angle."""
        self.set_desired_state(ModuleState(0.0, self._desired.angle))

    def stop(self) -> None:
        """Stop the module by zeroing both the drive and turn outputs."""
        self._drive.set_output(0.0)
        self._turn.set_output(0.0)
        self._desired = ModuleState(0.0, self._desired.angle)

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------
    def _read_drive(self, value: float, what: str) -> float:
        if value is None or not math.isfinite(value):
            raise SensorFault(f"invalid drive {what} {value!r}", self.name)
        return float(value)

    def telemetry(self) -> Dict[str, Any]:
        """Last-known-good readings for dashboards."""
        return {
            "angle_deg": math.degrees(self.last_position.angle),
            "distance_m": self.last_position.distance_m,
            "desired": self._desired.to_dict(),
        }
