from __future__ import annotations

import math

from robot.api import DriveActuator, TurnActuator
from swerve_core.geometry_utils import clamp, wrap_angle


class _SimMotor:
    """First-order motor plant driven by a duty ratio in [-1, 1].

    The `inverted` flag mirrors a motor controller inversion setting. The
    simulated motor is mounted so that the configured inversion is correct,
    so a positive commanded ratio always moves the mechanism positively;
    `applied_output` exposes what the controller would put on the wire.
    """

    def __init__(self, max_rate: float, inverted: bool = False, time_constant: float = 0.0) -> None:
        self.max_rate = max_rate
        self.inverted = inverted
        self.time_constant = time_constant

        self.applied_output = 0.0
        self.rate = 0.0
        self.travel = 0.0

    def set_output(self, ratio: float) -> None:
        ratio = clamp(float(ratio), -1.0, 1.0)
        self.applied_output = -ratio if self.inverted else ratio

    @property
    def command(self) -> float:
        """Commanded ratio in the mechanism frame."""
        return -self.applied_output if self.inverted else self.applied_output

    def step(self, dt: float) -> None:
        target = self.command * self.max_rate
        if self.time_constant > 0.0:
            alpha = 1.0 - math.exp(-dt / self.time_constant)
            self.rate += alpha * (target - self.rate)
        else:
            self.rate = target
        self.travel += self.rate * dt


class SimDriveMotor(_SimMotor, DriveActuator):
    """Simulated drive motor with an integrated wheel encoder (meters)."""

    def get_velocity(self) -> float:
        return self.rate

    def get_distance(self) -> float:
        return self.travel


class SimTurnMotor(_SimMotor, TurnActuator):
    """Simulated steering motor; `angle` is the true mechanism angle."""

    def __init__(
        self,
        max_rate: float,
        inverted: bool = False,
        time_constant: float = 0.0,
        initial_angle: float = 0.0,
    ) -> None:
        super().__init__(max_rate, inverted, time_constant)
        self.travel = initial_angle

    @property
    def angle(self) -> float:
        return wrap_angle(self.travel)
