"""Wrap-aware PID controller for the module turn servo.

The error is the shortest signed angular distance from measurement to setpoint,
wrapped through the +/-pi seam exactly like the module path optimizer, so the
servo never chases the long way round.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .geometry_utils import angle_diff, clamp


@dataclass
class PIDConfig:
    """Gains and limits for the turn servo."""

    kp: float = 0.5
    ki: float = 0.0
    kd: float = 0.0
    integral_limit: float = 0.5
    output_limit: float = 1.0
    tolerance_rad: float = 0.01
    period_s: float = 0.02


class ContinuousPIDController:
    """PID on a circular input range.

    Control law:
        e = wrap(setpoint - measurement)
        u = kp * e + ki * integral(e) + kd * de/dt, clamped to [-limit, limit]
    """

    def __init__(self, config: PIDConfig) -> None:
        if config.period_s <= 0.0:
            raise ValueError("period_s must be positive")
        self.cfg = config

        # Integral state (accumulated error) and previous error for derivative
        self.integral: float = 0.0
        self.prev_error: float = 0.0
        self._has_prev = False
        self.last_error: float = 0.0

    def calculate(self, measurement: float, setpoint: float) -> float:
        """Return the servo output for one control period."""
        error = angle_diff(measurement, setpoint)
        dt = self.cfg.period_s

        if self._has_prev:
            derivative = angle_diff(self.prev_error, error) / dt
        else:
            derivative = 0.0
        self.prev_error = error
        self._has_prev = True
        self.last_error = error

        # Anti-windup: clamp integral term
        self.integral = clamp(
            self.integral + error * dt, -self.cfg.integral_limit, self.cfg.integral_limit
        )

        output = self.cfg.kp * error + self.cfg.ki * self.integral + self.cfg.kd * derivative
        return clamp(output, -self.cfg.output_limit, self.cfg.output_limit)

    def at_setpoint(self) -> bool:
        return self._has_prev and abs(self.last_error) <= self.cfg.tolerance_rad

    def reset(self) -> None:
        """Clear integral and derivative state."""
        self.integral = 0.0
        self.prev_error = 0.0
        self.last_error = 0.0
        self._has_prev = False

    def get_diagnostics(self) -> Dict[str, float]:
        return {"error": self.last_error, "integral": self.integral}
