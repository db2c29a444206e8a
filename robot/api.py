from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class DriveActuator(ABC):
    """Drive motor of one module, with its integrated wheel encoder."""

    @abstractmethod
    def set_output(self, ratio: float) -> None:
        """Command duty ratio in [-1, 1]."""

    @abstractmethod
    def get_velocity(self) -> float:
        """Wheel surface speed (m/s)."""

    @abstractmethod
    def get_distance(self) -> float:
        """Cumulative wheel travel (m)."""


class TurnActuator(ABC):
    """Steering motor of one module."""

    @abstractmethod
    def set_output(self, signal: float) -> None:
        """Command duty signal in [-1, 1]."""


class AngleSensor(ABC):
    """Absolute steering angle sensor of one module.

    Implementations raise ``swerve_core.errors.SensorFault`` when the hardware
    returns an invalid reading.
    """

    @abstractmethod
    def read_absolute_angle(self) -> float:
        """Raw absolute angle (radians)."""

    @abstractmethod
    def read_angular_velocity(self) -> float:
        """Steering rate (rad/s)."""


class HeadingSensor(ABC):
    """Robot heading source (gyro)."""

    @abstractmethod
    def read_heading(self) -> float:
        """Robot heading (radians), CCW positive."""

    @abstractmethod
    def zero(self) -> None:
        """Make the current direction the zero heading."""


class TelemetrySink(ABC):
    """Fire-and-forget key/value output."""

    @abstractmethod
    def publish(self, key: str, value: Any) -> None:
        """Publish a value; implementations must not raise."""
