from __future__ import annotations

from typing import Optional


class SwerveError(Exception):
    """Base class for drivetrain errors."""


class SensorFault(SwerveError):
    """A sensor reading was out of range or unavailable.

    Raised by module controllers; the coordinator isolates it to the module
    that produced it and keeps the other modules running.
    """

    def __init__(self, message: str, module_name: Optional[str] = None) -> None:
        self.module_name = module_name
        if module_name:
            message = f"[{module_name}] {message}"
        super().__init__(message)


class ConfigurationError(SwerveError):
    """Geometry or constants are inconsistent; the drivetrain cannot start."""


class CommandRejected(SwerveError):
    """A drive command was malformed and was not applied."""
