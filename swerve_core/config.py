"""Drivetrain configuration loaded from YAML.

Example layout (see configs/swerve.yaml)::

    drivetrain:
      max_speed_mps: 4.5
      heading_zero_delay_s: 1.0
    turn_pid: {kp: 0.5, ki: 0.0, kd: 0.0}
    modules:
      - name: front_left
        drive_channel: 1
        turn_channel: 2
        encoder_channel: 9
        drive_inverted: false
        turn_inverted: true
        absolute_offset_rad: -0.25
        encoder_reversed: false
        x_m: 0.3
        y_m: 0.3
      ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List
import math

import yaml

from .errors import ConfigurationError
from .kinematics import NUM_MODULES
from .pid import PIDConfig
from .state import CalibrationParams, ModuleGeometry


@dataclass
class ModuleConfig:
    name: str
    drive_channel: int
    turn_channel: int
    encoder_channel: int
    x_m: float
    y_m: float
    drive_inverted: bool = False
    turn_inverted: bool = False
    absolute_offset_rad: float = 0.0
    encoder_reversed: bool = False

    @property
    def geometry(self) -> ModuleGeometry:
        return ModuleGeometry(self.x_m, self.y_m)

    @property
    def calibration(self) -> CalibrationParams:
        return CalibrationParams(self.absolute_offset_rad, self.encoder_reversed)


@dataclass
class DrivetrainConfig:
    max_speed_mps: float
    modules: List[ModuleConfig]
    turn_pid: PIDConfig = field(default_factory=PIDConfig)
    heading_zero_delay_s: float = 1.0
    stop_on_near_zero: bool = False
    near_zero_speed: float = 0.001

    def validate(self) -> None:
        """Raise ConfigurationError if the constants cannot drive a robot."""
        if not (math.isfinite(self.max_speed_mps) and self.max_speed_mps > 0.0):
            raise ConfigurationError(f"max_speed_mps must be positive, got {self.max_speed_mps}")
        if len(self.modules) != NUM_MODULES:
            raise ConfigurationError(f"expected {NUM_MODULES} modules, got {len(self.modules)}")
        names = [m.name for m in self.modules]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate module names: {names}")
        for attr in ("drive_channel", "turn_channel", "encoder_channel"):
            channels = [getattr(m, attr) for m in self.modules]
            if len(set(channels)) != len(channels):
                raise ConfigurationError(f"duplicate {attr}: {channels}")
        if self.heading_zero_delay_s < 0.0:
            raise ConfigurationError("heading_zero_delay_s must be >= 0")
        if self.near_zero_speed < 0.0:
            raise ConfigurationError("near_zero_speed must be >= 0")
        if self.turn_pid.period_s <= 0.0:
            raise ConfigurationError("turn_pid.period_s must be positive")


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_config(cfg: Dict[str, Any]) -> DrivetrainConfig:
    """Build a validated DrivetrainConfig from a parsed YAML document."""
    try:
        drive_cfg = cfg["drivetrain"]
        pid_cfg = cfg.get("turn_pid", {}) or {}
        modules = [
            ModuleConfig(
                name=str(m["name"]),
                drive_channel=int(m["drive_channel"]),
                turn_channel=int(m["turn_channel"]),
                encoder_channel=int(m["encoder_channel"]),
                x_m=float(m["x_m"]),
                y_m=float(m["y_m"]),
                drive_inverted=bool(m.get("drive_inverted", False)),
                turn_inverted=bool(m.get("turn_inverted", False)),
                absolute_offset_rad=float(m.get("absolute_offset_rad", 0.0)),
                encoder_reversed=bool(m.get("encoder_reversed", False)),
            )
            for m in cfg["modules"]
        ]
        config = DrivetrainConfig(
            max_speed_mps=float(drive_cfg["max_speed_mps"]),
            modules=modules,
            turn_pid=PIDConfig(**{k: float(v) for k, v in pid_cfg.items()}),
            heading_zero_delay_s=float(drive_cfg.get("heading_zero_delay_s", 1.0)),
            stop_on_near_zero=bool(drive_cfg.get("stop_on_near_zero", False)),
            near_zero_speed=float(drive_cfg.get("near_zero_speed", 0.001)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid drivetrain config: {exc!r}") from exc

    config.validate()
    return config


def load_config(path: str) -> DrivetrainConfig:
    """Load and validate the drivetrain section of a YAML config file."""
    cfg = load_yaml(path)
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")
    return parse_config(cfg)
