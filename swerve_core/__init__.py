"""
Kinematics core for a four-module swerve drivetrain.

Components:
- state: value types (module state/position, geometry, chassis speeds, pose)
- geometry_utils: angle wrapping and frame helpers
- kinematics: chassis <-> module conversions and desaturation
- pid: wrap-aware turn servo
- module: per-module calibration, path optimization and actuation
- odometry: dead-reckoning pose estimation
- coordinator: drivetrain composition and periodic update
- config: YAML configuration
- errors: SensorFault, ConfigurationError, CommandRejected
"""

from .errors import CommandRejected, ConfigurationError, SensorFault, SwerveError
from .state import (
    CalibrationParams,
    ChassisSpeeds,
    ModuleGeometry,
    ModulePosition,
    ModuleState,
    Pose2d,
    Twist2d,
)
from .kinematics import KinematicsEngine
from .pid import ContinuousPIDController, PIDConfig
from .module import ModuleController, optimize
from .odometry import OdometryEstimator, OdometryState
from .config import DrivetrainConfig, ModuleConfig, load_config, parse_config
from .coordinator import DeferredTask, DriveCoordinator, ModuleHardware

__all__ = [
    "SwerveError",
    "SensorFault",
    "ConfigurationError",
    "CommandRejected",
    "CalibrationParams",
    "ChassisSpeeds",
    "ModuleGeometry",
    "ModulePosition",
    "ModuleState",
    "Pose2d",
    "Twist2d",
    "KinematicsEngine",
    "ContinuousPIDController",
    "PIDConfig",
    "ModuleController",
    "optimize",
    "OdometryEstimator",
    "OdometryState",
    "DrivetrainConfig",
    "ModuleConfig",
    "load_config",
    "parse_config",
    "DeferredTask",
    "DriveCoordinator",
    "ModuleHardware",
]
