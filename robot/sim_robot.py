from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from robot.drivers.encoder_driver import SimAbsoluteEncoder
from robot.drivers.imu_driver import SimGyro
from robot.drivers.motor_driver import SimDriveMotor, SimTurnMotor
from swerve_core.config import DrivetrainConfig
from swerve_core.coordinator import ModuleHardware
from swerve_core.geometry_utils import body_to_world, wrap_angle
from swerve_core.kinematics import KinematicsEngine
from swerve_core.state import ModuleState, Pose2d


@dataclass
class SimConfig:
    """Plant parameters for the simulated drivetrain."""

    dt: float = 0.02
    max_turn_rate: float = 10.0
    time_constant: float = 0.0


class SimSwerveRobot:
    """Simulated four-module swerve hardware.

    Builds one drive motor, turn motor and absolute encoder per configured
    module plus a gyro, and integrates the true chassis motion from the
    simulated wheel states on every `step(dt)`.
    """

    def __init__(self, config: DrivetrainConfig, sim: SimConfig) -> None:
        self.config = config
        self.sim = sim

        self.drive_motors: Dict[str, SimDriveMotor] = {}
        self.turn_motors: Dict[str, SimTurnMotor] = {}
        self.encoders: Dict[str, SimAbsoluteEncoder] = {}
        for m in config.modules:
            drive = SimDriveMotor(config.max_speed_mps, m.drive_inverted, sim.time_constant)
            turn = SimTurnMotor(sim.max_turn_rate, m.turn_inverted, sim.time_constant)
            self.drive_motors[m.name] = drive
            self.turn_motors[m.name] = turn
            self.encoders[m.name] = SimAbsoluteEncoder(
                turn, m.absolute_offset_rad, m.encoder_reversed, channel=m.encoder_channel
            )
        self.gyro = SimGyro()

        self._kinematics = KinematicsEngine([m.geometry for m in config.modules])
        self.true_pose = Pose2d()

    def hardware(self) -> Dict[str, ModuleHardware]:
        """Hardware handles keyed by module name, for DriveCoordinator.from_config."""
        return {
            name: ModuleHardware(
                drive=self.drive_motors[name],
                turn=self.turn_motors[name],
                sensor=self.encoders[name],
            )
            for name in self.drive_motors
        }

    def true_module_states(self) -> List[ModuleState]:
        return [
            ModuleState(self.drive_motors[m.name].rate, self.turn_motors[m.name].angle)
            for m in self.config.modules
        ]

    def step(self, dt: float) -> None:
        """Advance motors, true pose and gyro by dt."""
        for name in self.drive_motors:
            self.drive_motors[name].step(dt)
            self.turn_motors[name].step(dt)

        speeds = self._kinematics.forward(self.true_module_states())
        p = self.true_pose
        x, y = body_to_world(speeds.vx * dt, speeds.vy * dt, p.x, p.y, p.heading)
        self.true_pose = Pose2d(x, y, wrap_angle(p.heading + speeds.omega * dt))
        self.gyro.advance(speeds.omega, dt)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize true state to a dict for logging/telemetry."""
        return {
            "pose": self.true_pose.to_dict(),
            "modules": {
                m.name: state.to_dict()
                for m, state in zip(self.config.modules, self.true_module_states())
            },
        }
