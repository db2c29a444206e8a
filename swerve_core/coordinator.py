"""
Drivetrain coordinator: owns the four module controllers, the kinematics
engine and the odometry estimator.

`periodic()` is the single per-cycle synchronization point and is called by
an external scheduler at a fixed cadence. Drive commands are expected to be
serialized with it; an internal lock additionally serializes them against
the deferred heading-zero task, which runs on its own timer thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence
import logging
import math
import threading

from robot.api import AngleSensor, DriveActuator, HeadingSensor, TelemetrySink, TurnActuator

from .config import DrivetrainConfig
from .errors import CommandRejected, ConfigurationError, SensorFault
from .geometry_utils import is_finite, wrap_angle
from .kinematics import NUM_MODULES, KinematicsEngine
from .module import ModuleController
from .odometry import OdometryEstimator
from .state import ChassisSpeeds, ModulePosition, ModuleState, Pose2d

logger = logging.getLogger(__name__)

HEADING_FAULT_KEY = "heading"


class DeferredTask:
    """One-shot callback run after a delay on a timer thread.

    Unlike a bare timer, the task can be cancelled at any point and joined.
    The callback runs at most once; after `cancel()` it never starts.
    """

    def __init__(self, delay_s: float, callback: Callable[[], None], name: str = "deferred") -> None:
        self.delay_s = delay_s
        self.callback = callback
        self.name = name

        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self._cancelled = False
        self._ran = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        """True once the callback has run or the task was cancelled."""
        return self._finished.is_set()

    def start(self) -> None:
        with self._lock:
            if self._timer is not None or self._cancelled:
                return
            self._timer = threading.Timer(self.delay_s, self._run)
            self._timer.name = self.name
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> bool:
        """Cancel the task. Returns True if this prevented the callback from running."""
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
            prevented = not self._ran
            if prevented:
                self._finished.set()
            return prevented

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for completion or cancellation. Returns True if finished."""
        return self._finished.wait(timeout)

    def _run(self) -> None:
        with self._lock:
            if self._cancelled or self._ran:
                return
            self._ran = True
        try:
            self.callback()
        except Exception:  # noqa: BLE001
            logger.exception("Deferred task %s failed", self.name)
        finally:
            self._finished.set()


@dataclass
class ModuleHardware:
    """Hardware handles handed to one ModuleController at construction."""

    drive: DriveActuator
    turn: TurnActuator
    sensor: AngleSensor


class DriveCoordinator:
    """Swerve drivetrain built from four modules by composition."""

    def __init__(
        self,
        modules: Sequence[ModuleController],
        kinematics: KinematicsEngine,
        heading_sensor: HeadingSensor,
        max_speed: float,
        telemetry: Optional[TelemetrySink] = None,
        heading_zero_delay_s: float = 1.0,
    ) -> None:
        if len(modules) != NUM_MODULES:
            raise ConfigurationError(f"expected {NUM_MODULES} modules, got {len(modules)}")
        if len(kinematics.geometries) != len(modules):
            raise ConfigurationError("module count does not match kinematics geometry")
        if not (math.isfinite(max_speed) and max_speed > 0.0):
            raise ConfigurationError(f"max_speed must be positive, got {max_speed}")

        self.modules: List[ModuleController] = list(modules)
        self.kinematics = kinematics
        self.odometry = OdometryEstimator(kinematics)
        self.max_speed = max_speed
        self.telemetry = telemetry

        self._heading_sensor = heading_sensor
        self._last_heading = 0.0
        self._faults: Dict[str, str] = {}
        self._heading_zero_pending = False
        self._lock = threading.RLock()

        self._heading_task = DeferredTask(
            heading_zero_delay_s, self._deferred_zero_heading, name="heading-zero"
        )

    @classmethod
    def from_config(
        cls,
        config: DrivetrainConfig,
        hardware: Mapping[str, ModuleHardware],
        heading_sensor: HeadingSensor,
        telemetry: Optional[TelemetrySink] = None,
    ) -> "DriveCoordinator":
        """Build modules and kinematics from a validated config."""
        config.validate()
        missing = [m.name for m in config.modules if m.name not in hardware]
        if missing:
            raise ConfigurationError(f"no hardware for modules: {missing}")

        modules = [
            ModuleController(
                name=m.name,
                drive=hardware[m.name].drive,
                turn=hardware[m.name].turn,
                sensor=hardware[m.name].sensor,
                calibration=m.calibration,
                max_speed=config.max_speed_mps,
                pid_config=config.turn_pid,
                stop_on_near_zero=config.stop_on_near_zero,
                near_zero_speed=config.near_zero_speed,
            )
            for m in config.modules
        ]
        kinematics = KinematicsEngine([m.geometry for m in config.modules])
        return cls(
            modules=modules,
            kinematics=kinematics,
            heading_sensor=heading_sensor,
            max_speed=config.max_speed_mps,
            telemetry=telemetry,
            heading_zero_delay_s=config.heading_zero_delay_s,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Calibrate modules, seed odometry and schedule the heading zero."""
        with self._lock:
            for module in self.modules:
                try:
                    module.reset_calibration()
                except SensorFault as exc:
                    self._mark_fault(module.name, exc, module)
            positions = self._read_positions()
            self.odometry.initialize(self._read_heading(), positions)
            self.kinematics.reset_angles([p.angle for p in positions])
        self._heading_task.start()
        logger.info("Drivetrain started; heading zero in %.2f s", self._heading_task.delay_s)

    def close(self) -> None:
        """Cancel the pending heading zero and stop all modules."""
        self._heading_task.cancel()
        self._heading_task.join(timeout=1.0)
        with self._lock:
            for module in self.modules:
                module.stop()
        logger.info("Drivetrain closed")

    @property
    def heading_task(self) -> DeferredTask:
        return self._heading_task

    # ------------------------------------------------------------------
    # Periodic update
    # ------------------------------------------------------------------
    def periodic(self) -> Pose2d:
        """Read module positions and heading and advance odometry."""
        with self._lock:
            positions = self._read_positions()
            heading = self._read_heading()
            if self._heading_zero_pending and HEADING_FAULT_KEY not in self._faults:
                self._reseed_heading(heading, positions)
            pose = self.odometry.update(heading, positions)
        self._publish_telemetry(pose, heading)
        return pose

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def drive_chassis_speeds(self, speeds: ChassisSpeeds) -> None:
        if not is_finite(speeds.vx, speeds.vy, speeds.omega):
            raise CommandRejected(f"non-finite chassis speeds {speeds}")
        with self._lock:
            states = self.kinematics.desaturate(self.kinematics.inverse(speeds), self.max_speed)
            self._check_states(states)
            self._dispatch(states)

    def drive_field_relative(self, vx: float, vy: float, omega: float) -> None:
        """Drive with (vx, vy) given in the field frame."""
        heading = self.pose().heading
        self.drive_chassis_speeds(ChassisSpeeds.from_field_relative(vx, vy, omega, heading))

    def drive_module_states(self, states: Sequence[ModuleState]) -> None:
        """Send states straight to the modules (bypasses chassis conversion)."""
        states = list(states)
        self._check_states(states)
        with self._lock:
            self._dispatch(self.kinematics.desaturate(states, self.max_speed))

    def stop(self) -> None:
        """Zero all drive speeds, holding each module's angle."""
        with self._lock:
            for module in self.modules:
                if module.name in self._faults:
                    module.stop()
                    continue
                try:
                    module.hold()
                except SensorFault as exc:
                    self._mark_fault(module.name, exc, module)

    # ------------------------------------------------------------------
    # Pose and heading
    # ------------------------------------------------------------------
    def pose(self) -> Pose2d:
        return self.odometry.pose

    def reset_pose(self, pose: Pose2d) -> None:
        """Move the pose estimate; supersedes a pending heading zero."""
        with self._lock:
            if self._heading_task.cancel():
                logger.info("Pending heading zero cancelled by pose reset")
            self._heading_zero_pending = False
            self.odometry.reset_position(self._read_heading(), self._read_positions(), pose)

    def heading(self) -> float:
        """Robot heading as tracked by odometry (radians)."""
        return self.odometry.pose.heading

    def zero_heading(self) -> None:
        """Make the direction the robot is facing the zero heading."""
        with self._lock:
            self._heading_task.cancel()
            self._zero_heading()

    def _deferred_zero_heading(self) -> None:
        with self._lock:
            if self._heading_task.cancelled:
                return
            self._zero_heading()

    def _zero_heading(self) -> None:
        self._heading_sensor.zero()
        heading = self._read_heading()
        if HEADING_FAULT_KEY in self._faults:
            # A stale heading would offset odometry against the pre-zero reference.
            self._heading_zero_pending = True
            logger.warning("Heading sensor faulted; odometry re-seed deferred until it recovers")
            return
        self._reseed_heading(heading, self._read_positions())

    def _reseed_heading(self, heading: float, positions: Sequence[ModulePosition]) -> None:
        pose = self.odometry.pose
        self.odometry.reset_position(heading, positions, Pose2d(pose.x, pose.y, 0.0))
        self._heading_zero_pending = False
        logger.info("Heading zeroed")

    # ------------------------------------------------------------------
    # Measured state
    # ------------------------------------------------------------------
    def module_states(self) -> List[ModuleState]:
        states = []
        with self._lock:
            for module in self.modules:
                try:
                    states.append(module.state())
                except SensorFault as exc:
                    self._mark_fault(module.name, exc, module)
                    states.append(module.last_state)
        return states

    def module_positions(self) -> List[ModulePosition]:
        with self._lock:
            return self._read_positions()

    def chassis_speeds(self) -> ChassisSpeeds:
        """Robot-frame velocity from the measured module states."""
        return self.kinematics.forward(self.module_states())

    def faults(self) -> Dict[str, str]:
        """Currently faulted modules (and heading sensor) with their messages."""
        return dict(self._faults)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _check_states(states: Sequence[ModuleState]) -> None:
        if len(states) != NUM_MODULES:
            raise CommandRejected(f"expected {NUM_MODULES} module states, got {len(states)}")
        for s in states:
            if not is_finite(s.speed_mps, s.angle):
                raise CommandRejected(f"non-finite module state {s}")

    def _dispatch(self, states: Sequence[ModuleState]) -> None:
        # Faults clear only in _read_positions, where every module sensor is read.
        for module, state in zip(self.modules, states):
            if module.name in self._faults:
                module.stop()
                continue
            try:
                module.set_desired_state(state)
            except SensorFault as exc:
                self._mark_fault(module.name, exc, module)
        self.kinematics.reset_angles([m.desired_state.angle for m in self.modules])

    def _read_positions(self) -> List[ModulePosition]:
        positions = []
        for module in self.modules:
            try:
                positions.append(module.position())
            except SensorFault as exc:
                self._mark_fault(module.name, exc, module)
                positions.append(module.last_position)
            else:
                self._clear_fault(module.name)
        return positions

    def _read_heading(self) -> float:
        try:
            heading = self._heading_sensor.read_heading()
            if heading is None or not math.isfinite(heading):
                raise SensorFault(f"invalid heading {heading!r}", HEADING_FAULT_KEY)
        except SensorFault as exc:
            self._mark_fault(HEADING_FAULT_KEY, exc)
            return self._last_heading
        self._clear_fault(HEADING_FAULT_KEY)
        self._last_heading = wrap_angle(heading)
        return self._last_heading

    def _mark_fault(
        self, key: str, exc: SensorFault, module: Optional[ModuleController] = None
    ) -> None:
        if key not in self._faults:
            logger.warning("Sensor fault on %s: %s", key, exc)
        self._faults[key] = str(exc)
        if module is not None:
            module.stop()

    def _clear_fault(self, key: str) -> None:
        if self._faults.pop(key, None) is not None:
            logger.info("%s recovered", key)

    def _publish_telemetry(self, pose: Pose2d, heading: float) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.publish("drivetrain/heading_deg", math.degrees(heading))
            self.telemetry.publish("drivetrain/pose", pose.to_dict())
            for module in self.modules:
                record = module.telemetry()
                record["fault"] = module.name in self._faults
                self.telemetry.publish(f"modules/{module.name}", record)
            self.telemetry.publish("drivetrain/faults", self.faults())
        except Exception as exc:  # noqa: BLE001
            logger.debug("Telemetry publish failed: %s", exc)
