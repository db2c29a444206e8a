"""
Dead-reckoning pose estimation for the swerve drivetrain.

Each update takes the wheel travel since the previous update, solves the
robot-frame displacement with the same least-squares Jacobian used for
forward kinematics, rotates it into the field frame with the current heading
and adds it to the running pose.

The heading is trusted as supplied; there is no gyro filtering. Translation
is pure dead-reckoning and drifts without bound.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence
import logging
import threading

from .geometry_utils import body_to_world, wrap_angle
from .kinematics import NUM_MODULES, KinematicsEngine
from .state import ModulePosition, Pose2d

logger = logging.getLogger(__name__)


class OdometryState(Enum):
    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"


class OdometryEstimator:
    """Integrates module positions and heading into a field-frame Pose2d."""

    def __init__(self, kinematics: KinematicsEngine) -> None:
        self.kinematics = kinematics
        self._lock = threading.Lock()

        self._state = OdometryState.UNINITIALIZED
        self._pose = Pose2d()
        self._previous: Optional[List[ModulePosition]] = None
        # Added to sensor headings so that reported heading matches the pose
        self._heading_offset = 0.0

    @property
    def state(self) -> OdometryState:
        return self._state

    @property
    def pose(self) -> Pose2d:
        """Snapshot of the current pose."""
        with self._lock:
            return self._pose

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    def initialize(self, heading: float, positions: Sequence[ModulePosition]) -> OdometryState:
        """Seed the reference frame with the pose at the origin."""
        self.reset_position(heading, positions, Pose2d(0.0, 0.0, heading))
        return self._state

    def reset_position(
        self, heading: float, positions: Sequence[ModulePosition], pose: Pose2d
    ) -> None:
        """Re-seed reference positions, heading offset and pose in one step."""
        snapshot = self._copy(positions)
        with self._lock:
            self._previous = snapshot
            self._heading_offset = wrap_angle(pose.heading - heading)
            self._pose = pose
            self._state = OdometryState.TRACKING
        logger.info("Odometry reset to x=%.3f y=%.3f heading=%.3f", pose.x, pose.y, pose.heading)

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------
    def update(self, heading: float, positions: Sequence[ModulePosition]) -> Pose2d:
        """Advance the pose by the wheel travel since the previous call."""
        if self._state is OdometryState.UNINITIALIZED:
            self.initialize(heading, positions)
            return self.pose

        current = self._copy(positions)
        with self._lock:
            deltas = [
                ModulePosition(cur.distance_m - prev.distance_m, cur.angle)
                for cur, prev in zip(current, self._previous)
            ]
            twist = self.kinematics.forward_deltas(deltas)
            robot_heading = wrap_angle(heading + self._heading_offset)
            x, y = body_to_world(twist.dx, twist.dy, self._pose.x, self._pose.y, robot_heading)

            self._pose = Pose2d(x, y, robot_heading)
            self._previous = current
            return self._pose

    @staticmethod
    def _copy(positions: Sequence[ModulePosition]) -> List[ModulePosition]:
        items = list(positions)
        if len(items) != NUM_MODULES:
            raise ValueError(f"expected {NUM_MODULES} module positions, got {len(items)}")
        return items
