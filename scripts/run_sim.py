from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict

# Ensure project root is on path when running this script directly
_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import yaml

from robot.sim_robot import SimConfig, SimSwerveRobot
from swerve_core.config import parse_config
from swerve_core.coordinator import DriveCoordinator
from swerve_core.errors import CommandRejected, ConfigurationError
from swerve_core.state import ChassisSpeeds
from telemetry.logger import TelemetryLogger

logger = logging.getLogger("run_sim")


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def main() -> int:
    parser = argparse.ArgumentParser(description="Fixed-cadence swerve drivetrain simulation.")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/swerve.yaml",
        help="Path to swerve YAML config.",
    )
    parser.add_argument("--steps", type=int, default=None, help="Override number of control cycles.")
    parser.add_argument(
        "--realtime", action="store_true", help="Sleep to hold the control period in wall time."
    )
    parser.add_argument("--field-relative", action="store_true", help="Interpret command in field frame.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    setup_logging(args.verbose)

    cfg = load_yaml(args.config)
    try:
        drive_cfg = parse_config(cfg)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    sim_cfg = cfg.get("sim", {})
    sim = SimConfig(
        dt=float(sim_cfg.get("dt", 0.02)),
        max_turn_rate=float(sim_cfg.get("max_turn_rate", 10.0)),
        time_constant=float(sim_cfg.get("time_constant", 0.0)),
    )
    steps = args.steps if args.steps is not None else int(sim_cfg.get("steps", 250))
    cmd_cfg = sim_cfg.get("command", {})
    command = ChassisSpeeds(
        vx=float(cmd_cfg.get("vx", 0.0)),
        vy=float(cmd_cfg.get("vy", 0.0)),
        omega=float(cmd_cfg.get("omega", 0.0)),
    )

    telemetry_logger = TelemetryLogger(cfg.get("telemetry", {}).get("path", "logs/telemetry.jsonl"))

    robot = SimSwerveRobot(drive_cfg, sim)
    drivetrain = DriveCoordinator.from_config(
        drive_cfg, robot.hardware(), robot.gyro, telemetry=telemetry_logger
    )
    drivetrain.start()

    logger.info("Running %d cycles at %.0f Hz with command %s", steps, 1.0 / sim.dt, command)

    try:
        for step_idx in range(steps):
            t_start = time.time()

            robot.step(sim.dt)
            drivetrain.periodic()
            try:
                if args.field_relative:
                    drivetrain.drive_field_relative(command.vx, command.vy, command.omega)
                else:
                    drivetrain.drive_chassis_speeds(command)
            except CommandRejected as exc:
                logger.warning("Command rejected at step %d: %s", step_idx, exc)

            telemetry_logger.log_step({"step": step_idx, "true": robot.to_dict()})

            if args.realtime:
                sleep_time = sim.dt - (time.time() - t_start)
                if sleep_time > 0:
                    time.sleep(sleep_time)
    except KeyboardInterrupt:
        logger.info("Stopping simulation (KeyboardInterrupt).")
    finally:
        drivetrain.stop()
        drivetrain.close()
        telemetry_logger.close()

    est = drivetrain.pose()
    true = robot.true_pose
    logger.info("Estimated pose: x=%.3f y=%.3f heading=%.3f", est.x, est.y, est.heading)
    logger.info("True pose:      x=%.3f y=%.3f heading=%.3f", true.x, true.y, true.heading)
    if drivetrain.faults():
        logger.warning("Active faults: %s", drivetrain.faults())
    return 0


if __name__ == "__main__":
    sys.exit(main())
