from __future__ import annotations

import math

import numpy as np
import pytest

from robot.drivers.encoder_driver import SimAbsoluteEncoder
from robot.drivers.motor_driver import SimDriveMotor, SimTurnMotor
from swerve_core.errors import CommandRejected, SensorFault
from swerve_core.geometry_utils import angle_diff
from swerve_core.module import ModuleController, optimize
from swerve_core.pid import PIDConfig
from swerve_core.state import CalibrationParams, ModuleState


def make_module(
    angle: float = 0.0,
    offset: float = 0.0,
    reversed: bool = False,
    **kwargs,
):
    drive = SimDriveMotor(max_rate=4.0)
    turn = SimTurnMotor(max_rate=10.0, initial_angle=angle)
    encoder = SimAbsoluteEncoder(turn, offset_rad=offset, reversed=reversed)
    module = ModuleController(
        name="front_left",
        drive=drive,
        turn=turn,
        sensor=encoder,
        calibration=CalibrationParams(offset, reversed),
        max_speed=4.0,
        pid_config=PIDConfig(kp=0.5),
        **kwargs,
    )
    return module, drive, turn, encoder


def test_calibrated_angle_undoes_offset_and_reversal() -> None:
    module, _, _, encoder = make_module(angle=1.0, offset=0.7, reversed=True)
    assert math.isclose(encoder.read_absolute_angle(), -0.3, abs_tol=1e-12)
    assert math.isclose(module.calibrated_angle(), 1.0, abs_tol=1e-12)


def test_calibrated_angle_continuous_across_seam() -> None:
    offset = 0.5
    module, _, turn, encoder = make_module(offset=offset)

    # Raw readings straddle +/-pi while the module angle moves smoothly.
    previous = None
    raws = []
    for k in range(7):
        turn.travel = math.pi - offset - 0.003 + 0.001 * k
        raws.append(encoder.read_absolute_angle())
        angle = module.calibrated_angle()
        assert -math.pi < angle <= math.pi
        if previous is not None:
            assert abs(angle_diff(previous, angle)) < 0.0015
        previous = angle
    assert min(raws) < 0.0 < max(raws)


def test_optimize_bounds_turn_and_preserves_vector() -> None:
    for c in np.linspace(-math.pi, math.pi, 37):
        for a in np.linspace(-math.pi, math.pi, 37):
            target = ModuleState(1.5, float(a))
            out = optimize(float(c), target)

            assert abs(angle_diff(float(c), out.angle)) <= 0.5 * math.pi + 1e-9
            tx, ty = target.vector()
            ox, oy = out.vector()
            assert ox == pytest.approx(tx, abs=1e-9)
            assert oy == pytest.approx(ty, abs=1e-9)


def test_optimize_is_idempotent() -> None:
    for c in np.linspace(-3.0, 3.1, 23):
        for a in np.linspace(-3.05, 3.0, 19):
            first = optimize(float(c), ModuleState(-0.8, float(a)))
            assert optimize(float(c), first) == first
            assert optimize(first.angle, first) == first


def test_optimize_short_path_across_seam() -> None:
    out = optimize(math.radians(170.0), ModuleState(2.0, math.radians(-170.0)))
    assert out.speed_mps == 2.0
    assert math.isclose(out.angle, math.radians(-170.0))


def test_optimize_flips_beyond_quarter_turn() -> None:
    out = optimize(0.0, ModuleState(2.0, math.radians(135.0)))
    assert out.speed_mps == -2.0
    assert math.isclose(out.angle, math.radians(-45.0))


def test_optimize_quarter_turn_does_not_flip() -> None:
    assert optimize(0.0, ModuleState(1.0, 0.5 * math.pi)) == ModuleState(1.0, 0.5 * math.pi)
    assert optimize(0.0, ModuleState(1.0, -0.5 * math.pi)) == ModuleState(1.0, -0.5 * math.pi)


def test_set_desired_state_drives_ratio_of_max_speed() -> None:
    module, drive, turn, _ = make_module()
    module.set_desired_state(ModuleState(2.0, 0.0))

    assert drive.command == pytest.approx(0.5)
    assert turn.command == pytest.approx(0.0)


def test_set_desired_state_reverses_instead_of_half_turn() -> None:
    module, drive, turn, _ = make_module()
    module.set_desired_state(ModuleState(2.0, math.pi))

    assert drive.command == pytest.approx(-0.5)
    assert turn.command == pytest.approx(0.0)
    assert module.desired_state.speed_mps == -2.0


def test_turn_servo_wraps_through_seam() -> None:
    module, _, turn, _ = make_module(angle=math.radians(170.0))
    module.set_desired_state(ModuleState(1.0, math.radians(-170.0)))

    # Shortest path is +20 degrees through pi, not -340 degrees.
    assert turn.command > 0.0
    assert turn.command == pytest.approx(0.5 * math.radians(20.0))


def test_turn_servo_converges() -> None:
    module, _, turn, _ = make_module(angle=-2.5)
    target = ModuleState(1.0, 1.0)
    for _ in range(200):
        module.set_desired_state(target)
        turn.step(0.02)

    assert abs(angle_diff(module.calibrated_angle(), module.desired_state.angle)) < 0.01


def test_non_finite_target_rejected() -> None:
    module, drive, _, _ = make_module()
    module.set_desired_state(ModuleState(2.0, 0.0))
    with pytest.raises(CommandRejected):
        module.set_desired_state(ModuleState(float("nan"), 0.0))
    assert drive.command == pytest.approx(0.5)


def test_invalid_reading_raises_sensor_fault() -> None:
    module, _, _, encoder = make_module()
    encoder.fault = "nan"
    with pytest.raises(SensorFault):
        module.calibrated_angle()

    encoder.fault = "error"
    with pytest.raises(SensorFault):
        module.state()


def test_reset_calibration_reseeds_distance() -> None:
    module, drive, _, _ = make_module()
    drive.travel = 5.0
    assert module.position().distance_m == pytest.approx(5.0)

    module.reset_calibration()
    assert module.position().distance_m == pytest.approx(0.0)

    drive.travel = 5.5
    assert module.position().distance_m == pytest.approx(0.5)


def test_near_zero_policy_stops_module() -> None:
    module, drive, turn, _ = make_module(angle=0.3, stop_on_near_zero=True)
    module.set_desired_state(ModuleState(2.0, 1.0))
    assert turn.command != 0.0

    module.set_desired_state(ModuleState(0.0005, 1.0))
    assert drive.command == 0.0
    assert turn.command == 0.0


def test_near_zero_policy_off_by_default() -> None:
    module, _, turn, _ = make_module(angle=0.3)
    module.set_desired_state(ModuleState(0.0005, 1.0))
    assert turn.command > 0.0


def test_hold_keeps_commanded_angle() -> None:
    module, drive, _, _ = make_module()
    module.set_desired_state(ModuleState(2.0, 0.5))
    module.hold()

    assert drive.command == 0.0
    assert module.desired_state.angle == pytest.approx(0.5)


def test_turning_velocity_follows_reversal() -> None:
    module, _, turn, _ = make_module(reversed=True)
    turn.rate = 2.0
    assert module.turning_velocity() == pytest.approx(2.0)


def test_hold_after_reset_calibration_keeps_measured_angle() -> None:
    module, drive, turn, _ = make_module(angle=1.0, offset=0.4)
    module.reset_calibration()
    module.hold()

    assert module.desired_state.speed_mps == 0.0
    assert module.desired_state.angle == pytest.approx(1.0)
    assert drive.command == 0.0
    assert turn.command == pytest.approx(0.0, abs=1e-9)
