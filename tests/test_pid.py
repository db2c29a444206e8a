from __future__ import annotations

import pytest

from swerve_core.pid import ContinuousPIDController, PIDConfig


def test_error_wraps_through_seam() -> None:
    pid = ContinuousPIDController(PIDConfig(kp=1.0))
    # From 3.0 rad to -3.0 rad the short way is +0.283 rad, not -6 rad.
    out = pid.calculate(measurement=3.0, setpoint=-3.0)
    assert out == pytest.approx(6.283185307179586 - 6.0)


def test_output_is_clamped() -> None:
    pid = ContinuousPIDController(PIDConfig(kp=10.0))
    assert pid.calculate(0.0, 1.0) == 1.0
    assert pid.calculate(0.0, -1.0) == -1.0


def test_integral_anti_windup() -> None:
    pid = ContinuousPIDController(PIDConfig(kp=0.0, ki=1.0, integral_limit=0.5, period_s=0.1))
    for _ in range(100):
        out = pid.calculate(0.0, 1.0)
    assert pid.integral == pytest.approx(0.5)
    assert out == pytest.approx(0.5)

    pid.reset()
    assert pid.integral == 0.0
    assert pid.calculate(0.0, 0.0) == 0.0


def test_at_setpoint_uses_tolerance() -> None:
    pid = ContinuousPIDController(PIDConfig(kp=1.0, tolerance_rad=0.05))
    assert not pid.at_setpoint()
    pid.calculate(1.0, 1.02)
    assert pid.at_setpoint()
    pid.calculate(1.0, 1.2)
    assert not pid.at_setpoint()


def test_invalid_period_rejected() -> None:
    with pytest.raises(ValueError):
        ContinuousPIDController(PIDConfig(period_s=0.0))
