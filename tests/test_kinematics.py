from __future__ import annotations

import math

import pytest

from swerve_core.errors import ConfigurationError
from swerve_core.kinematics import KinematicsEngine
from swerve_core.state import ChassisSpeeds, ModuleGeometry, ModulePosition, ModuleState


def square_geometry(half: float = 0.3) -> list:
    return [
        ModuleGeometry(half, half),
        ModuleGeometry(half, -half),
        ModuleGeometry(-half, half),
        ModuleGeometry(-half, -half),
    ]


def test_straight_command_on_unit_square() -> None:
    kin = KinematicsEngine(square_geometry())
    states = kin.desaturate(kin.inverse(ChassisSpeeds(vx=1.0, vy=0.0, omega=0.0)), 1.0)

    assert len(states) == 4
    for s in states:
        assert s.angle == 0.0
        assert s.speed_mps == 1.0


def test_rotation_in_place_is_tangential() -> None:
    kin = KinematicsEngine(square_geometry())
    states = kin.inverse(ChassisSpeeds(omega=1.0))

    expected_speed = 0.3 * math.sqrt(2.0)
    expected_angles = [135.0, 45.0, -135.0, -45.0]
    for s, deg in zip(states, expected_angles):
        assert math.isclose(s.speed_mps, expected_speed, rel_tol=1e-9)
        assert math.isclose(s.angle, math.radians(deg), abs_tol=1e-9)


def test_forward_inverse_round_trip() -> None:
    kin = KinematicsEngine([
        ModuleGeometry(0.35, 0.25),
        ModuleGeometry(0.35, -0.25),
        ModuleGeometry(-0.35, 0.25),
        ModuleGeometry(-0.35, -0.25),
    ])
    for speeds in (
        ChassisSpeeds(1.0, -0.5, 0.8),
        ChassisSpeeds(-2.0, 1.5, -0.3),
        ChassisSpeeds(0.0, 0.7, 0.0),
    ):
        back = kin.forward(kin.inverse(speeds))
        assert back.vx == pytest.approx(speeds.vx, abs=1e-9)
        assert back.vy == pytest.approx(speeds.vy, abs=1e-9)
        assert back.omega == pytest.approx(speeds.omega, abs=1e-9)


def test_zero_command_holds_previous_angles() -> None:
    kin = KinematicsEngine(square_geometry())
    kin.inverse(ChassisSpeeds(vy=1.0))
    states = kin.inverse(ChassisSpeeds())

    for s in states:
        assert s.speed_mps == 0.0
        assert math.isclose(s.angle, 0.5 * math.pi)


def test_desaturate_scales_uniformly() -> None:
    states = [
        ModuleState(2.0, 0.1),
        ModuleState(1.0, 0.2),
        ModuleState(-4.0, 0.3),
        ModuleState(0.5, 0.4),
    ]
    out = KinematicsEngine.desaturate(states, 2.0)

    assert max(abs(s.speed_mps) for s in out) <= 2.0 + 1e-12
    assert [s.speed_mps for s in out] == pytest.approx([1.0, 0.5, -2.0, 0.25])
    assert [s.angle for s in out] == [0.1, 0.2, 0.3, 0.4]
    for i in range(4):
        for j in range(4):
            assert out[i].speed_mps / out[j].speed_mps == pytest.approx(
                states[i].speed_mps / states[j].speed_mps
            )


def test_desaturate_never_scales_up() -> None:
    states = [ModuleState(0.5, 0.0), ModuleState(-0.2, 1.0), ModuleState(0.0, 2.0), ModuleState(0.1, 3.0)]
    assert KinematicsEngine.desaturate(states, 4.0) == states


def test_forward_deltas_straight_line() -> None:
    kin = KinematicsEngine(square_geometry())
    twist = kin.forward_deltas([ModulePosition(0.1, 0.0)] * 4)

    assert twist.dx == pytest.approx(0.1)
    assert twist.dy == pytest.approx(0.0, abs=1e-12)
    assert twist.dtheta == pytest.approx(0.0, abs=1e-12)


def test_invalid_geometry_rejected() -> None:
    with pytest.raises(ConfigurationError):
        KinematicsEngine(square_geometry()[:3])

    with pytest.raises(ConfigurationError):
        KinematicsEngine([ModuleGeometry(0.3, 0.3)] * 2 + square_geometry()[2:])

    with pytest.raises(ConfigurationError):
        KinematicsEngine([ModuleGeometry(float("nan"), 0.3)] + square_geometry()[1:])
