import math

import pytest

from welltest.engine.physics_utils import (
    invert_pressure, invert_stehfest, stehfest_weights, stress_sensitivity_correction, time_transforms,
)


@pytest.mark.parametrize("N", [4, 8])
@pytest.mark.parametrize("t", [1e-6, 1e-3, 0.1, 1.0, 2.5, 100.0, 1e4, 1e8])
def test_unit_step_inverts_to_one(N, t):
    assert invert_stehfest(lambda z: 1.0 / z, t, N) == pytest.approx(1.0, abs=1e-6)


def test_exponential_decay():
    # L{e^-t} = 1/(z+1)
    assert invert_stehfest(lambda z: 1.0 / (z + 1.0), 1.0, 12) == pytest.approx(math.exp(-1.0), rel=1e-3)


def test_known_weights_n4():
    assert list(stehfest_weights(4)) == pytest.approx([-2.0, 26.0, -48.0, 24.0])


@pytest.mark.parametrize("N", [0, -2, 3, 7])
def test_invalid_order(N):
    with pytest.raises(ValueError):
        stehfest_weights(N)


def test_non_positive_time_skips_evaluation():
    def f(z):
        raise AssertionError("no debe evaluarse")

    assert invert_stehfest(f, 0.0, 8) == 0.0
    assert invert_stehfest(f, 1e-13, 8) == 0.0
    assert invert_pressure(f, -1.0, 8, time_transforms(0.05)) == 0.0


def test_non_finite_nodes_count_as_zero():
    ln2 = math.log(2.0)

    def f(z):
        # el primer nodo (m=1) vale NaN
        if abs(z - ln2) < 1e-12:
            return float("nan")
        return 1.0 / z

    V = stehfest_weights(4)
    assert invert_stehfest(f, 1.0, 4) == pytest.approx(1.0 - V[0])


def test_stress_correction_value():
    correct = stress_sensitivity_correction(0.02)
    assert correct(1.0) == pytest.approx(-math.log(0.98) / 0.02)
    assert correct(1.0) > 1.0


def test_stress_correction_keeps_value_when_log_undefined():
    assert stress_sensitivity_correction(0.5)(3.0) == 3.0


def test_time_chain_presence_flag():
    assert time_transforms(0.0) == []
    assert time_transforms(1e-10) == []
    assert len(time_transforms(0.02)) == 1


def test_invert_pressure_applies_chain_after_inversion():
    chain = time_transforms(0.02)
    p = invert_pressure(lambda z: 1.0 / z, 1.0, 8, chain)
    assert p == pytest.approx(-math.log(0.98) / 0.02, rel=1e-5)
