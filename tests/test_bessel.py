import numpy as np
import pytest
from scipy import special

from welltest.engine.bessel import SCALED_CUTOFF, bessel_k0, bessel_k1, scaled_bessel_i


@pytest.mark.parametrize("x", [1e-6, 0.1, 1.0, 10.0, 100.0, 599.0, 601.0, 1000.0])
def test_scaled_i_is_finite(x):
    assert np.isfinite(scaled_bessel_i(0, x))
    assert np.isfinite(scaled_bessel_i(1, x))


@pytest.mark.parametrize("x", [50.0, 100.0, 500.0])
def test_product_i0_k0_asymptote(x):
    """I0(x)*K0(x) ~ 1/(2x) para x grande."""
    k0_unscaled = bessel_k0(x) * np.exp(x)
    assert scaled_bessel_i(0, x) * k0_unscaled * 2.0 * x == pytest.approx(1.0, rel=1e-3)


def test_product_trend_towards_asymptote():
    """2x*I0(x)*K0(x) decrece hacia 1 por arriba, con exceso menor que 1/(4x^2)."""
    xs = [1.0, 5.0, 10.0, 50.0]
    products = [scaled_bessel_i(0, x) * bessel_k0(x) * np.exp(x) * 2.0 * x for x in xs]
    assert all(a > b for a, b in zip(products, products[1:]))
    for x, value in zip(xs, products):
        assert 1.0 < value < 1.0 + 1.0 / (4.0 * x * x)


def test_asymptotic_branch_above_cutoff():
    x = 2.0 * SCALED_CUTOFF
    assert scaled_bessel_i(0, x) == pytest.approx(1.0 / np.sqrt(2.0 * np.pi * x))
    assert scaled_bessel_i(1, x) == pytest.approx(special.i1e(x), rel=1e-3)


def test_scaled_i_matches_scipy_below_cutoff():
    x = np.array([0.5, 5.0, 50.0])
    np.testing.assert_allclose(scaled_bessel_i(0, x), special.i0e(x))
    np.testing.assert_allclose(scaled_bessel_i(1, x), special.i1e(x))


def test_negative_argument_is_mirrored():
    assert scaled_bessel_i(0, -3.0) == pytest.approx(scaled_bessel_i(0, 3.0))


def test_scalar_in_scalar_out():
    assert isinstance(scaled_bessel_i(0, 2.0), float)
    assert scaled_bessel_i(1, np.array([1.0, 2.0])).shape == (2,)


def test_unsupported_order():
    with pytest.raises(ValueError):
        scaled_bessel_i(2, 1.0)


def test_k_functions_decay():
    assert bessel_k0(1.0) > bessel_k0(2.0) > 0
    assert bessel_k1(1.0) > bessel_k1(2.0) > 0
