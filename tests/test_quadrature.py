import numpy as np
import pytest

from welltest.engine.quadrature import adaptive_gauss, gauss15


def test_gauss15_exact_for_polynomials():
    assert gauss15(lambda x: x ** 6 - 2 * x ** 3 + 1, -1.0, 2.0) == pytest.approx(128 / 7 + 1 / 7 - 7.5 + 3.0)


def test_adaptive_smooth_integrand():
    assert adaptive_gauss(np.cos, 0.0, np.pi / 2) == pytest.approx(1.0, abs=1e-8)


def test_adaptive_log_singularity():
    # int_0^1 -ln(x) dx = 1
    f = lambda x: -np.log(np.maximum(x, 1e-300))
    assert adaptive_gauss(f, 0.0, 1.0, eps=1e-8) == pytest.approx(1.0, rel=1e-4)


def test_depth_limit_returns_estimate():
    value = adaptive_gauss(lambda x: np.abs(x) ** 0.1, -1.0, 1.0, eps=0.0, max_depth=2)
    assert np.isfinite(value)


def test_non_finite_panel_is_returned():
    assert np.isnan(adaptive_gauss(lambda x: np.full_like(x, np.nan), 0.0, 1.0))
