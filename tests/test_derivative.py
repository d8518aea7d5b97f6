import numpy as np
import pytest

from welltest.engine.derivative import bourdet_derivative, smooth_data


def test_semilog_line_has_constant_derivative():
    t = np.logspace(-2, 2, 30)
    p = 2.5 * np.log(t) + 4.0
    np.testing.assert_allclose(bourdet_derivative(t, p, 0.1), 2.5, rtol=1e-10)


def test_linear_flow_derivative():
    t = np.logspace(0, 2, 50)
    d = bourdet_derivative(t, t, 0.1)
    # dP/dln t = t en el interior
    np.testing.assert_allclose(d[5:-5], t[5:-5], rtol=0.05)


@pytest.mark.parametrize("n", [0, 1, 2])
def test_short_series_returns_zeros(n):
    t = np.arange(1, n + 1, dtype=float)
    d = bourdet_derivative(t, t)
    assert len(d) == n
    assert not d.any()


def test_wide_window_uses_end_points():
    t = np.array([1.0, 2.0, 4.0])
    p = np.log(t)
    np.testing.assert_allclose(bourdet_derivative(t, p, 10.0), 1.0)


def test_smoothing():
    v = np.array([1.0, 3.0, 1.0, 3.0, 1.0, 3.0])
    s = smooth_data(v, 3)
    assert s[0] == v[0] and s[-1] == v[-1]
    assert s[2] == pytest.approx(7.0 / 3.0)
    np.testing.assert_array_equal(smooth_data(v, 1), v)
    np.testing.assert_allclose(smooth_data(np.full(9, 2.0), 5), 2.0)


@pytest.mark.parametrize("span", [3, 5, 7])
def test_smoothing_matches_shrinking_window_mean(span):
    rng = np.random.default_rng(7)
    v = rng.normal(size=23)
    half = span // 2
    expected = [v[i - min(half, i, len(v) - 1 - i):i + min(half, i, len(v) - 1 - i) + 1].mean()
                for i in range(len(v))]
    np.testing.assert_allclose(smooth_data(v, span), expected, rtol=1e-12, atol=1e-12)
