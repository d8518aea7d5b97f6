import numpy as np

from welltest.core.config import settings

# Nodos y pesos de Gauss-Legendre de 15 puntos en [-1, 1]
_NODES, _WEIGHTS = np.polynomial.legendre.leggauss(15)


def gauss15(f, a: float, b: float) -> float:
    """Cuadratura de Gauss-Legendre de 15 puntos en [a, b]. f debe aceptar arrays."""
    half = 0.5 * (b - a)
    center = 0.5 * (a + b)
    return float(np.dot(_WEIGHTS, f(center + half * _NODES)) * half)


def adaptive_gauss(f, a: float, b: float, eps: float = None, depth: int = 0,
                   max_depth: int = None) -> float:
    """
    Integración adaptativa por bisección recursiva.
    Compara el panel completo con sus dos mitades; si no concuerdan dentro de la
    tolerancia relativa + absoluta, subdivide con eps/2. Al agotar la profundidad
    devuelve la mejor estimación disponible en lugar de fallar.
    """
    eps = settings.QUAD_EPS if eps is None else eps
    max_depth = settings.QUAD_MAX_DEPTH if max_depth is None else max_depth

    c = 0.5 * (a + b)
    v1 = gauss15(f, a, b)
    v2 = gauss15(f, a, c) + gauss15(f, c, b)
    if not np.isfinite(v2):
        return v2
    if depth >= max_depth or abs(v1 - v2) < 1e-10 * abs(v2) + eps:
        return v2
    return (adaptive_gauss(f, a, c, eps / 2.0, depth + 1, max_depth)
            + adaptive_gauss(f, c, b, eps / 2.0, depth + 1, max_depth))
