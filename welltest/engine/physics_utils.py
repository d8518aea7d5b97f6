import math
from functools import lru_cache
from typing import Callable, List

import numpy as np

TimeTransform = Callable[[float], float]

# ================= Algoritmo de Stehfest =================

@lru_cache(maxsize=None)
def _stehfest_weights_cached(N: int) -> tuple:
    fac = math.factorial
    V = []
    for k in range(1, N + 1):
        s = 0.0
        j_min = (k + 1) // 2
        j_max = min(k, N // 2)

        for j in range(j_min, j_max + 1):
            num = (j ** (N // 2)) * fac(2 * j)
            den = (fac(N // 2 - j) * fac(j) * fac(j - 1) * fac(k - j) * fac(2 * j - k))
            if den != 0:
                s += num / den

        V.append(s * ((-1) ** (k + N // 2)))
    return tuple(V)


def stehfest_weights(N: int) -> np.ndarray:
    """
    Calcula los coeficientes V_i para el algoritmo de Stehfest.
    N debe ser un número par (ej. 8).
    """
    if N <= 0 or N % 2 != 0:
        raise ValueError("El número de Stehfest N debe ser par.")
    return np.array(_stehfest_weights_cached(N))


def invert_stehfest(f: Callable[[float], float], t: float, N: int) -> float:
    """
    Inversión numérica de Laplace: p(t) = (ln2/t) * Sum_m V_m * f(m*ln2/t).
    Un nodo con f no finito se toma como 0 para no contaminar la suma completa.
    """
    if t <= 1e-12:
        return 0.0
    V = stehfest_weights(N)
    ln2_t = math.log(2.0) / t
    total = 0.0
    for m in range(1, N + 1):
        pf = f(m * ln2_t)
        if not math.isfinite(pf):
            pf = 0.0
        total += V[m - 1] * pf
    return total * ln2_t


# ================= Post-procesos en el dominio del tiempo =================

def stress_sensitivity_correction(gamma_D: float) -> TimeTransform:
    """
    Corrección por sensibilidad a esfuerzos: p <- -ln(1 - gammaD*p) / gammaD.
    Si el argumento del logaritmo no es positivo se conserva el valor sin corregir.
    """
    def _apply(p: float) -> float:
        arg = 1.0 - gamma_D * p
        if arg > 1e-12:
            return -math.log(arg) / gamma_D
        return p
    return _apply


def time_transforms(gamma_D: float) -> List[TimeTransform]:
    """Cadena ordenada de post-procesos en tiempo (hoy solo sensibilidad a esfuerzos)."""
    chain = []
    if abs(gamma_D) > 1e-9:
        chain.append(stress_sensitivity_correction(gamma_D))
    return chain


def invert_pressure(f: Callable[[float], float], t: float, N: int, chain: List[TimeTransform] = ()) -> float:
    """Invierte f en t y aplica en orden la cadena de post-procesos en tiempo."""
    p = invert_stehfest(f, t, N)
    if t <= 1e-12:
        return p
    for transform in chain:
        p = transform(p)
    return p
