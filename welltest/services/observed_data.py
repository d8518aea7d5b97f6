from enum import Enum
from typing import Optional, Sequence

import numpy as np

from welltest.core.config import settings
from welltest.engine.derivative import bourdet_derivative, smooth_data
from welltest.models.well_models import Curve


class WellTestType(str, Enum):
    DRAWDOWN = "drawdown"   # Delta P = |Pi - P(t)|
    BUILDUP = "buildup"     # Delta P = |P(t) - Pwf(dt=0)|


def prepare_observed(time: Sequence[float], pressure: Sequence[float],
                     test_type: WellTestType = WellTestType.DRAWDOWN,
                     initial_pressure: Optional[float] = None,
                     derivative: Optional[Sequence[float]] = None,
                     smoothing: bool = False, span: int = 5) -> Curve:
    """
    Convierte presiones medidas en la terna observada (t, Delta P, derivada).

    - Se descartan filas con t <= 0 o valores no finitos (el log-log no los admite).
    - Prueba de decremento: Delta P = |Pi - p|; requiere la presión inicial.
    - Prueba de restitución: Delta P = |p - p_cierre|, con p_cierre el primer punto.
    - Si no se entrega derivada se calcula la de Bourdet (L = OBSERVED_L_SPACING).
    """
    test_type = WellTestType(test_type)
    t = np.asarray(time, dtype=float)
    p = np.asarray(pressure, dtype=float)
    if len(t) != len(p):
        raise ValueError("Tiempo y presión deben tener la misma longitud.")

    d = None
    if derivative is not None:
        d = np.zeros(len(t))
        raw = np.asarray(derivative, dtype=float)[:len(t)]
        d[:len(raw)] = raw

    valid = np.isfinite(t) & np.isfinite(p) & (t > 0)
    t, p = t[valid], p[valid]
    if d is not None:
        d = d[valid]

    if len(t) == 0:
        raise ValueError("No se pudieron extraer datos observados válidos.")

    if test_type is WellTestType.DRAWDOWN:
        if initial_pressure is None:
            raise ValueError("La prueba de decremento requiere la presión inicial.")
        delta_p = np.abs(initial_pressure - p)
    else:
        delta_p = np.abs(p - p[0])

    if d is None:
        d = bourdet_derivative(t, delta_p, settings.OBSERVED_L_SPACING)
    if smoothing:
        d = smooth_data(d, span)

    return Curve(t, delta_p, d)
