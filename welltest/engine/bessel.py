import numpy as np
from scipy import special

# Para argumentos grandes se usa la forma asintótica de I_v(x)·e^(-x)
SCALED_CUTOFF = 600.0


def bessel_k0(x):
    """K0(x), función de Bessel modificada de segunda especie, orden 0."""
    return special.k0(x)


def bessel_k1(x):
    """K1(x), función de Bessel modificada de segunda especie, orden 1."""
    return special.k1(x)


def scaled_bessel_i(order: int, x):
    """
    I_v(x)·e^(-x) para v = 0, 1.
    Evita el overflow de I_v para argumentos grandes; por encima de SCALED_CUTOFF
    se reemplaza por 1/sqrt(2*pi*x). Argumentos negativos se espejan (|x|).
    """
    x = np.abs(np.asarray(x, dtype=float))
    if order == 0:
        val = special.i0e(x)
    elif order == 1:
        val = special.i1e(x)
    else:
        raise ValueError(f"Orden de Bessel no soportado: {order}")

    asym = 1.0 / np.sqrt(2.0 * np.pi * np.maximum(x, SCALED_CUTOFF))
    val = np.where(x > SCALED_CUTOFF, asym, val)
    if val.ndim == 0:
        return float(val)
    return val
