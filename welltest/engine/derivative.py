import numpy as np


def bourdet_derivative(time, value, l_spacing: float = 0.1) -> np.ndarray:
    """
    Derivada de Bourdet dP/d(ln t) con ventana L en ln t.

    Para cada punto se toman los vecinos izquierdo y derecho más cercanos que estén a
    al menos 'l_spacing' en ln t (o los extremos si no hay ninguno) y se promedian las
    pendientes ponderadas por la distancia opuesta. En los extremos la diferencia es
    unilateral. Con menos de 3 puntos devuelve ceros.

    Args:
        time: Tiempos estrictamente positivos y crecientes.
        value: Presión (o presión adimensional) alineada con 'time'.
        l_spacing: Ventana de suavizado L en ciclos de ln t.
    """
    t = np.asarray(time, dtype=float)
    p = np.asarray(value, dtype=float)
    n = len(t)
    d = np.zeros(n)
    if n < 3:
        return d

    x = np.log(t)
    for i in range(n):
        j = i - 1
        while j > 0 and x[i] - x[j] < l_spacing:
            j -= 1
        k = i + 1
        while k < n - 1 and x[k] - x[i] < l_spacing:
            k += 1

        if i == 0:
            dx = x[k] - x[i]
            d[i] = (p[k] - p[i]) / dx if dx > 0 else 0.0
        elif i == n - 1:
            dx = x[i] - x[j]
            d[i] = (p[i] - p[j]) / dx if dx > 0 else 0.0
        else:
            dx1 = x[i] - x[j]
            dx2 = x[k] - x[i]
            if dx1 <= 0 or dx2 <= 0:
                continue
            d[i] = ((p[i] - p[j]) / dx1 * dx2 + (p[k] - p[i]) / dx2 * dx1) / (dx1 + dx2)
    return d


def smooth_data(values, span: int = 5) -> np.ndarray:
    """Media móvil centrada de ventana impar; en los bordes la ventana se reduce."""
    v = np.asarray(values, dtype=float)
    n = len(v)
    if span < 3 or n < 3:
        return v.copy()
    idx = np.arange(n)
    w = np.minimum(span // 2, np.minimum(idx, n - 1 - idx))
    csum = np.concatenate(([0.0], np.cumsum(v)))
    return (csum[idx + w + 1] - csum[idx - w]) / (2 * w + 1)
