import math


def f_function(z: float, omega1: float, omega2: float, lam: float) -> float:
    """
    Función de transferencia de interporosidad de la región interna.
    fs1 = omega1 + lambda1*omega2 / (lambda1 + z*omega2)

    Args:
        z: Variable de Laplace (real, positiva).
        omega1: Storativity de la región interna.
        omega2: Storativity de la región externa.
        lam: Coeficiente de interporosidad (lambda1).
    """
    den = lam + z * omega2
    if den == 0.0:
        # lambda1 = 0 y omega2 = 0: sin flujo cruzado
        return omega1
    return omega1 + lam * omega2 / den


def outer_storage_function(omega2: float, mobility_ratio: float) -> float:
    """Agrupamiento movilidad/almacenamiento de la región externa: fs2 = M12*omega2."""
    return mobility_ratio * omega2


def diffusivity_argument(z: float, fs: float) -> float:
    """gamma = sqrt(z * f(s))."""
    return math.sqrt(max(z * fs, 0.0))
