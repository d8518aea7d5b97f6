import numpy as np

from welltest.models.well_models import ModelVariant, ParameterSet

# ================= CONSTANTES DE UNIDADES =================
# t en horas, k en mD, h y L en m, mu en mPa.s, Ct en 1/MPa, q en m3/d, p en MPa
TIME_CONSTANT = 14.4
PRESSURE_CONSTANT = 1.842e-3
# =============================================================


class AdimConverter:
    def __init__(self, params: ParameterSet):
        """
        Define los grupos de referencia para pasar de unidades de campo a adimensionales.
        La longitud de referencia es la longitud horizontal del pozo L.
        """
        self.params = params

        # Difusividad de referencia (región interna): 14.4*kf / (phi*mu*Ct)
        self.eta = TIME_CONSTANT * params.k_f / (params.phi * params.mu * params.ct)

        # Factor de presión: p = F * pD
        self.pressure_factor = PRESSURE_CONSTANT * params.q * params.mu * params.b_factor / (params.k_f * params.h)

    def time_to_dimensionless(self, t_hours):
        """
        Convierte tiempo real a tiempo adimensional.
        tD = 14.4*kf*t / (phi*mu*Ct*L^2)
        """
        return self.eta * np.asarray(t_hours, dtype=float) / (self.params.length ** 2)

    def pressure_to_field(self, p_dimensionless):
        return self.pressure_factor * np.asarray(p_dimensionless, dtype=float)


def fracture_positions(n_f: int) -> np.ndarray:
    """Posiciones adimensionales de las fracturas, repartidas en [-0.9, 0.9] (0 si nf=1)."""
    if n_f <= 1:
        return np.zeros(1)
    return np.linspace(-0.9, 0.9, n_f)


def generate_log_time_steps(count: int, start_exp: float, end_exp: float) -> np.ndarray:
    """Grilla logarítmica de 'count' tiempos entre 10^start_exp y 10^end_exp."""
    if count < 2:
        return np.array([10.0 ** start_exp])
    return np.logspace(start_exp, end_exp, count)


def default_parameters(variant: ModelVariant) -> ParameterSet:
    """
    Parámetros por defecto de cada variante.
    reD solo tiene sentido con frontera acotada; cD y S solo con almacenamiento variable.
    """
    values = {
        "phi": 0.05, "h": 20.0, "mu": 0.5, "b_factor": 1.05, "ct": 5e-4, "q": 5.0,
        "n_f": 4, "k_f": 1e-3, "k_m": 1e-4, "length": 1000.0, "x_f": 100.0,
        "r_mD": 4.0, "omega1": 0.4, "omega2": 0.08, "lambda1": 1e-3, "gamma_D": 0.02,
        "n_stehfest": 8,
    }
    if variant.is_bounded:
        values["r_eD"] = 10.0
    if variant.has_storage:
        values["c_D"] = 0.01
        values["skin"] = 1.0
    else:
        values["c_D"] = 0.0
        values["skin"] = 0.0
    return ParameterSet(**values)
