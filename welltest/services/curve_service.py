from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from welltest.core.config import settings
from welltest.engine.adimensional import AdimConverter, generate_log_time_steps
from welltest.engine.derivative import bourdet_derivative
from welltest.engine.laplace_model import make_evaluator
from welltest.engine.physics_utils import invert_pressure, time_transforms
from welltest.models.well_models import Curve, ModelVariant, ParameterSet, check_time_axis

DerivativeFn = Callable[[np.ndarray, np.ndarray, float], np.ndarray]

# Cantidad máxima de curvas en un análisis de sensibilidad
MAX_SENSITIVITY_CURVES = 6


class CurveGenerator:
    def __init__(self, derivative_fn: DerivativeFn = bourdet_derivative, l_spacing: float = None):
        """
        Generador de curvas teóricas presión/derivada.
        Args:
            derivative_fn: Estimador de derivada logarítmica (time, value, L) -> derivada.
            l_spacing: Ventana L de la derivada de Bourdet.
        """
        self.derivative_fn = derivative_fn
        self.l_spacing = settings.BOURDET_L_SPACING if l_spacing is None else l_spacing

    def default_time(self) -> np.ndarray:
        return generate_log_time_steps(settings.DEFAULT_TIME_POINTS,
                                       settings.DEFAULT_T_MIN_EXP, settings.DEFAULT_T_MAX_EXP)

    def dimensionless_curve(self, t_D: np.ndarray, params: ParameterSet, variant: ModelVariant):
        """
        Presión adimensional y su derivada en cada tD.
        Orden por punto: inversión de Stehfest -> corrección por esfuerzos; la
        derivada se calcula al final sobre la serie ya corregida.
        """
        f = make_evaluator(params, variant)
        chain = time_transforms(params.gamma_D)
        N = params.n_stehfest

        p_D = np.array([invert_pressure(f, t, N, chain) for t in t_D])

        if len(t_D) > 2:
            dp_D = np.asarray(self.derivative_fn(t_D, p_D, self.l_spacing), dtype=float)
        else:
            dp_D = np.zeros_like(p_D)
        return p_D, dp_D

    def evaluate(self, params: ParameterSet, variant: ModelVariant,
                 time: Optional[Sequence[float]] = None) -> Curve:
        """
        Curva teórica en unidades de campo.
        Si no se pasan tiempos se usa la grilla logarítmica por defecto.
        """
        params = params.model_copy()
        t = self.default_time() if time is None or len(time) == 0 else check_time_axis(time)

        converter = AdimConverter(params)
        t_D = converter.time_to_dimensionless(t)
        p_D, dp_D = self.dimensionless_curve(t_D, params, variant)

        return Curve(t.copy(), converter.pressure_to_field(p_D), converter.pressure_to_field(dp_D))

    def evaluate_sensitivity(self, params: ParameterSet, variant: ModelVariant, name: str,
                             values: Sequence[float],
                             time: Optional[Sequence[float]] = None) -> List[Tuple[float, Curve]]:
        """
        Una curva por cada valor del parámetro 'name' (máximo MAX_SENSITIVITY_CURVES).
        LfD se mantiene consistente porque se deriva de L y Lf en cada copia.
        """
        if name not in ParameterSet.model_fields:
            raise ValueError(f"Parámetro desconocido para sensibilidad: {name}")
        results = []
        for val in list(values)[:MAX_SENSITIVITY_CURVES]:
            current = params.model_copy(update={name: val})
            results.append((float(val), self.evaluate(current, variant, time)))
        return results


_default_generator = CurveGenerator()


def evaluate_curve(params: ParameterSet, variant: ModelVariant,
                   time: Optional[Sequence[float]] = None) -> Curve:
    """Curva teórica (tiempo, presión, derivada) con el generador por defecto."""
    return _default_generator.evaluate(params, variant, time)


def evaluate_sensitivity(params: ParameterSet, variant: ModelVariant, name: str,
                         values: Sequence[float],
                         time: Optional[Sequence[float]] = None) -> List[Tuple[float, Curve]]:
    return _default_generator.evaluate_sensitivity(params, variant, name, values, time)
