"""
Evaluador en espacio de Laplace del modelo compuesto de pozo horizontal multifracturado.

La solución base (red de fracturas + sistema compuesto de doble porosidad) se
post-procesa con una cadena ordenada de transformaciones en Laplace. Hoy la única
es la convolución de almacenamiento de pozo y skin, presente solo si la variante
tiene almacenamiento variable.
"""
import math
from typing import Callable, List

from welltest.core.logging import get_logger
from welltest.engine.adimensional import fracture_positions
from welltest.engine.dual_porosity import diffusivity_argument, f_function, outer_storage_function
from welltest.engine.matrix_assembly import FractureNetworkSolver
from welltest.models.well_models import ModelVariant, ParameterSet

logger = get_logger(__name__)

LaplaceTransform = Callable[[float, float], float]


def composite_pressure(z: float, params: ParameterSet, variant: ModelVariant, x_wD=None) -> float:
    """
    Presión adimensional compuesta en Laplace (sin almacenamiento ni skin).
    Devuelve NaN si la geometría es degenerada (LfD = 0) o el sistema es singular.
    """
    x_fD = params.x_fD
    if x_fD <= 0.0:
        logger.debug("LfD nulo: sin fuente lineal que integrar (z=%g)", z)
        return float("nan")

    m12 = params.mobility_ratio
    fs1 = f_function(z, params.omega1, params.omega2, params.lambda1)
    fs2 = outer_storage_function(params.omega2, m12)
    gamma1 = diffusivity_argument(z, fs1)
    gamma2 = diffusivity_argument(z, fs2)

    n_f = params.fracture_count
    solver = FractureNetworkSolver(z, n_f, fracture_positions(n_f) if x_wD is None else x_wD)
    solver.build_matrix(gamma1, gamma2, m12, x_fD, params.r_mD, params.r_eD, variant.boundary)
    return solver.solve_pressure()


# ================= TRANSFORMACIONES EN LAPLACE =================

def storage_skin_transform(c_D: float, skin: float) -> LaplaceTransform:
    """pf <- (z*pf + S) / (z + cD*z^2*(z*pf + S))"""
    def _apply(z: float, pf: float) -> float:
        num = z * pf + skin
        return num / (z + c_D * z * z * num)
    return _apply


def laplace_transforms(params: ParameterSet, variant: ModelVariant) -> List[LaplaceTransform]:
    """Cadena ordenada de post-procesos en Laplace activos para esta variante."""
    chain = []
    if variant.has_storage and (params.c_D > 1e-12 or abs(params.skin) > 1e-12):
        chain.append(storage_skin_transform(params.c_D, params.skin))
    return chain


def make_evaluator(params: ParameterSet, variant: ModelVariant) -> Callable[[float], float]:
    """
    Construye f(z) para la inversión numérica. Los parámetros se copian: el
    evaluador no comparte estado con el llamador.
    """
    p = params.model_copy()
    x_wD = fracture_positions(p.fracture_count)
    chain = laplace_transforms(p, variant)

    def evaluate(z: float) -> float:
        pf = composite_pressure(z, p, variant, x_wD)
        if not math.isfinite(pf):
            return pf
        for transform in chain:
            pf = transform(z, pf)
        return pf

    return evaluate


def laplace_pressure(z: float, params: ParameterSet, variant: ModelVariant) -> float:
    """Presión adimensional en Laplace, con la cadena de post-procesos aplicada."""
    return make_evaluator(params, variant)(z)
