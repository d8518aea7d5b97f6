import numpy as np
import scipy.linalg

from welltest.core.logging import get_logger
from welltest.engine.adimensional import fracture_positions
from welltest.engine.bessel import bessel_k0, bessel_k1, scaled_bessel_i
from welltest.engine.quadrature import adaptive_gauss
from welltest.models.well_models import Boundary

logger = get_logger(__name__)

# Pisos numéricos para denominadores casi nulos
DENOMINATOR_FLOOR = 1e-100
# Argumento mínimo de K0 (singularidad logarítmica en distancia cero)
MIN_KERNEL_ARG = 1e-10
# Por debajo de este exponente el término reflejado es despreciable
EXP_UNDERFLOW = -700.0

# ================= Funciones Auxiliares de Estabilidad Numérica =================

def exp_clamped(x, lim=700.0):
    """Exponencial acotada para evitar overflow."""
    return np.exp(np.clip(x, -lim, lim))


def boundary_terms(gamma2: float, r_mD: float, r_eD: float, boundary: Boundary):
    """
    Términos de acople con la frontera externa (term_i0, term_i1).
    Frontera cerrada usa K1/I1; presión constante usa -K0/I0. Con frontera infinita,
    o si el denominador escalado es casi nulo, el efecto es despreciable y vale 0.
    """
    if boundary is Boundary.INFINITE:
        return 0.0, 0.0

    arg_rm = gamma2 * r_mD
    arg_re = gamma2 * r_eD
    i0_rm = scaled_bessel_i(0, arg_rm)
    i1_rm = scaled_bessel_i(1, arg_rm)
    shift = exp_clamped(arg_rm - arg_re)

    if boundary is Boundary.CLOSED:
        den = scaled_bessel_i(1, arg_re)
        if den <= DENOMINATOR_FLOOR:
            return 0.0, 0.0
        ratio = bessel_k1(arg_re) / den
    else:
        den = scaled_bessel_i(0, arg_re)
        if den <= DENOMINATOR_FLOOR:
            return 0.0, 0.0
        ratio = -bessel_k0(arg_re) / den

    return ratio * i0_rm * shift, ratio * i1_rm * shift


def reflection_coefficient(gamma1: float, gamma2: float, mobility_ratio: float,
                           r_mD: float, r_eD: float, boundary: Boundary) -> float:
    """
    Coeficiente de reflexión Ac = Acup / Acdown en la interfaz compuesta r = rmD.
    Acdown usa las I escaladas, por eso el kernel reflejado se multiplica luego por
    exp(gamma1*d - gamma1*rmD).
    """
    arg_g1 = gamma1 * r_mD
    arg_g2 = gamma2 * r_mD

    term_i0, term_i1 = boundary_terms(gamma2, r_mD, r_eD, boundary)
    term1 = term_i0 + bessel_k0(arg_g2)
    term2 = term_i1 - bessel_k1(arg_g2)

    ac_up = mobility_ratio * gamma1 * bessel_k1(arg_g1) * term1 + gamma2 * bessel_k0(arg_g1) * term2
    ac_down = (mobility_ratio * gamma1 * scaled_bessel_i(1, arg_g1) * term1
               - gamma2 * scaled_bessel_i(0, arg_g1) * term2)

    if abs(ac_down) < DENOMINATOR_FLOOR:
        ac_down = DENOMINATOR_FLOOR
    return ac_up / ac_down


class FractureNetworkSolver:
    def __init__(self, z: float, n_f: int, x_wD=None):
        """
        Inicializa el sistema lineal de la red de fracturas para un valor de Laplace 'z'.
        Args:
            z: Valor (real, positivo) de la variable de Laplace.
            n_f: Número de fracturas (fuentes lineales) a lo largo del pozo.
            x_wD: Posiciones adimensionales de las fracturas (por defecto repartidas en [-0.9, 0.9]).
        """
        self.z = z
        self.n = n_f
        self.x_wD = np.asarray(fracture_positions(n_f) if x_wD is None else x_wD, dtype=float)
        self.y_wD = np.zeros(self.n)

        # Incógnitas: [q_1 ... q_nf, p_w]
        # A[i, j] es la caída de presión en la fractura i causada por la fractura j
        self.A = np.zeros((self.n + 1, self.n + 1))
        self.rhs = np.zeros(self.n + 1)
        self.rhs[self.n] = 1.0

    # ================= KERNEL COMPUESTO =================

    def _influence(self, i: int, j: int, gamma1: float, ac: float, x_fD: float, r_mD: float) -> float:
        """Integral del kernel compuesto sobre la fractura j vista desde la fractura i."""
        dx = self.x_wD[i] - self.x_wD[j]
        dy = self.y_wD[i] - self.y_wD[j]
        arg_rm = gamma1 * r_mD

        def integrand(a):
            dist = np.sqrt((dx - a) ** 2 + dy ** 2)
            arg = np.maximum(gamma1 * dist, MIN_KERNEL_ARG)
            exponent = arg - arg_rm
            reflected = np.where(
                exponent > EXP_UNDERFLOW,
                ac * scaled_bessel_i(0, arg) * exp_clamped(exponent),
                0.0,
            )
            return bessel_k0(arg) + reflected

        return adaptive_gauss(integrand, -x_fD, x_fD)

    # ================= CONSTRUCCIÓN DE LA MATRIZ =================

    def build_matrix(self, gamma1: float, gamma2: float, mobility_ratio: float,
                     x_fD: float, r_mD: float, r_eD: float, boundary: Boundary):
        """
        Construye la matriz (nf+1)x(nf+1):
        - bloque nf x nf: influencia entre fracturas (integral del kernel compuesto);
        - última columna: -1 (presión de fondo compartida);
        - última fila: z (suma de caudales unitaria en Laplace).
        """
        ac = reflection_coefficient(gamma1, gamma2, mobility_ratio, r_mD, r_eD, boundary)
        scale = self.z / (mobility_ratio * self.z * 2.0 * x_fD)

        for i in range(self.n):
            for j in range(self.n):
                self.A[i, j] = self._influence(i, j, gamma1, ac, x_fD, r_mD) * scale

        self.A[:self.n, self.n] = -1.0
        self.A[self.n, :self.n] = self.z
        self.A[self.n, self.n] = 0.0

    def solve_pressure(self) -> float:
        """
        Resuelve el sistema y devuelve la incógnita de presión compartida (componente nf+1).
        Un sistema singular o no finito devuelve NaN; la inversión de Stehfest lo anula.
        """
        try:
            solution = scipy.linalg.solve(self.A, self.rhs)
        except (np.linalg.LinAlgError, ValueError) as e:
            logger.debug("Sistema de fracturas no resoluble en z=%g: %s", self.z, e)
            return float("nan")
        return float(solution[self.n])
