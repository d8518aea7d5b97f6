"""
Motor de regresión no lineal (Levenberg-Marquardt) para ajustar el modelo compuesto
a curvas observadas de presión y derivada.

El motor es de un solo uso: una instancia ejecuta un único ajuste. La corrida produce
una secuencia ordenada de eventos de iteración terminada por un registro de cierre
(FitResult). Puede consumirse en el mismo hilo con run(), o en un hilo de trabajo con
start() + events(); la cancelación es cooperativa con request_stop() y se consulta una
vez por iteración externa.
"""
import math
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Union

import numpy as np
import scipy.linalg
from pydantic import BaseModel, Field, field_validator

from welltest.core.config import settings
from welltest.core.logging import get_logger
from welltest.engine.adimensional import default_parameters
from welltest.models.well_models import Curve, FitParameter, ModelVariant, ParameterSet, check_time_axis
from welltest.services.curve_service import CurveGenerator

logger = get_logger(__name__)

# Parámetros que se perturban y actualizan en dominio lineal aunque sean positivos
LINEAR_DOMAIN_PARAMETERS = frozenset({"skin", "n_f"})
LOG_STEP = 0.01       # décadas
LINEAR_STEP = 1e-4
MIN_POSITIVE = 1e-10  # umbral para tomar logaritmos en los residuos
MAX_LOG10 = 308.0     # 10**x representable en doble precisión


class FitStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CONVERGED = "converged"
    STOPPED_BY_USER = "stopped_by_user"
    MAX_ITER_REACHED = "max_iter_reached"
    STALLED = "stalled"                      # lambda > max sin paso aceptado
    NO_FIT_PARAMETERS = "no_fit_parameters"
    FAILED = "failed"


class RegressionError(ValueError):
    """Error de entrada del ajuste, visible para el llamador."""


class EmptyObservedDataError(RegressionError):
    pass


class FitOptions(BaseModel):
    max_iter: int = Field(default_factory=lambda: settings.FIT_MAX_ITER, ge=0)
    max_tries: int = Field(default_factory=lambda: settings.FIT_MAX_TRIES, ge=1)
    initial_lambda: float = Field(default_factory=lambda: settings.FIT_INITIAL_LAMBDA, gt=0)
    max_lambda: float = Field(default_factory=lambda: settings.FIT_MAX_LAMBDA, gt=0)
    mse_tolerance: float = Field(default_factory=lambda: settings.FIT_MSE_TOLERANCE, ge=0)
    search_stehfest_n: int = Field(default_factory=lambda: settings.FIT_STEHFEST_N, ge=2)
    curve_time: Optional[List[float]] = Field(
        None, description="Tiempos de las curvas emitidas (por defecto la grilla logarítmica)")

    @field_validator("curve_time")
    @classmethod
    def _valid_time(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        if v:
            check_time_axis(v)
        return v


@dataclass
class IterationEvent:
    iteration: int
    mse: float
    parameters: Dict[str, float]
    curve: Curve
    final: bool = False

    def to_dict(self) -> dict:
        return {
            "type": "iteration",
            "iteration": self.iteration,
            "mse": self.mse,
            "parameters": dict(self.parameters),
            "final": self.final,
            "curve": self.curve.to_dict(),
        }


@dataclass
class FitResult:
    status: FitStatus
    iterations: int = 0
    mse: Optional[float] = None
    parameters: Dict[str, float] = field(default_factory=dict)
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "type": "completed",
            "status": self.status.value,
            "iterations": self.iterations,
            "mse": self.mse,
            "parameters": dict(self.parameters),
            "message": self.message,
        }


FitMessage = Union[IterationEvent, FitResult]


def pow10(exponent: float) -> float:
    """10**exponent con el exponente acotado a [-MAX_LOG10, MAX_LOG10] (sin OverflowError)."""
    return 10.0 ** min(max(exponent, -MAX_LOG10), MAX_LOG10)


def is_log_domain(name: str, value: float) -> bool:
    """Los parámetros positivos se perturban en log10, salvo skin y número de fracturas."""
    return value > 1e-12 and name not in LINEAR_DOMAIN_PARAMETERS


def log_residuals(observed, modeled, weight: float) -> np.ndarray:
    """weight*(ln obs - ln model) donde ambos superan MIN_POSITIVE; 0 en otro caso."""
    obs = np.asarray(observed, dtype=float)
    mod = np.asarray(modeled, dtype=float)
    n = min(len(obs), len(mod))
    obs, mod = obs[:n], mod[:n]
    ok = np.isfinite(obs) & np.isfinite(mod) & (obs > MIN_POSITIVE) & (mod > MIN_POSITIVE)
    r = np.zeros(n)
    r[ok] = weight * (np.log(obs[ok]) - np.log(mod[ok]))
    return r


class RegressionEngine:
    def __init__(self, fit_parameters: Sequence[FitParameter], observed: Curve,
                 variant: ModelVariant, weight: float = 0.5,
                 base: Optional[ParameterSet] = None, options: Optional[FitOptions] = None,
                 generator: Optional[CurveGenerator] = None):
        """
        Args:
            fit_parameters: Lista de parámetros (los marcados is_fit se ajustan). Se copia.
            observed: Terna observada (tiempo, Delta P, derivada).
            variant: Variante del modelo a ajustar.
            weight: Peso en [0, 1]; w para presión y (1 - w) para derivada.
            base: Parámetros que no figuran en la lista (por defecto los de la variante).
            options: Tolerancias y límites del algoritmo.
        """
        if observed is None or len(observed.time) == 0 or len(observed.pressure) == 0:
            raise EmptyObservedDataError("No hay datos observados para ajustar.")
        if not len(observed.time) == len(observed.pressure) == len(observed.derivative):
            raise RegressionError("Tiempo, presión y derivada observados deben tener la misma longitud.")
        check_time_axis(observed.time)
        if not 0.0 <= weight <= 1.0:
            raise RegressionError(f"El peso debe estar en [0, 1]: {weight}")

        self.variant = variant
        self.weight = weight
        self.options = options or FitOptions()
        self.generator = generator or CurveGenerator()
        self.base = (base or default_parameters(variant)).model_copy()

        self._obs_time = np.asarray(observed.time, dtype=float)
        self._obs_pressure = np.asarray(observed.pressure, dtype=float)
        self._obs_derivative = np.asarray(observed.derivative, dtype=float)

        # Copia local; los valores iniciales se llevan dentro de sus cotas
        self.parameters = [p.model_copy() for p in fit_parameters]
        for p in self.parameters:
            p.value = min(max(p.value, p.min), p.max)

        self.status = FitStatus.IDLE
        self.result: Optional[FitResult] = None
        self._stop = threading.Event()
        self._queue: "queue.Queue[FitMessage]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._started = False

    # ================= CONTROL =================

    def request_stop(self):
        """Pide detener el ajuste; se atiende al comienzo de la próxima iteración externa."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    @property
    def finished(self) -> bool:
        return self.result is not None

    def start(self) -> "RegressionEngine":
        """Ejecuta el ajuste en un hilo de trabajo; los eventos se leen con events()."""
        self._claim()
        self._thread = threading.Thread(target=self._worker, name="lm-regression", daemon=True)
        self._thread.start()
        return self

    def events(self, timeout: Optional[float] = None) -> Iterator[FitMessage]:
        """Itera los eventos del hilo de trabajo en orden, hasta el registro de cierre."""
        while True:
            msg = self._queue.get(timeout=timeout)
            yield msg
            if isinstance(msg, FitResult):
                return

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def _claim(self):
        if self._started:
            raise RuntimeError("RegressionEngine es de un solo uso.")
        self._started = True

    def _worker(self):
        try:
            for msg in self._iterate():
                self._queue.put(msg)
        except Exception as e:
            logger.exception("Fallo en el ajuste Levenberg-Marquardt")
            self.status = FitStatus.FAILED
            self.result = FitResult(status=FitStatus.FAILED, message=str(e))
            self._queue.put(self.result)

    # ================= MODELO =================

    def _parameter_set(self, values: Dict[str, float], n_stehfest: int) -> ParameterSet:
        update = dict(values)
        update["n_stehfest"] = n_stehfest
        return self.base.model_copy(update=update)

    def _full_order(self, values: Dict[str, float]) -> int:
        return int(values.get("n_stehfest", self.base.n_stehfest))

    def residuals(self, values: Dict[str, float]) -> np.ndarray:
        """Vector de residuos: bloque de presión seguido del bloque de derivada."""
        params = self._parameter_set(values, self.options.search_stehfest_n)
        curve = self.generator.evaluate(params, self.variant, self._obs_time)

        r_p = log_residuals(self._obs_pressure, curve.pressure, self.weight)
        n_d = min(len(self._obs_derivative), len(curve.derivative), len(r_p))
        r_d = log_residuals(self._obs_derivative[:n_d], curve.derivative[:n_d], 1.0 - self.weight)
        return np.concatenate([r_p, r_d])

    def jacobian(self, values: Dict[str, float], fit_names: List[str], n_res: int) -> np.ndarray:
        """Jacobiano por diferencias centrales, una columna por parámetro ajustado."""
        J = np.zeros((n_res, len(fit_names)))
        for col, name in enumerate(fit_names):
            val = values[name]
            plus = dict(values)
            minus = dict(values)
            if is_log_domain(name, val):
                h = LOG_STEP
                plus[name] = pow10(math.log10(val) + h)
                minus[name] = pow10(math.log10(val) - h)
            else:
                h = LINEAR_STEP
                plus[name] = val + h
                minus[name] = val - h

            r_plus = self.residuals(plus)
            r_minus = self.residuals(minus)
            if len(r_plus) == n_res and len(r_minus) == n_res:
                J[:, col] = (r_plus - r_minus) / (2.0 * h)
        return J

    def _emit(self, iteration: int, mse: float, values: Dict[str, float], n_stehfest: int,
              final: bool = False) -> IterationEvent:
        curve = self.generator.evaluate(self._parameter_set(values, n_stehfest), self.variant,
                                        self.options.curve_time)
        return IterationEvent(iteration=iteration, mse=mse, parameters=dict(values),
                              curve=curve, final=final)

    # ================= LEVENBERG-MARQUARDT =================

    def run(self) -> Iterator[FitMessage]:
        """Ejecuta el ajuste en el hilo actual, generando eventos y el registro de cierre."""
        self._claim()
        return self._iterate()

    def _iterate(self) -> Iterator[FitMessage]:
        opts = self.options
        fit_idx = [i for i, p in enumerate(self.parameters) if p.is_fit]
        values = {p.name: p.value for p in self.parameters}

        if not fit_idx:
            logger.warning("Ajuste sin parámetros seleccionados; no se itera.")
            self.status = FitStatus.NO_FIT_PARAMETERS
            self.result = FitResult(status=self.status, parameters=values,
                                    message="No hay parámetros marcados para ajustar.")
            yield self.result
            return

        self.status = FitStatus.RUNNING
        fit_names = [self.parameters[i].name for i in fit_idx]
        search_n = opts.search_stehfest_n
        logger.info("Inicio del ajuste %s: parámetros %s, peso %.2f",
                    self.variant.label, fit_names, self.weight)

        lam = opts.initial_lambda
        residuals = self.residuals(values)
        n_res = len(residuals)
        sse = float(residuals @ residuals)

        yield self._emit(0, sse / n_res, values, search_n)

        status = FitStatus.MAX_ITER_REACHED
        done = 0
        for iteration in range(1, opts.max_iter + 1):
            if self._stop.is_set():
                status = FitStatus.STOPPED_BY_USER
                break
            if sse / n_res < opts.mse_tolerance:
                status = FitStatus.CONVERGED
                break

            J = self.jacobian(values, fit_names, n_res)

            # H = J^T J: triángulo inferior y luego espejo
            n_p = len(fit_names)
            H = np.zeros((n_p, n_p))
            for i in range(n_p):
                for j in range(i + 1):
                    H[i, j] = J[:, i] @ J[:, j]
            H = np.tril(H) + np.tril(H, -1).T
            g = J.T @ residuals

            accepted = False
            for _ in range(opts.max_tries):
                H_lm = H.copy()
                H_lm[np.diag_indices(n_p)] += lam * (1.0 + np.abs(np.diag(H)))

                try:
                    delta = scipy.linalg.solve(H_lm, -g, assume_a="sym")
                except (np.linalg.LinAlgError, ValueError) as e:
                    logger.debug("Sistema amortiguado no resoluble (lambda=%g): %s", lam, e)
                    lam *= 10.0
                    continue

                trial = dict(values)
                for k, idx in enumerate(fit_idx):
                    fp = self.parameters[idx]
                    old = values[fp.name]
                    if is_log_domain(fp.name, old):
                        new = pow10(math.log10(old) + delta[k])
                    else:
                        new = old + delta[k]
                    trial[fp.name] = min(max(new, fp.min), fp.max)

                new_res = self.residuals(trial)
                new_sse = float(new_res @ new_res)

                if new_sse < sse:
                    values, residuals, sse = trial, new_res, new_sse
                    lam /= 10.0
                    accepted = True
                    logger.debug("Iteración %d aceptada: MSE=%.4e lambda=%.1e", iteration, sse / n_res, lam)
                    yield self._emit(iteration, sse / n_res, values, search_n)
                    break
                lam *= 10.0

            done = iteration
            if not accepted and lam > opts.max_lambda:
                status = FitStatus.STALLED
                break
        else:
            if sse / n_res < opts.mse_tolerance:
                status = FitStatus.CONVERGED

        # Curva final con el orden de inversión completo
        yield self._emit(done, sse / n_res, values, self._full_order(values), final=True)

        for p in self.parameters:
            p.value = values[p.name]
        self.status = status
        self.result = FitResult(status=status, iterations=done, mse=sse / n_res, parameters=dict(values))
        logger.info("Fin del ajuste: %s tras %d iteraciones (MSE=%.4e)", status.value, done, sse / n_res)
        yield self.result
