from enum import Enum
from typing import List, NamedTuple, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

# ================= VARIANTES DEL MODELO =================

class Boundary(str, Enum):
    INFINITE = "infinite"
    CLOSED = "closed"
    CONSTANT_PRESSURE = "constant_pressure"


class Storage(str, Enum):
    VARIABLE = "variable"   # Almacenamiento de pozo + skin activos
    CONSTANT = "constant"   # Sin convolución de almacenamiento (cD = S = 0)


_BOUNDARY_ORDER = [Boundary.INFINITE, Boundary.CLOSED, Boundary.CONSTANT_PRESSURE]
_STORAGE_ORDER = [Storage.VARIABLE, Storage.CONSTANT]

_BOUNDARY_LABELS = {
    Boundary.INFINITE: "infinite boundary",
    Boundary.CLOSED: "closed boundary",
    Boundary.CONSTANT_PRESSURE: "constant-pressure boundary",
}
_STORAGE_LABELS = {
    Storage.VARIABLE: "variable wellbore storage",
    Storage.CONSTANT: "constant wellbore storage",
}


class ModelVariant(BaseModel):
    """
    Par etiquetado {frontera, almacenamiento}. Seis combinaciones posibles.
    Los modelos numerados 1..6 siguen el orden frontera-mayor:
    1/2 infinito, 3/4 cerrado, 5/6 presión constante (impar = almacenamiento variable).
    """
    model_config = ConfigDict(frozen=True)

    boundary: Boundary = Field(Boundary.INFINITE, description="Condición de frontera externa")
    storage: Storage = Field(Storage.VARIABLE, description="Tratamiento de almacenamiento de pozo")

    @property
    def is_bounded(self) -> bool:
        return self.boundary is not Boundary.INFINITE

    @property
    def has_storage(self) -> bool:
        return self.storage is Storage.VARIABLE

    @property
    def number(self) -> int:
        return _BOUNDARY_ORDER.index(self.boundary) * 2 + _STORAGE_ORDER.index(self.storage) + 1

    @property
    def label(self) -> str:
        return (f"Composite shale-oil model {self.number} "
                f"({_BOUNDARY_LABELS[self.boundary]} + {_STORAGE_LABELS[self.storage]})")

    @classmethod
    def from_number(cls, number: int) -> "ModelVariant":
        if not 1 <= number <= 6:
            raise ValueError(f"Número de modelo fuera de rango (1-6): {number}")
        idx = number - 1
        return cls(boundary=_BOUNDARY_ORDER[idx // 2], storage=_STORAGE_ORDER[idx % 2])

    @classmethod
    def all(cls) -> List["ModelVariant"]:
        return [cls.from_number(n) for n in range(1, 7)]


# ================= PARÁMETROS DEL MODELO =================

class ParameterSet(BaseModel):
    """
    Parámetros físicos y adimensionales de una corrida.
    Unidades de campo del yacimiento (h en m, mu en mPa.s, Ct en 1/MPa, q en m3/d).
    Cada cálculo trabaja sobre una copia; no hay instancia compartida mutable.
    """
    # Propiedades del fluido y formación
    phi: float = Field(0.05, description="Porosidad (fracción)", gt=0)
    h: float = Field(20.0, description="Espesor de la formación", gt=0)
    mu: float = Field(0.5, description="Viscosidad del fluido", gt=0)
    b_factor: float = Field(1.05, description="Factor volumétrico", gt=0)
    ct: float = Field(5e-4, description="Compresibilidad total", gt=0)
    q: float = Field(5.0, description="Caudal de producción")

    # Geometría del pozo y fracturas
    n_f: float = Field(4, description="Número de fracturas (se trunca a entero en el modelo)", ge=1)
    length: float = Field(1000.0, description="Longitud horizontal del pozo (L)", ge=0)
    x_f: float = Field(100.0, description="Media longitud de fractura (Lf)", ge=0)
    r_mD: float = Field(4.0, description="Radio adimensional de la región interna (rmD)", gt=0)

    # Sistema compuesto de doble porosidad
    k_f: float = Field(1e-3, description="Permeabilidad de la región interna (kf)", gt=0)
    k_m: float = Field(1e-4, description="Permeabilidad de la región externa (km)", gt=0)
    omega1: float = Field(0.4, description="Storativity de la región interna", ge=0)
    omega2: float = Field(0.08, description="Storativity de la región externa", ge=0)
    lambda1: float = Field(1e-3, description="Coeficiente de interporosidad", ge=0)

    # Frontera, almacenamiento y sensibilidad a esfuerzos
    r_eD: float = Field(10.0, description="Radio adimensional de frontera externa (ignorado si es infinita)", gt=0)
    c_D: float = Field(0.0, description="Coeficiente de almacenamiento adimensional", ge=0)
    skin: float = Field(0.0, description="Factor de daño (S)")
    gamma_D: float = Field(0.0, description="Módulo de sensibilidad a esfuerzos")

    n_stehfest: int = Field(8, description="Orden de inversión de Stehfest (par)", ge=2)

    @field_validator("n_stehfest")
    @classmethod
    def _even_order(cls, v: int) -> int:
        if v % 2 != 0:
            raise ValueError("El número de Stehfest N debe ser par.")
        return v

    @property
    def x_fD(self) -> float:
        """Semilongitud de fractura adimensional LfD = Lf / L (0 si L es nula)."""
        if self.length > 1e-9:
            return self.x_f / self.length
        return 0.0

    @property
    def fracture_count(self) -> int:
        return max(1, int(self.n_f))

    @property
    def mobility_ratio(self) -> float:
        """M12 = kf / km."""
        return self.k_f / self.k_m


# ================= PARÁMETROS DE AJUSTE =================

class FitParameter(BaseModel):
    """Parámetro del ajuste: valor inicial, cotas y si participa en la regresión."""
    name: str = Field(..., description="Nombre de un campo de ParameterSet")
    value: float
    min: float = Field(-np.inf, description="Cota inferior")
    max: float = Field(np.inf, description="Cota superior")
    is_fit: bool = Field(False, description="True si el parámetro se ajusta")

    @field_validator("name")
    @classmethod
    def _known_name(cls, v: str) -> str:
        if v not in ParameterSet.model_fields:
            raise ValueError(f"Parámetro desconocido: {v}")
        return v


# ================= CURVAS =================

class Curve(NamedTuple):
    """Terna (tiempo, presión, derivada) con tiempo estrictamente creciente."""
    time: np.ndarray
    pressure: np.ndarray
    derivative: np.ndarray

    def to_dict(self) -> dict:
        return {
            "time": self.time.tolist(),
            "pressure": self.pressure.tolist(),
            "derivative": self.derivative.tolist(),
        }


def check_time_axis(time) -> np.ndarray:
    """Valida un eje de tiempos: finito, estrictamente positivo y estrictamente creciente."""
    t = np.asarray(time, dtype=float)
    if not np.all(np.isfinite(t)) or np.any(t <= 0):
        raise ValueError("Los tiempos deben ser finitos y estrictamente positivos.")
    if np.any(np.diff(t) <= 0):
        raise ValueError("Los tiempos deben ser estrictamente crecientes.")
    return t


def as_curve(time, pressure, derivative: Optional[object] = None) -> Curve:
    t = np.asarray(time, dtype=float)
    p = np.asarray(pressure, dtype=float)
    d = np.zeros_like(p) if derivative is None else np.asarray(derivative, dtype=float)
    return Curve(t, p, d)
