from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

from welltest.models.well_models import Curve, ModelVariant, ParameterSet, check_time_axis
from welltest.services.observed_data import WellTestType

# ================= INPUT SCHEMAS =================

class CurveRequest(BaseModel):
    """
    Parámetros para calcular una curva teórica.
    Se envían en el cuerpo del POST request.
    """
    variant: ModelVariant = Field(default_factory=ModelVariant, description="Frontera y almacenamiento del modelo")
    parameters: ParameterSet = Field(default_factory=ParameterSet, description="Parámetros del modelo")
    time: Optional[List[float]] = Field(None, description="Tiempos en horas (por defecto grilla logarítmica 1e-3 a 1e3)")

    @field_validator("time")
    @classmethod
    def _positive_increasing(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        if v:
            check_time_axis(v)
        return v


class SensitivityRequest(CurveRequest):
    parameter: str = Field(..., description="Parámetro a variar", examples=["k_f"])
    values: List[float] = Field(..., description="Valores del parámetro (máximo 6 curvas)", min_length=1)


class ObservedRequest(BaseModel):
    time: List[float] = Field(..., description="Tiempo medido [h]")
    pressure: List[float] = Field(..., description="Presión medida")
    test_type: WellTestType = Field(WellTestType.DRAWDOWN, description="Decremento o restitución")
    initial_pressure: Optional[float] = Field(None, description="Presión inicial (requerida en decremento)")
    derivative: Optional[List[float]] = Field(None, description="Derivada ya calculada (opcional)")
    smoothing: bool = False
    span: int = Field(5, description="Ventana de suavizado", ge=1)

# ================= OUTPUT SCHEMAS =================

class CurveResponse(BaseModel):
    """
    Curva tiempo / presión / derivada.
    """
    time: List[float] = Field(..., description="Vector de tiempos en horas (Eje X)")
    pressure: List[float] = Field(..., description="Presión (Delta P) en cada tiempo")
    derivative: List[float] = Field(..., description="Derivada de Bourdet en cada tiempo")

    @classmethod
    def from_curve(cls, curve: Curve) -> "CurveResponse":
        return cls(**curve.to_dict())

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "time": [0.001, 0.01, 0.1, 1.0],
            "pressure": [0.05, 0.31, 1.2, 2.4],
            "derivative": [0.04, 0.2, 0.5, 0.6]
        }
    })


class SensitivityCurve(BaseModel):
    value: float
    curve: CurveResponse


class SensitivityResponse(BaseModel):
    parameter: str
    curves: List[SensitivityCurve]


class VariantInfo(BaseModel):
    number: int
    boundary: str
    storage: str
    label: str
    defaults: ParameterSet
