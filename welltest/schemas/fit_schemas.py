from pydantic import BaseModel, Field, model_validator
from typing import List, Optional

from welltest.models.well_models import FitParameter, ModelVariant, ParameterSet, check_time_axis
from welltest.services.regression_service import FitOptions


class ObservedData(BaseModel):
    time: List[float] = Field(..., description="Tiempo observado [h], positivo y creciente")
    pressure: List[float] = Field(..., description="Delta P observado")
    derivative: List[float] = Field(..., description="Derivada observada")

    @model_validator(mode="after")
    def _aligned(self) -> "ObservedData":
        if not len(self.time) == len(self.pressure) == len(self.derivative):
            raise ValueError("Tiempo, presión y derivada deben tener la misma longitud.")
        if self.time:
            check_time_axis(self.time)
        return self


class FitRequest(BaseModel):
    """
    Configuración de un ajuste Levenberg-Marquardt.
    """
    variant: ModelVariant = Field(default_factory=ModelVariant)
    parameters: List[FitParameter] = Field(..., description="Parámetros con cotas y marca de ajuste")
    base: Optional[ParameterSet] = Field(None, description="Parámetros fijos no listados (por defecto los de la variante)")
    observed: ObservedData
    weight: float = Field(0.5, description="Peso presión vs derivada", ge=0, le=1)
    options: Optional[FitOptions] = None


class FitJobResponse(BaseModel):
    job_id: str
    status: str
