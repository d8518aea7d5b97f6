from typing import Any, List

from fastapi import APIRouter, HTTPException

from welltest.core.logging import get_logger
from welltest.engine.adimensional import default_parameters
from welltest.models.well_models import ModelVariant
from welltest.schemas.sim_schemas import (
    CurveRequest, CurveResponse, SensitivityCurve, SensitivityRequest, SensitivityResponse, VariantInfo,
)
from welltest.services.curve_service import evaluate_curve, evaluate_sensitivity

logger = get_logger(__name__)

router = APIRouter(tags=["Cálculo"])


@router.get("/models", response_model=List[VariantInfo])
def list_models() -> Any:
    """Las seis variantes del modelo compuesto con sus parámetros por defecto."""
    return [
        VariantInfo(
            number=v.number,
            boundary=v.boundary.value,
            storage=v.storage.value,
            label=v.label,
            defaults=default_parameters(v),
        )
        for v in ModelVariant.all()
    ]


@router.post("/simulate/curve", response_model=CurveResponse, summary="Calcular curva teórica")
def run_curve(config: CurveRequest) -> Any:
    """
    Calcula la curva presión / derivada de Bourdet del modelo compuesto
    para la variante y parámetros recibidos.
    """
    try:
        curve = evaluate_curve(config.parameters, config.variant, config.time)
        return CurveResponse.from_curve(curve)

    except HTTPException as he:
        raise he
    except ValueError as ve:
        raise HTTPException(status_code=422, detail=f"Error de validación matemática: {str(ve)}")
    except Exception as e:
        logger.exception("Error en el cálculo de la curva")
        raise HTTPException(status_code=500, detail=f"Error interno del motor de cálculo: {str(e)}")


@router.post("/simulate/sensitivity", response_model=SensitivityResponse, summary="Análisis de sensibilidad")
def run_sensitivity(config: SensitivityRequest) -> Any:
    """
    Una curva por cada valor del parámetro indicado (máximo 6).
    """
    try:
        results = evaluate_sensitivity(config.parameters, config.variant, config.parameter,
                                       config.values, config.time)
        return SensitivityResponse(
            parameter=config.parameter,
            curves=[SensitivityCurve(value=v, curve=CurveResponse.from_curve(c)) for v, c in results],
        )

    except HTTPException as he:
        raise he
    except ValueError as ve:
        raise HTTPException(status_code=422, detail=f"Error de validación matemática: {str(ve)}")
    except Exception as e:
        logger.exception("Error en el análisis de sensibilidad")
        raise HTTPException(status_code=500, detail=f"Error interno del motor de cálculo: {str(e)}")
