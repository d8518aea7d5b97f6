import json
from typing import Any, Iterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from welltest.core.logging import get_logger
from welltest.models.well_models import as_curve
from welltest.schemas.fit_schemas import FitJobResponse, FitRequest
from welltest.schemas.sim_schemas import CurveResponse, ObservedRequest
from welltest.services.fit_jobs import FitJobRegistry, JobAlreadyObservedError, get_job_registry
from welltest.services.observed_data import prepare_observed
from welltest.services.regression_service import RegressionEngine

logger = get_logger(__name__)

router = APIRouter(tags=["Ajuste"])


def event_lines(job_id: str, engine: RegressionEngine, jobs: FitJobRegistry) -> Iterator[str]:
    """
    Líneas NDJSON de los eventos del ajuste. Si el consumidor se desconecta antes del
    registro de cierre se pide detener el ajuste; en todos los casos el job se libera.
    """
    try:
        for msg in engine.events():
            yield json.dumps(msg.to_dict()) + "\n"
    finally:
        if not engine.finished:
            engine.request_stop()
        jobs.pop(job_id)


@router.post("/observed/prepare", response_model=CurveResponse, summary="Preparar datos observados")
def prepare_observed_data(data: ObservedRequest) -> Any:
    """
    Calcula Delta P según el tipo de prueba (decremento / restitución) y la derivada
    de Bourdet si no se envía una.
    """
    try:
        curve = prepare_observed(data.time, data.pressure, data.test_type, data.initial_pressure,
                                 data.derivative, data.smoothing, data.span)
        return CurveResponse.from_curve(curve)
    except ValueError as ve:
        raise HTTPException(status_code=422, detail=str(ve))


@router.post("/fitting/jobs", response_model=FitJobResponse, summary="Iniciar ajuste Levenberg-Marquardt")
def start_fit(request: FitRequest, jobs: FitJobRegistry = Depends(get_job_registry)) -> Any:
    """
    Lanza el ajuste en un hilo de trabajo y devuelve su identificador.
    Los eventos de iteración se leen desde /fitting/jobs/{job_id}/events.
    """
    try:
        observed = as_curve(request.observed.time, request.observed.pressure, request.observed.derivative)
        engine = RegressionEngine(request.parameters, observed, request.variant, request.weight,
                                  base=request.base, options=request.options)
    except ValueError as ve:
        raise HTTPException(status_code=422, detail=str(ve))

    job_id = jobs.submit(engine)
    return FitJobResponse(job_id=job_id, status=engine.status.value)


@router.get("/fitting/jobs/{job_id}/events", summary="Eventos del ajuste (NDJSON)")
def stream_fit_events(job_id: str, jobs: FitJobRegistry = Depends(get_job_registry)):
    """
    Transmite los eventos de iteración en orden, una línea JSON por evento,
    terminando con el registro de cierre. Admite un solo consumidor por ajuste.
    """
    try:
        engine = jobs.claim(job_id)
    except JobAlreadyObservedError:
        raise HTTPException(status_code=409, detail="El ajuste ya tiene un consumidor de eventos")
    if engine is None:
        raise HTTPException(status_code=404, detail="Ajuste no encontrado")

    return StreamingResponse(event_lines(job_id, engine, jobs), media_type="application/x-ndjson")


@router.post("/fitting/jobs/{job_id}/stop", response_model=FitJobResponse, summary="Detener ajuste")
def stop_fit(job_id: str, jobs: FitJobRegistry = Depends(get_job_registry)) -> Any:
    engine = jobs.get(job_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="Ajuste no encontrado")
    engine.request_stop()
    return FitJobResponse(job_id=job_id, status=engine.status.value)
