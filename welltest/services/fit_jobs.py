import threading
import time
import uuid
from typing import Dict, Optional, Set

from welltest.core.config import settings
from welltest.core.logging import get_logger
from welltest.services.regression_service import RegressionEngine

logger = get_logger(__name__)


class JobAlreadyObservedError(Exception):
    """El stream de eventos de un ajuste ya tiene un consumidor."""


class FitJobRegistry:
    """
    Registro en memoria de ajustes en curso, indexados por job_id.
    Cada job es un RegressionEngine de un solo uso corriendo en su propio hilo, con
    un único consumidor de eventos. Los jobs más viejos que 'ttl' segundos se detienen
    y se descartan al registrar uno nuevo.
    """
    def __init__(self, ttl: Optional[float] = None):
        self.ttl = settings.FIT_JOB_TTL if ttl is None else ttl
        self._jobs: Dict[str, RegressionEngine] = {}
        self._created: Dict[str, float] = {}
        self._observed: Set[str] = set()
        self._lock = threading.Lock()

    def submit(self, engine: RegressionEngine) -> str:
        job_id = uuid.uuid4().hex
        with self._lock:
            self._prune(time.monotonic())
            self._jobs[job_id] = engine
            self._created[job_id] = time.monotonic()
        engine.start()
        logger.info("Ajuste %s iniciado", job_id)
        return job_id

    def get(self, job_id: str) -> Optional[RegressionEngine]:
        with self._lock:
            return self._jobs.get(job_id)

    def claim(self, job_id: str) -> Optional[RegressionEngine]:
        """Reserva el stream de eventos del job para un único consumidor."""
        with self._lock:
            engine = self._jobs.get(job_id)
            if engine is None:
                return None
            if job_id in self._observed:
                raise JobAlreadyObservedError(job_id)
            self._observed.add(job_id)
            return engine

    def pop(self, job_id: str) -> Optional[RegressionEngine]:
        with self._lock:
            return self._discard(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _discard(self, job_id: str) -> Optional[RegressionEngine]:
        self._created.pop(job_id, None)
        self._observed.discard(job_id)
        return self._jobs.pop(job_id, None)

    def _prune(self, now: float):
        expired = [j for j, created in self._created.items() if now - created >= self.ttl]
        for job_id in expired:
            engine = self._discard(job_id)
            if engine is not None and not engine.finished:
                engine.request_stop()
            logger.info("Ajuste %s descartado por antigüedad", job_id)


registry = FitJobRegistry()


def get_job_registry() -> FitJobRegistry:
    """Dependencia de FastAPI para acceder al registro de ajustes."""
    return registry
