import json

import numpy as np
import pytest

from welltest.models.well_models import FitParameter
from welltest.routes.fitting import event_lines
from welltest.services.curve_service import CurveGenerator
from welltest.services.fit_jobs import FitJobRegistry, JobAlreadyObservedError
from welltest.services.regression_service import FitOptions, FitStatus, RegressionEngine


@pytest.fixture
def observed(fast_params, fast_variant):
    return CurveGenerator().evaluate(fast_params, fast_variant, np.logspace(-1, 2, 8))


@pytest.fixture
def make_engine(observed, fast_params, fast_variant):
    def _make(is_fit=True):
        params = [FitParameter(name="k_f", value=3e-3, min=1e-4, max=1e-2, is_fit=is_fit)]
        opts = FitOptions(max_iter=50, mse_tolerance=0.0, curve_time=list(observed.time))
        return RegressionEngine(params, observed, fast_variant, base=fast_params, options=opts)
    return _make


def test_second_consumer_is_refused(make_engine):
    jobs = FitJobRegistry()
    job_id = jobs.submit(make_engine(is_fit=False))
    assert jobs.claim(job_id) is not None
    with pytest.raises(JobAlreadyObservedError):
        jobs.claim(job_id)
    assert jobs.claim("missing") is None


def test_full_stream_releases_job(make_engine):
    jobs = FitJobRegistry()
    job_id = jobs.submit(make_engine(is_fit=False))
    engine = jobs.claim(job_id)
    lines = [json.loads(line) for line in event_lines(job_id, engine, jobs)]
    assert lines[-1]["status"] == FitStatus.NO_FIT_PARAMETERS.value
    assert jobs.get(job_id) is None
    assert len(jobs) == 0


def test_disconnected_consumer_stops_run(make_engine):
    jobs = FitJobRegistry()
    job_id = jobs.submit(make_engine())
    engine = jobs.claim(job_id)

    stream = event_lines(job_id, engine, jobs)
    first = json.loads(next(stream))
    assert first["iteration"] == 0
    stream.close()

    assert engine.stop_requested
    assert jobs.get(job_id) is None
    engine.join(timeout=120)
    assert engine.finished


def test_expired_jobs_are_stopped_and_dropped(make_engine):
    jobs = FitJobRegistry(ttl=0.0)
    old = make_engine()
    old_id = jobs.submit(old)
    new_id = jobs.submit(make_engine(is_fit=False))

    assert jobs.get(old_id) is None
    assert jobs.get(new_id) is not None
    assert old.stop_requested or old.finished
    old.join(timeout=120)
