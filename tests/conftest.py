import numpy as np
import pytest

from welltest.engine.adimensional import default_parameters
from welltest.models.well_models import Boundary, ModelVariant, Storage


@pytest.fixture
def fast_variant():
    return ModelVariant(boundary=Boundary.INFINITE, storage=Storage.CONSTANT)


@pytest.fixture
def fast_params(fast_variant):
    """Una sola fractura y N=4: suficiente para las pruebas y rápido."""
    return default_parameters(fast_variant).model_copy(update={"n_f": 1, "n_stehfest": 4})


@pytest.fixture
def short_time():
    return np.logspace(-1, 2, 8)
