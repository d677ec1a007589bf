"""
Shared pytest fixtures.
"""

import numpy as np
import pytest

from bevholt_models.exceptions import FitNonConvergence
from bevholt_models.model_spec import ModelKind
from bevholt_models.posterior import PosteriorSample
from bevholt_models.scenario import make_scenario

SEED = 123


@pytest.fixture
def rng():
    return np.random.default_rng(SEED)


@pytest.fixture
def scenario():
    return make_scenario(num_years=30, rng=np.random.default_rng(SEED))


def fake_sample(kind, n=2000, prod=2.5, cap=1200.0, sd=0.2, spread=0.1, seed=0, years=None):
    """Lognormal draws around known values, shaped like an engine result."""
    r = np.random.default_rng(seed)
    draws = {
        'productivity': r.lognormal(np.log(prod), spread, n),
        'capacity': r.lognormal(np.log(cap), spread, n),
    }
    prec = 'tau' if kind is ModelKind.STATE_SPACE else 'precision'
    draws[prec] = 1.0 / r.lognormal(np.log(sd), spread, n) ** 2
    if years is not None:
        draws['state'] = r.lognormal(np.log(1000.0), 0.1, (n, years))
    return PosteriorSample(model=kind, draws=draws, diagnostics={'converged': True})


class FakeEngine:
    """Stands in for the sampler: records calls, optionally fails on some of them."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def fit(self, spec, data, seed=None):
        self.calls.append((spec.kind, data, seed))
        if len(self.calls) in self.fail_on:
            raise FitNonConvergence("sampler exploded")
        # state-space intervals are made narrower than the simple ones
        spread = 0.05 if spec.kind is ModelKind.STATE_SPACE else 0.15
        return fake_sample(spec.kind, spread=spread, seed=len(self.calls))


@pytest.fixture
def fake_engine():
    return FakeEngine()
