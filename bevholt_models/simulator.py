import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .exceptions import SimulationDegeneracy
from .scenario import ScenarioConfig

_LOG = logging.getLogger(__name__)


def bevholt(S, prod, cap):
    '''
    Beverton-Holt recruitment R = S / (1/prod + S/cap).
    prod is the slope at the origin, cap the asymptote as S grows.
    '''
    return S / (1.0 / prod + S / cap)


def _lognormal(rng, mean, sd):
    # sd == 0 returns the mean itself, avoiding an exp(log(x)) round trip
    if sd == 0:
        return mean
    return rng.lognormal(np.log(mean), sd)


@dataclass(frozen=True, eq=False)
class SimulationResult:
    scenario: ScenarioConfig
    state: np.ndarray
    observed: np.ndarray

    def to_frame(self, first_year=1):
        years = np.arange(first_year, first_year + len(self.state))
        return pd.DataFrame({
            'state': self.state,
            'observed': self.observed,
            'harvest_rate': self.scenario.harvest_rate,
            'hatchery_proportion': self.scenario.hatchery_proportion,
        }, index=pd.Index(years, name='year'))


class StockRecruitSimulator:
    '''
    Single-stock spawner dynamics with harvest and hatchery-origin
    adjustment. The true state follows a lognormal Beverton-Holt recursion;
    observations are lognormal draws around the true state.
    '''
    def __init__(self, scenario):
        self.scenario = scenario
        self.prod = scenario.true_productivity
        self.cap = scenario.true_capacity
        self.h = scenario.harvest_rate
        self.q = scenario.hatchery_proportion

    def expected_next(self, S, year):
        '''Mean of next year's natural spawners given S spawners in `year`.'''
        return bevholt(S, self.prod, self.cap) * (1 - self.h[year]) / (1 - self.q[year])

    def step(self, S, year, rng):
        '''Advance one year.'''
        S_next = _lognormal(rng, self.expected_next(S, year), self.scenario.process_error_sd)
        if not np.isfinite(S_next) or S_next <= 0:
            raise SimulationDegeneracy(year + 1, S_next)
        return float(S_next)

    def observe(self, states, rng):
        sd = self.scenario.observation_error_sd
        if sd == 0:
            return np.array(states, dtype=float)
        return rng.lognormal(np.log(states), sd)

    def simulate(self, rng=None):
        rng = np.random.default_rng(rng)
        n = self.scenario.num_years
        S = np.zeros(n)
        S[0] = self.scenario.initial_state
        for y in range(n - 1):
            S[y + 1] = self.step(S[y], y, rng)
        S_obs = self.observe(S, rng)
        S.setflags(write=False)
        S_obs.setflags(write=False)
        _LOG.debug("Simulated %d years (process sd %.3f, observation sd %.3f)",
                   n, self.scenario.process_error_sd, self.scenario.observation_error_sd)
        return SimulationResult(scenario=self.scenario, state=S, observed=S_obs)


def simulate(scenario, rng=None):
    return StockRecruitSimulator(scenario).simulate(rng)
