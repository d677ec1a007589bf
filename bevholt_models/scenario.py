import logging
import math
from dataclasses import dataclass, replace

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError

_LOG = logging.getLogger(__name__)

# ------------------------------
# Reference defaults
# ------------------------------

DEFAULT_NUM_YEARS = 100
DEFAULT_PROCESS_ERROR_SD = 0.1
DEFAULT_OBSERVATION_ERROR_SD = 0.15
DEFAULT_INITIAL_STATE = 1000.0
DEFAULT_PRODUCTIVITY = 2.5
DEFAULT_CAPACITY = 1200.0

# 0, 0.07, ..., 0.63 and 0, 0.1, ..., 0.9
HARVEST_LEVELS = np.round(np.arange(10) * 0.07, 2)
HATCHERY_LEVELS = np.round(np.arange(10) * 0.1, 1)


def _frozen(values):
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class ScenarioConfig:
    '''
    Inputs of one simulation run. Schedules are per-year fractions and are
    stored as read-only arrays. Error magnitudes are log-space standard
    deviations (not variances, not precisions).
    '''
    num_years: int
    harvest_rate: np.ndarray
    hatchery_proportion: np.ndarray
    process_error_sd: float = DEFAULT_PROCESS_ERROR_SD
    observation_error_sd: float = DEFAULT_OBSERVATION_ERROR_SD
    initial_state: float = DEFAULT_INITIAL_STATE
    true_productivity: float = DEFAULT_PRODUCTIVITY
    true_capacity: float = DEFAULT_CAPACITY

    def __post_init__(self):
        object.__setattr__(self, 'harvest_rate', _frozen(self.harvest_rate))
        object.__setattr__(self, 'hatchery_proportion', _frozen(self.hatchery_proportion))
        self.validate()

    def validate(self):
        n = self.num_years
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
            raise ConfigurationError(f"num_years must be a positive integer, got {n!r}")
        for name in ('harvest_rate', 'hatchery_proportion'):
            sched = getattr(self, name)
            if sched.ndim != 1 or len(sched) != n:
                raise ConfigurationError(
                    f"{name} has length {sched.size}, expected num_years={n}")
            if not np.all(np.isfinite(sched)) or np.any(sched < 0) or np.any(sched >= 1):
                bad = sched[~((sched >= 0) & (sched < 1))]
                raise ConfigurationError(f"{name} values must lie in [0, 1), got {bad.tolist()}")
        for name in ('process_error_sd', 'observation_error_sd'):
            sd = getattr(self, name)
            if not math.isfinite(sd) or sd < 0:
                raise ConfigurationError(f"{name} must be a finite non-negative number, got {sd!r}")
        for name in ('initial_state', 'true_productivity', 'true_capacity'):
            val = getattr(self, name)
            if not math.isfinite(val) or val <= 0:
                raise ConfigurationError(f"{name} must be positive, got {val!r}")

    def with_process_error(self, sd):
        return replace(self, process_error_sd=sd)


def leveled_schedule(levels, repeats_per_level, rng=None):
    '''
    Hold each level for `repeats_per_level` years, then permute the whole
    sequence. The multiset of levels is preserved exactly; only the
    assignment of levels to years is random.
    '''
    rng = np.random.default_rng(rng)
    seq = np.repeat(np.asarray(levels, dtype=float), repeats_per_level)
    return rng.permutation(seq)


def default_schedules(num_years, rng=None):
    '''Canonical harvest and hatchery-origin schedules of length num_years.'''
    rng = np.random.default_rng(rng)
    harvest = leveled_schedule(HARVEST_LEVELS, math.ceil(num_years / len(HARVEST_LEVELS)), rng)
    hatchery = leveled_schedule(HATCHERY_LEVELS, math.ceil(num_years / len(HATCHERY_LEVELS)), rng)
    return harvest[:num_years], hatchery[:num_years]


def make_scenario(num_years=None, harvest_rate=None, hatchery_proportion=None,
                  process_error_sd=None, observation_error_sd=None, rng=None, **params):
    '''
    Build a ScenarioConfig, filling in the reference defaults.

    If any of num_years, harvest_rate or hatchery_proportion is missing, both
    schedules are regenerated together (num_years is kept when given,
    otherwise 100) and a supplied schedule is discarded. The two error
    magnitudes default independently of that.
    '''
    if num_years is None or harvest_rate is None or hatchery_proportion is None:
        if harvest_rate is not None or hatchery_proportion is not None:
            _LOG.warning("Incomplete schedule set; discarding supplied schedule and "
                         "regenerating the default harvest and hatchery schedules")
        if num_years is None:
            num_years = DEFAULT_NUM_YEARS
        harvest_rate, hatchery_proportion = default_schedules(num_years, rng)
        _LOG.info("Using default scenario schedules for %d years", num_years)
    if process_error_sd is None:
        process_error_sd = DEFAULT_PROCESS_ERROR_SD
    if observation_error_sd is None:
        observation_error_sd = DEFAULT_OBSERVATION_ERROR_SD
    return ScenarioConfig(
        num_years=int(num_years),
        harvest_rate=harvest_rate,
        hatchery_proportion=hatchery_proportion,
        process_error_sd=float(process_error_sd),
        observation_error_sd=float(observation_error_sd),
        **params,
    )


def load_schedule(path, **params):
    '''
    Read harvest and hatchery-origin schedules from a ';'-separated CSV with
    the year as first column, e.g.

        year;harvest_rate;hatchery_proportion
        1990;0.21;0.10
    '''
    df = pd.read_csv(path, sep=";", index_col=0)
    missing = {'harvest_rate', 'hatchery_proportion'} - set(df.columns)
    if missing:
        raise ConfigurationError(f"{path}: missing columns {sorted(missing)}")
    df = df.sort_index()
    return make_scenario(
        num_years=len(df),
        harvest_rate=df['harvest_rate'].astype(float).values,
        hatchery_proportion=df['hatchery_proportion'].astype(float).values,
        **params,
    )


def save_schedule(scenario, path, first_year=1):
    years = np.arange(first_year, first_year + scenario.num_years)
    df = pd.DataFrame({'harvest_rate': scenario.harvest_rate,
                       'hatchery_proportion': scenario.hatchery_proportion},
                      index=pd.Index(years, name='year'))
    df.to_csv(path, sep=";")
    return df
