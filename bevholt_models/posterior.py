import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from .derived import msy_harvest_rate

_LOG = logging.getLogger(__name__)

# names under which a noise precision (1/sd^2) may appear in a sample
PRECISION_PARAMETERS = ("precision", "tau")
QUANTILES = (0.025, 0.5, 0.975)


@dataclass(frozen=True, eq=False)
class PosteriorSample:
    '''
    Posterior draws keyed by parameter name, chains already flattened.
    `state`, when present, has shape (draws, years).
    '''
    model: object
    draws: dict
    diagnostics: dict = field(default_factory=dict)

    def __getitem__(self, name):
        return self.draws[name]

    def __contains__(self, name):
        return name in self.draws

    @property
    def n_draws(self):
        return len(self.draws['productivity'])

    @property
    def converged(self):
        return self.diagnostics.get('converged', True)

    def precision_name(self):
        for name in PRECISION_PARAMETERS:
            if name in self.draws:
                return name
        return None


def noise_sd(precision):
    return np.sqrt(1.0 / np.asarray(precision, dtype=float))


def credible_interval(values, level=0.95):
    tail = (1.0 - level) / 2.0
    lo, hi = np.quantile(values, [tail, 1.0 - tail])
    return float(lo), float(hi)


def interval_width(sample, name, level=0.95):
    lo, hi = credible_interval(sample[name], level)
    return hi - lo


def _row(values):
    values = np.asarray(values, dtype=float)
    q = np.quantile(values, QUANTILES)
    return {
        'median': float(np.median(values)),
        'sd': float(np.std(values, ddof=1)) if values.size > 1 else 0.0,
        'q2.5': float(q[0]),
        'q50': float(q[1]),
        'q97.5': float(q[2]),
    }


def derived_draws(sample):
    '''Per-draw quantities used by the standard summary.'''
    out = {
        'productivity': np.asarray(sample['productivity'], dtype=float),
        'capacity': np.asarray(sample['capacity'], dtype=float),
    }
    prec = sample.precision_name()
    if prec is not None:
        out['sigma'] = noise_sd(sample[prec])
    out['msy_harvest_rate'] = msy_harvest_rate(out['productivity'])
    return out


def state_summary(sample, first_year=1):
    if 'state' not in sample:
        raise ValueError(f"{getattr(sample.model, 'value', sample.model)} sample has no state draws")
    state = np.asarray(sample['state'], dtype=float)
    q = np.quantile(state, QUANTILES, axis=0)
    years = np.arange(first_year, first_year + state.shape[1])
    return pd.DataFrame({
        'median': np.median(state, axis=0),
        'q2.5': q[0],
        'q50': q[1],
        'q97.5': q[2],
    }, index=pd.Index(years, name='year'))


def summarize(sample, include_state=False):
    '''
    Medians, standard deviations and 95% credible intervals for
    productivity, capacity, the noise sd and the MSY harvest rate.
    The latent state draws are only summarized when asked for.
    '''
    if not sample.converged:
        _LOG.warning("Summarizing a non-converged %s fit; treat estimates as unreliable",
                     getattr(sample.model, 'value', sample.model))
    table = pd.DataFrame({name: _row(v) for name, v in derived_draws(sample).items()}).T
    table.index.name = 'parameter'
    if include_state:
        return table, state_summary(sample)
    return table
