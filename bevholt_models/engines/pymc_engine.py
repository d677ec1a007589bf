'''
PyMC binding for the declarative model specifications.

Lognormal nodes keep the (log-mean, precision) convention of the specs, so
pm.LogNormal is always given `tau`, never `sigma`. The latent state chain is
sampled on the log scale: a lognormal state has a normal log, so the initial
and transition densities are added as normal potentials on log(state) and
`state` is exposed as a deterministic.
'''
import logging
from dataclasses import dataclass

import arviz as az
import numpy as np
import pymc as pm
import pytensor.tensor as pt
from pymc.exceptions import SamplingError

from ..exceptions import FitNonConvergence
from ..model_spec import MeanFunction
from ..posterior import PosteriorSample

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    chains: int = 3
    tune: int = 5000
    draws: int = 10000
    target_accept: float = 0.9
    cores: int = 1
    rhat_threshold: float = 1.05
    progressbar: bool = False


def _bevholt(S, prod, cap):
    return S / (1.0 / prod + S / cap)


class PymcEngine:
    '''Compile a ModelSpec into a pm.Model and sample it with NUTS.'''

    def __init__(self, config=None):
        self.config = config or EngineConfig()

    # ------------------------------
    # Compilation
    # ------------------------------

    def _prior(self, prior):
        if prior.family == "lognormal":
            # start at the prior median; the default start (the mean) overflows
            # for vague precisions such as 0.001
            return pm.LogNormal(prior.name, mu=prior.a, tau=prior.b, initval=np.exp(prior.a))
        if prior.family == "gamma":
            return pm.Gamma(prior.name, alpha=prior.a, beta=prior.b)
        raise ValueError(f"unsupported prior family {prior.family!r}")

    def _log_mean(self, mean, stock, params, data):
        prod, cap = params['productivity'], params['capacity']
        if mean is MeanFunction.IDENTITY:
            return pt.log(stock)
        rec = _bevholt(stock, prod, cap)
        if mean is MeanFunction.BEVHOLT:
            return pt.log(rec)
        if mean is MeanFunction.BEVHOLT_ADJUSTED:
            h = pt.as_tensor_variable(np.asarray(data['harvest_rate'], dtype=float))
            q = pt.as_tensor_variable(np.asarray(data['hatchery_proportion'], dtype=float))
            return pt.log(rec * (1 - h) / (1 - q))
        raise ValueError(f"unsupported mean function {mean!r}")

    def _resolve_precision(self, precision, params):
        if isinstance(precision, str):
            return params[precision]
        return float(precision)

    def _latent(self, chain, params, data):
        if chain.family != "lognormal" or chain.initial.family != "lognormal":
            raise ValueError("only lognormal latent chains are supported")
        n = int(data['N'])
        init = None
        if 'observed' in data:
            init = np.log(np.asarray(data['observed'], dtype=float))
        log_x = pm.Flat(f"log_{chain.name}", shape=n, initval=init)
        x = pm.Deterministic(chain.name, pt.exp(log_x))
        pm.Potential(
            f"{chain.name}_initial",
            pm.logp(pm.Normal.dist(mu=chain.initial.a, tau=chain.initial.b), log_x[0]),
        )
        tau = self._resolve_precision(chain.precision, params)
        mu = self._log_mean(chain.mean, x[:-1], params, data)
        pm.Potential(
            f"{chain.name}_transition",
            pm.logp(pm.Normal.dist(mu=mu, tau=tau), log_x[1:]).sum(),
        )
        return x

    def compile(self, spec, data):
        missing = set(spec.data) - set(data)
        if missing:
            raise ValueError(f"{spec.kind.value} model is missing data {sorted(missing)}")
        with pm.Model() as model:
            params = {p.name: self._prior(p) for p in spec.priors}
            nodes = dict(params)
            for chain in spec.latent:
                nodes[chain.name] = self._latent(chain, params, data)
            for lik in spec.likelihood:
                if lik.family != "lognormal":
                    raise ValueError(f"unsupported likelihood family {lik.family!r}")
                if lik.stock in nodes:
                    stock = nodes[lik.stock]
                else:
                    stock = pt.as_tensor_variable(np.asarray(data[lik.stock], dtype=float))
                pm.LogNormal(
                    lik.target,
                    mu=self._log_mean(lik.mean, stock, params, data),
                    tau=self._resolve_precision(lik.precision, nodes),
                    observed=np.asarray(data[lik.target], dtype=float),
                )
        return model

    # ------------------------------
    # Sampling
    # ------------------------------

    def fit(self, spec, data, seed=None):
        cfg = self.config
        model = self.compile(spec, data)
        var_names = list(spec.parameter_names) + list(spec.latent_names)
        _LOG.info("Fitting %s model: %d chains, %d tune, %d draws",
                  spec.kind.value, cfg.chains, cfg.tune, cfg.draws)
        try:
            with model:
                idata = pm.sample(
                    draws=cfg.draws,
                    tune=cfg.tune,
                    chains=cfg.chains,
                    cores=cfg.cores,
                    target_accept=cfg.target_accept,
                    random_seed=seed,
                    progressbar=cfg.progressbar,
                    return_inferencedata=True,
                )
        except (SamplingError, FloatingPointError, RuntimeError) as exc:
            raise FitNonConvergence(f"{spec.kind.value} model failed to sample: {exc}") from exc

        posterior = idata.posterior
        draws = {}
        for name in var_names:
            values = posterior[name].values
            draws[name] = values.reshape((-1,) + values.shape[2:])

        diagnostics = self._diagnostics(idata, spec.parameter_names)
        if not diagnostics['converged']:
            _LOG.warning("%s model did not converge (max R-hat %.3f, %d divergences)",
                         spec.kind.value, diagnostics['max_rhat'], diagnostics['divergences'])
        return PosteriorSample(model=spec.kind, draws=draws, diagnostics=diagnostics)

    def _diagnostics(self, idata, names):
        cfg = self.config
        if cfg.chains > 1:
            rhat = az.rhat(idata, var_names=list(names))
            max_rhat = float(max(float(rhat[n].max()) for n in names))
        else:
            max_rhat = float('nan')
        divergences = int(idata.sample_stats['diverging'].values.sum())
        converged = (np.isnan(max_rhat) or max_rhat <= cfg.rhat_threshold)
        return {
            'max_rhat': max_rhat,
            'divergences': divergences,
            'converged': bool(converged),
        }
