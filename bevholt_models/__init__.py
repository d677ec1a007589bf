'''
Beverton-Holt stock-recruitment simulation and Bayesian model fitting.

The PyMC engine binding lives in bevholt_models.engines and is imported on
demand, so the simulator and summaries work without it.
'''
from .exceptions import (
    BevholtModelError,
    ConfigurationError,
    DerivedQuantityDomainError,
    FitNonConvergence,
    SimulationDegeneracy,
)
from .scenario import ScenarioConfig, leveled_schedule, load_schedule, make_scenario
from .simulator import SimulationResult, StockRecruitSimulator, bevholt, simulate
from .model_spec import SIMPLE_MODEL, STATE_SPACE_MODEL, ModelKind, ModelSpec, get_model
from .posterior import PosteriorSample, credible_interval, summarize
from .derived import msy_harvest_rate, msy_reference_points

__version__ = "0.1.0"
