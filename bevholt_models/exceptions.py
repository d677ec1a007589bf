# Exceptions shared across the simulator, model specifications and summaries.


class BevholtModelError(Exception):
    '''Base class for errors raised by bevholt_models.'''
    pass


class ConfigurationError(BevholtModelError, ValueError):
    '''
    Raised when a scenario is ill-formed: schedule lengths that do not match
    num_years, rates outside [0, 1) (a hatchery proportion of 1 would divide
    by zero), or non-positive biological parameters. Always raised before
    any simulation or sampling.
    '''
    pass


class SimulationDegeneracy(BevholtModelError, RuntimeError):
    '''
    Raised when a simulated state becomes non-positive or non-finite.
    Fatal for that run; a retry needs a new generator from the caller.
    '''
    def __init__(self, year, value):
        self.year = year
        self.value = value
        super().__init__(f"state in year {year} is degenerate ({value!r})")


class FitNonConvergence(BevholtModelError, RuntimeError):
    '''Raised when the inference engine fails to produce usable draws.'''
    pass


class DerivedQuantityDomainError(BevholtModelError, ValueError):
    '''Raised when productivity <= 0 reaches the MSY harvest-rate transform.'''
    pass
