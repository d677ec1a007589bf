import numpy as np
from scipy.optimize import minimize_scalar

from .exceptions import DerivedQuantityDomainError


def msy_harvest_rate(productivity):
    '''
    Harvest rate at maximum sustainable yield for Beverton-Holt dynamics,
    U = 1 - 1/sqrt(productivity). Works per draw on arrays.
    '''
    p = np.asarray(productivity, dtype=float)
    bad = ~np.isfinite(p) | (p <= 0)
    if np.any(bad):
        raise DerivedQuantityDomainError(
            f"productivity must be finite and positive; {int(bad.sum())} invalid value(s), "
            f"e.g. {p[bad].flat[0]!r}")
    return 1.0 - 1.0 / np.sqrt(p)


def equilibrium_spawners(U, prod, cap):
    '''
    Equilibrium of S = bevholt(S) * (1 - U): S* = cap * (1 - U - 1/prod).
    Zero when the stock cannot replace itself at harvest rate U.
    '''
    return np.maximum(cap * (1.0 - U - 1.0 / prod), 0.0)


def equilibrium_yield(U, prod, cap):
    '''Long-term catch U * R* at a constant harvest rate U.'''
    U = np.asarray(U, dtype=float)
    S = equilibrium_spawners(U, prod, cap)
    return U * S / (1.0 - U)


def msy_reference_points(prod, cap):
    U = msy_harvest_rate(prod)
    return {
        'U_msy': U,
        'S_msy': equilibrium_spawners(U, prod, cap),
        'yield_msy': equilibrium_yield(U, prod, cap),
    }


def solve_msy_harvest_rate(prod, cap):
    '''Numerically maximize equilibrium yield over U in [0, 1).'''
    if prod <= 1:
        return 0.0
    res = minimize_scalar(lambda U: -equilibrium_yield(U, prod, cap),
                          bounds=(0.0, 1.0 - 1.0 / prod), method='bounded',
                          options={'xatol': 1e-10})
    return float(res.x)
