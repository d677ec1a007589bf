"""
Tests for the declarative model specifications and their data binding.
"""

import json
import math

import numpy as np
import pytest

from bevholt_models.model_spec import (
    OBSERVATION_SD,
    SIMPLE_MODEL,
    STATE_SPACE_MODEL,
    MeanFunction,
    ModelKind,
    get_model,
)
from bevholt_models.simulator import simulate


def test_priors_match_between_variants():
    simple = {p.name: p for p in SIMPLE_MODEL.priors}
    ss = {p.name: p for p in STATE_SPACE_MODEL.priors}
    assert simple['productivity'] == ss['productivity']
    assert simple['capacity'] == ss['capacity']
    assert (simple['precision'].a, simple['precision'].b) == (ss['tau'].a, ss['tau'].b)


def test_reference_priors():
    prod, cap, prec = SIMPLE_MODEL.priors
    assert prod.family == "lognormal" and prod.a == pytest.approx(math.log(3)) and prod.b == 0.01
    assert cap.family == "lognormal" and cap.a == pytest.approx(math.log(15000)) and cap.b == 0.001
    assert prec.family == "gamma" and (prec.a, prec.b) == (0.001, 0.001)


def test_simple_model_has_no_latent_state():
    assert SIMPLE_MODEL.latent == ()
    assert SIMPLE_MODEL.likelihood[0].mean is MeanFunction.BEVHOLT
    assert SIMPLE_MODEL.likelihood[0].precision == "precision"


def test_state_space_structure():
    chain, = STATE_SPACE_MODEL.latent
    assert chain.name == "state"
    assert chain.mean is MeanFunction.BEVHOLT_ADJUSTED
    assert chain.precision == "tau"
    assert (chain.initial.a, chain.initial.b) == (0.0, 0.0001)
    obs, = STATE_SPACE_MODEL.likelihood
    assert obs.stock == "state"
    # fixed observation sd stored as a precision
    assert obs.precision == pytest.approx(1 / OBSERVATION_SD ** 2)


def test_specs_are_json_serializable():
    for spec in (SIMPLE_MODEL, STATE_SPACE_MODEL):
        doc = json.loads(spec.to_json())
        assert doc['kind'] == spec.kind.value
        assert [p['name'] for p in doc['priors']] == list(spec.parameter_names)


def test_get_model():
    assert get_model("simple") is SIMPLE_MODEL
    assert get_model(ModelKind.STATE_SPACE) is STATE_SPACE_MODEL
    with pytest.raises(ValueError):
        get_model("age-structured")


class TestBinding:

    def test_simple_binding(self):
        obs = np.array([100.0, 200.0, 300.0])
        h = np.array([0.5, 0.2, 0.0])
        q = np.array([0.1, 0.5, 0.0])
        data = SIMPLE_MODEL.bind(obs, h, q)
        assert data['N'] == 3
        np.testing.assert_array_equal(data['spawners'], [100.0, 200.0])
        np.testing.assert_allclose(data['recruits'], [200.0 * 0.9 / 0.5, 300.0 * 0.5 / 0.8])

    def test_state_space_binding(self, scenario, rng):
        res = simulate(scenario, rng)
        data = STATE_SPACE_MODEL.bind(res.observed, scenario.harvest_rate,
                                      scenario.hatchery_proportion)
        assert set(data) == set(STATE_SPACE_MODEL.data)
        assert len(data['observed']) == scenario.num_years
        assert len(data['harvest_rate']) == scenario.num_years - 1
        assert len(data['hatchery_proportion']) == scenario.num_years - 1

    def test_recruits_invert_the_process_adjustment(self, scenario):
        # with no process or observation noise, adjusted recruits equal bevholt(spawners)
        from dataclasses import replace
        sc = replace(scenario, process_error_sd=0.0, observation_error_sd=0.0)
        res = simulate(sc)
        data = SIMPLE_MODEL.bind(res.observed, sc.harvest_rate, sc.hatchery_proportion)
        S = data['spawners']
        np.testing.assert_allclose(data['recruits'], S / (1 / 2.5 + S / 1200), rtol=1e-10)

    def test_too_short(self):
        with pytest.raises(ValueError):
            SIMPLE_MODEL.bind([1.0], [0.0], [0.0])
