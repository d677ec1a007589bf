'''
Command line front-end.

    python -m bevholt_models simulate --years 30 --seed 123 --out sim.csv
    python -m bevholt_models fit --model state-space --years 100 --seed 123
    python -m bevholt_models compare --years 30 --out panel.csv
'''
import argparse
import logging
import sys
from pathlib import Path

import numpy as np
import pandas as pd

from .exceptions import BevholtModelError
from .model_spec import get_model
from .posterior import summarize
from .scenario import load_schedule, make_scenario
from .simulator import simulate


def _scenario(args, rng):
    params = {'process_error_sd': args.process_error, 'observation_error_sd': args.observation_error}
    if args.schedule:
        return load_schedule(args.schedule, **params)
    return make_scenario(num_years=args.years, rng=rng, **params)


def _engine(args):
    from .engines import EngineConfig, PymcEngine
    return PymcEngine(EngineConfig(chains=args.chains, tune=args.tune, draws=args.draws))


def _write(df, out):
    if out:
        Path(out).parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(out)
        print(f"[bevholt] wrote {len(df):,} rows -> {out}")
    else:
        print(df.to_string())


def cmd_simulate(args):
    rng = np.random.default_rng(args.seed)
    result = simulate(_scenario(args, rng), rng)
    _write(result.to_frame(), args.out)


def cmd_fit(args):
    rng = np.random.default_rng(args.seed)
    result = simulate(_scenario(args, rng), rng)
    spec = get_model(args.model)
    sc = result.scenario
    data = spec.bind(result.observed, sc.harvest_rate, sc.hatchery_proportion)
    sample = _engine(args).fit(spec, data, seed=args.seed)
    table = summarize(sample)
    print(f"[bevholt] {spec.kind.value} model, diagnostics: {sample.diagnostics}")
    _write(table, args.out)


def cmd_compare(args):
    from .comparison import compare_interval_widths, run_error_panel
    # process error comes from the panel levels, not --process-error
    base = None
    if args.schedule:
        base = load_schedule(args.schedule, observation_error_sd=args.observation_error)
    panel = run_error_panel(_engine(args), seed=args.seed, num_years=args.years, base=base)
    print(compare_interval_widths(panel).to_string())
    _write(panel, args.out)


def main(argv=None):
    p = argparse.ArgumentParser(prog="bevholt_models",
                                description="Beverton-Holt stock-recruitment simulation and fitting")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    def common(sp, default_years):
        sp.add_argument("--years", type=int, default=default_years, help="number of simulated years")
        sp.add_argument("--seed", type=int, default=123, help="random seed")
        sp.add_argument("--process-error", type=float, default=None, help="process error sd (log scale)")
        sp.add_argument("--observation-error", type=float, default=None,
                        help="observation error sd (log scale)")
        sp.add_argument("--schedule", default=None,
                        help="';'-separated CSV with harvest_rate and hatchery_proportion per year")
        sp.add_argument("--out", default=None, help="destination CSV (prints to stdout if omitted)")

    def sampler(sp):
        sp.add_argument("--chains", type=int, default=3)
        sp.add_argument("--tune", type=int, default=5000)
        sp.add_argument("--draws", type=int, default=10000)

    sp = sub.add_parser("simulate", help="simulate true and observed spawner series")
    common(sp, 100)
    sp.set_defaults(func=cmd_simulate)

    sp = sub.add_parser("fit", help="fit one model to a simulated series")
    common(sp, 100)
    sampler(sp)
    sp.add_argument("--model", choices=["simple", "state-space"], default="state-space")
    sp.set_defaults(func=cmd_fit)

    sp = sub.add_parser("compare", help="fit both models across process error levels")
    common(sp, 30)
    sampler(sp)
    sp.set_defaults(func=cmd_compare)

    args = p.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")
    pd.set_option("display.width", 120)
    args.func(args)


if __name__ == "__main__":
    try:
        main()
    except BevholtModelError as err:
        print(f"ERROR: {err}", file=sys.stderr)
        sys.exit(1)
