"""
Command-line entry point.

    pricelevels prices.csv levels.csv 3
    pricelevels prices.csv levels.csv 2 --max-components 6 --plot-dir plots/

Exit codes: 0 success, 1 unreadable price file, invalid configuration or
unwritable output, 2 numeric failure (argparse also uses 2 for usage errors).
"""

import argparse
import logging
import sys

from pricelevels.config import load_config, make_config
from pricelevels.errors import InvalidConfiguration, NumericInstability, PriceFileError
from pricelevels.io import format_posterior, read_prices, write_posterior
from pricelevels.selection import select_component_count
from pricelevels.vb_gmm import fit

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_NUMERIC = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pricelevels",
        description="Learn support/resistance price levels with a variational Bayesian Gaussian mixture",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("prices", help="Comma-separated price file")
    parser.add_argument("output", help="File to write means, variances and mixing weights to")
    parser.add_argument("components", type=int, help="Number of price levels (minimum when sweeping)")
    parser.add_argument("--max-components", type=int, default=None,
                        help="Try every count from COMPONENTS to this value and keep the best ELBO")
    parser.add_argument("--config", type=str, default=None, help="YAML file with engine settings")
    parser.add_argument("--max-iterations", type=int, default=None, help="Iteration cap (overrides config)")
    parser.add_argument("--tolerance", type=float, default=None,
                        help="Relative ELBO change treated as converged (overrides config)")
    parser.add_argument("--plot-dir", type=str, default=None, help="Save ELBO and level plots here")
    parser.add_argument("--verbose", action="store_true", help="Log progress at INFO level")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        overrides = dict(max_iterations=args.max_iterations, tolerance=args.tolerance)
        if args.config:
            config = load_config(args.config, **overrides)
        else:
            config = make_config(**overrides)

        prices = read_prices(args.prices)

        if args.max_components is not None:
            if args.max_components < args.components:
                raise InvalidConfiguration(
                    f"--max-components ({args.max_components}) is below components ({args.components})"
                )
            selection = select_component_count(
                prices, range(args.components, args.max_components + 1),
                config=config, progress=True,
            )
            for k, elbo in sorted(selection.evidence.items()):
                print(f"K={k}: ELBO={elbo:.6f}")
            posterior = selection.best
            print(f"Selected K={selection.best_count}")
        else:
            posterior = fit(prices, args.components, config=config)
    except (PriceFileError, InvalidConfiguration) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except NumericInstability as exc:
        print(f"numeric failure: {exc}", file=sys.stderr)
        return EXIT_NUMERIC

    print(format_posterior(posterior))
    try:
        write_posterior(args.output, posterior)
        print(f"✓ Saved price levels to {args.output}")

        if args.plot_dir:
            from pricelevels.plotting import plot_elbo_trace, plot_price_levels
            print(f"✓ Saved ELBO trace to {plot_elbo_trace(posterior.elbo_history, args.plot_dir)}")
            print(f"✓ Saved level plot to {plot_price_levels(prices, posterior, args.plot_dir)}")
    except OSError as exc:
        print(f"error: could not write results: {exc}", file=sys.stderr)
        return EXIT_BAD_INPUT

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
