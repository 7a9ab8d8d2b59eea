import argparse
import sys
from typing import List, NoReturn, Optional, Sequence

PROG = "lagrange-opt"
POSITIONAL_NAMES = ("R_min", "P_max", "B_max", "a", "b", "c")
USAGE = f"{PROG} [options] " + " ".join(f"<{name}>" for name in POSITIONAL_NAMES)
EXAMPLE = f"Example: {PROG} 5.0 2.5 20.0 1.2 0.8 0.5"


class SolverArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print(EXAMPLE, file=sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")

    def parse_args(self, args: Optional[Sequence[str]] = None, namespace=None):
        args = sys.argv[1:] if args is None else list(args)
        return super().parse_args(self._numbers_last(args), namespace)

    def _numbers_last(self, args: List[str]) -> List[str]:
        """Move bare numbers behind ``--`` so that ``-1e-3`` is read as a value.

        Numbers may then sit anywhere between the options. A number given as the
        value of an option is attached with ``=``.
        """
        options: List[str] = []
        numbers: List[str] = []
        tokens = iter(args)
        for token in tokens:
            if token == "--":
                numbers.extend(tokens)
                break
            if _is_number(token):
                numbers.append(token)
                continue
            action = self._option_string_actions.get(token)
            if action is None or action.nargs == 0:
                options.append(token)
                continue
            value = next(tokens, None)
            if value is None:
                options.append(token)
            elif _is_number(value):
                options.append(f"{token}={value}")
            else:
                options += [token, value]
        return options + ["--"] + numbers


def _is_number(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


def print_usage_error(parser: argparse.ArgumentParser) -> None:
    """Print the usage line and an example invocation on stderr."""
    parser.print_usage(sys.stderr)
    print(EXAMPLE, file=sys.stderr)


def build_parser() -> SolverArgumentParser:
    """Build the parser of the ``lagrange-opt`` command.

    The six problem parameters are collected as one variadic positional so that
    ``--dump-default-config`` can run without them; the count is checked by the
    caller.
    """
    parser = SolverArgumentParser(
        prog=PROG,
        usage=USAGE,
        description="Minimise the latency a/rate + b/power + c/bandwidth subject to "
        "rate >= R_min, power <= P_max and bandwidth <= B_max with a Lagrange multiplier "
        "(primal-dual) iteration. Prints the optimised allocation as JSON on stdout.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=r"""
EXAMPLES:
  1. Solve with the default iteration controls:
     lagrange-opt 5.0 2.5 20.0 1.2 0.8 0.5

  2. Tighter convergence and a termination report:
     lagrange-opt 5.0 2.5 20.0 1.2 0.8 0.5 --convergence-threshold 1e-6 --details

  3. Start from a custom YAML configuration:
     lagrange-opt --dump-default-config my_solver.yaml
     lagrange-opt 5.0 2.5 20.0 1.2 0.8 0.5 --config my_solver.yaml
""",
    )

    parser.add_argument(
        "params",
        type=float,
        nargs="*",
        metavar="PARAM",
        help="The six problem parameters, in order: " + " ".join(POSITIONAL_NAMES),
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="YAML file with solver iteration controls (default: packaged solver_default.yaml)",
    )
    parser.add_argument(
        "-mi",
        "--max-iterations",
        type=int,
        default=None,
        help="Override the iteration cap",
    )
    parser.add_argument(
        "-t",
        "--convergence-threshold",
        type=float,
        default=None,
        help="Override the convergence threshold on the latency change",
    )
    parser.add_argument(
        "-s",
        "--step-size",
        type=float,
        default=None,
        help="Override the fixed step size",
    )
    parser.add_argument(
        "--details",
        action="store_true",
        help="Add status, iterations, baseline_latency and improvement_percent to the JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print diagnostic messages on stderr",
    )
    parser.add_argument(
        "--dump-default-config",
        type=str,
        default=None,
        metavar="PATH",
        help="Write the default solver configuration to PATH and exit",
    )
    return parser
