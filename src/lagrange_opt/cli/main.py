import sys
from typing import Optional, Sequence

from ..data import dump_default_solver_config, load_solver_config
from ..logging_utils import error, hint, info, success, warning
from ..optim import InvalidInputError, SolverResult, SolverStatus, solve
from .parser import POSITIONAL_NAMES, build_parser, print_usage_error


def format_result(result: SolverResult, details: bool = False) -> str:
    """Render a scalar result as the JSON object printed on stdout.

    ``rate``, ``power`` and ``bandwidth`` use 4 decimals and ``latency`` 6.

    Example:
        >>> print(format_result(solve(5.0, 2.5, 20.0, 1.2, 0.8, 0.5)))
        {
          "rate": 6.0007,
          "power": 2.0040,
          "bandwidth": 16.0000,
          "latency": ...
        }
    """
    fields = [
        f'"rate": {float(result.rate):.4f}',
        f'"power": {float(result.power):.4f}',
        f'"bandwidth": {float(result.bandwidth):.4f}',
        f'"latency": {float(result.latency):.6f}',
    ]
    if details:
        fields += [
            f'"status": "{result.status.name.lower()}"',
            f'"iterations": {int(result.iterations)}',
            f'"baseline_latency": {float(result.baseline_latency):.6f}',
            f'"improvement_percent": {float(result.improvement_percent):.2f}',
        ]
    body = ",\n".join(f"  {field}" for field in fields)
    return "{\n" + body + "\n}"


def run_optimize(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the lagrange-opt CLI driver.

    Returns the process exit status: 0 on success or after ``--help``, 1 on a
    usage error, rejected parameters or an invalid solver configuration.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code or 0)

    if args.dump_default_config is not None:
        path = dump_default_solver_config(args.dump_default_config)
        success(f"Default solver configuration saved to: {path}")
        hint(f"Edit it and pass it back with: {parser.prog} --config {path} ...")
        return 0

    if len(args.params) != len(POSITIONAL_NAMES):
        print_usage_error(parser)
        return 1

    try:
        config = load_solver_config(args.config).replace(
            max_iterations=args.max_iterations,
            convergence_threshold=args.convergence_threshold,
            step_size=args.step_size,
        )
        if args.verbose:
            info(
                f"Solving with max_iterations={config.max_iterations}, "
                f"convergence_threshold={config.convergence_threshold}, "
                f"step_size={config.step_size}"
            )
        result = solve(*args.params, config=config)
    except InvalidInputError as exc:
        error("Invalid input constraints")
        hint(str(exc))
        return 1
    except (ValueError, FileNotFoundError) as exc:
        error(str(exc))
        return 1

    if args.verbose:
        if result.status is SolverStatus.CONVERGED:
            info(f"Converged after {int(result.iterations)} iterations")
        else:
            warning(
                f"Stopped at the iteration cap ({int(result.iterations)} iterations) "
                "without meeting the convergence threshold"
            )
        info(f"Latency improvement over baseline: {float(result.improvement_percent):.2f}%")

    print(format_result(result, details=args.details))
    return 0


def main() -> None:
    """CLI entry point registered as the ``lagrange-opt`` console script."""
    sys.exit(run_optimize())


if __name__ == "__main__":
    main()
