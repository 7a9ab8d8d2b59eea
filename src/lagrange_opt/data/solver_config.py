from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml

from ..optim.config import CONFIG_KEYS, SolverConfig, validate_solver_config

DEFAULT_CONFIG_FILE = "solver_default.yaml"


def _default_config_path() -> Path:
    return Path(__file__).parent / DEFAULT_CONFIG_FILE


def load_solver_config(filepath: Union[str, Path] | None = None) -> SolverConfig:
    """Load solver iteration controls from a YAML file.

    Args:
        filepath: Path to a custom YAML file. If None, loads the packaged
            solver_default.yaml. Keys left out of a custom file keep their
            default values.

    Returns:
        The validated SolverConfig.

    Raises:
        FileNotFoundError: If the specified filepath does not exist.
        ValueError: If the YAML is not a mapping, has unknown keys or invalid values.

    Example:
        >>> config = load_solver_config()
        >>> config.max_iterations
        1000
    """
    filepath = _default_config_path() if filepath is None else Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"Solver config file not found: {filepath}")

    with open(filepath) as f:
        raw = yaml.safe_load(f)

    config = solver_config_from_dict(raw if raw is not None else {})
    return config


def solver_config_from_dict(raw: Any) -> SolverConfig:
    """Build a SolverConfig from a parsed YAML mapping.

    Args:
        raw: Mapping with any subset of max_iterations, convergence_threshold
            and step_size.

    Raises:
        ValueError: If ``raw`` is not a mapping, has unknown keys or invalid values.

    Example:
        >>> solver_config_from_dict({"step_size": 0.05}).step_size
        0.05
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Solver config must be a mapping, got {type(raw).__name__}")

    unknown_keys = [key for key in raw if key not in CONFIG_KEYS]
    if unknown_keys:
        raise ValueError(
            f"Solver config has unknown keys: {unknown_keys}. Allowed keys: {list(CONFIG_KEYS)}"
        )

    values = {}
    for key, value in raw.items():
        if value is None:
            continue
        try:
            # YAML 1.1 reads exponents without a dot (1e-6) as strings
            values[key] = value if key == "max_iterations" else float(value)
        except (TypeError, ValueError):
            raise ValueError(f"Solver config value for {key} must be a number, got {value!r}")

    config = SolverConfig().replace(**values)
    validate_solver_config(config)
    return config


def dump_default_solver_config(output_path: Union[str, Path]) -> Path:
    """Write the default solver configuration to a YAML file.

    This creates a template file that users can customize and pass back with
    ``lagrange-opt --config``.

    Args:
        output_path: Path where the default YAML will be saved.

    Returns:
        The path that was written.

    Raises:
        FileNotFoundError: If the default config file is missing in the package.

    Example:
        >>> dump_default_solver_config("my_solver.yaml")
    """
    output_path = Path(output_path)
    default_path = _default_config_path()

    if not default_path.exists():
        raise FileNotFoundError(
            f"Default solver config not found at {default_path}. "
            "This should not happen - please check the package installation."
        )

    output_path.write_text(default_path.read_text())
    return output_path
