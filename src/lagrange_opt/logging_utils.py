"""Logging utilities for the lagrange-opt command line.

Every message goes to stderr: stdout is reserved for the JSON result.
"""

import sys


class Colors:
    """ANSI color codes for terminal output."""

    BLUE: str = "\033[94m"
    GREEN: str = "\033[92m"
    YELLOW: str = "\033[93m"
    RED: str = "\033[91m"
    CYAN: str = "\033[96m"
    RESET: str = "\033[0m"

    @classmethod
    def is_tty(cls) -> bool:
        """Check if stderr is a TTY (supports colors)."""
        return sys.stderr.isatty()

    @classmethod
    def disable(cls) -> None:
        """Disable all colors."""
        cls.BLUE = ""
        cls.GREEN = ""
        cls.YELLOW = ""
        cls.RED = ""
        cls.CYAN = ""
        cls.RESET = ""


# Disable colors if not in a TTY
if not Colors.is_tty():
    Colors.disable()


def info(message: str) -> None:
    """Print an informational message.

    Args:
        message: Message to print.

    Example:
        >>> info("Solving 1 problem...")
        [INFO] Solving 1 problem...
    """
    print(f"{Colors.BLUE}[INFO]{Colors.RESET} {message}", file=sys.stderr)


def success(message: str) -> None:
    """Print a success message with checkmark.

    Args:
        message: Message to print.
    """
    print(f"{Colors.GREEN}✓{Colors.RESET} {message}", file=sys.stderr)


def warning(message: str) -> None:
    """Print a warning message.

    Args:
        message: Warning message to print.

    Example:
        >>> warning("Iteration cap reached.")
        [WARNING] Iteration cap reached.
    """
    print(f"{Colors.YELLOW}[WARNING]{Colors.RESET} {message}", file=sys.stderr)


def error(message: str) -> None:
    """Print an error message.

    Args:
        message: Error message to print.

    Example:
        >>> error("Invalid input constraints")
        ERROR: Invalid input constraints
    """
    print(f"{Colors.RED}ERROR:{Colors.RESET} {message}", file=sys.stderr)


def hint(message: str) -> None:
    """Print a hint message for user guidance."""
    print(f"{Colors.CYAN}[HINT]{Colors.RESET} {message}", file=sys.stderr)
