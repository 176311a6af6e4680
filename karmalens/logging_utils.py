"""Console logging helpers for karmalens pipelines.

Color-codes output so pure computation (normalizing, detecting, ranking) is
visually distinct from transport (fetching files) and from failures.
"""

import os
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Pure computation (normalize, detect, rank)
    YELLOW = "\033[93m"    # Transport (local files, HTTP)
    RED = "\033[91m"       # Failures, skipped datasets
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata

    BOLD = "\033[1m"
    RESET = "\033[0m"


# Tags for operation types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"
LOG_TAG_FETCH = "[IO]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if KARMALENS_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("KARMALENS_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def is_verbose() -> bool:
    """Return True when KARMALENS_VERBOSE requests per-item detail lines."""
    return os.getenv("KARMALENS_VERBOSE", "").lower() in ("1", "true", "yes")


def log_deterministic(message: str) -> None:
    """Log a pure computation step (blue)."""
    print(colored(f"{LOG_TAG_DETERMINISTIC} {message}", Color.BLUE))


def log_fetch(message: str) -> None:
    """Log a transport step (yellow)."""
    print(colored(f"{LOG_TAG_FETCH} {message}", Color.YELLOW))


def log_error(message: str) -> None:
    """Log a failure or skipped input (red)."""
    print(colored(f"{LOG_TAG_ERROR} {message}", Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    print(colored(f"{LOG_TAG_SUCCESS} {message}", Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    print(colored(f"{LOG_TAG_INFO} {message}", Color.CYAN))


def log_detail(message: str) -> None:
    """Log an info line only when verbose output is enabled."""
    if is_verbose():
        log_info(message)
