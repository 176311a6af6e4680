"""
Karmalens Configuration

Loads configuration from environment variables with sensible defaults.
Library entry points accept explicit arguments; Config only supplies the
defaults used by convenience helpers such as ``build_default_fetcher``.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent

    # Where exported simulation logs live. A base URL takes precedence over the
    # local directory when both are set.
    DATA_DIR: Path = Path(
        os.getenv("KARMALENS_DATA_DIR", str(PROJECT_ROOT / "examples" / "data"))
    )
    DATA_BASE_URL: str | None = os.getenv("KARMALENS_DATA_BASE_URL")

    # Pattern corpora usually sit beside the simulation logs
    PATTERN_DIR: Path = Path(os.getenv("KARMALENS_PATTERN_DIR", str(DATA_DIR)))

    # Transport
    FETCH_TIMEOUT_SECONDS: float = float(os.getenv("KARMALENS_FETCH_TIMEOUT_SECONDS", "10"))

    # Logging
    VERBOSE: bool = os.getenv("KARMALENS_VERBOSE", "").lower() in ("1", "true", "yes")
    NO_COLOR: bool = bool(os.getenv("KARMALENS_NO_COLOR"))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are unusable."""
        if cls.FETCH_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                "KARMALENS_FETCH_TIMEOUT_SECONDS must be positive "
                f"(got {cls.FETCH_TIMEOUT_SECONDS})"
            )

        if cls.DATA_BASE_URL is not None and not cls.DATA_BASE_URL.startswith(("http://", "https://")):
            raise ValueError(
                "KARMALENS_DATA_BASE_URL must be an http(s) URL. "
                "For local exports, set KARMALENS_DATA_DIR instead."
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        source = cls.DATA_BASE_URL or str(cls.DATA_DIR)
        lines = [
            "Karmalens Configuration:",
            f"  Data source: {source}",
            f"  Pattern corpora: {cls.PATTERN_DIR}",
            f"  Fetch timeout: {cls.FETCH_TIMEOUT_SECONDS}s",
            f"  Verbose: {cls.VERBOSE}",
        ]
        return "\n".join(lines)
