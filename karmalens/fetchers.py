"""
DataFetcher interface for pluggable transport of exported JSON documents.

The analytics engine never touches the network or filesystem directly: every
document is requested by filename through a DataFetcher, so the same pipeline
runs against a static site, a local export directory, or in-memory fixtures.

Three included implementations:
1. LocalFileFetcher - reads ``{base_dir}/{filename}``
2. HttpFetcher - GETs ``{base_url}/{filename}`` (blocking urllib in a worker thread)
3. InMemoryFetcher - serves pre-parsed payloads (testing, embedding)

Every implementation raises FetchError on transport or decode failure; the
pipeline converts those into per-dataset log lines.

Usage pattern:
    fetcher = LocalFileFetcher("exports/")
    raw = await fetcher.fetch_json("ep_driven_closed_loop_results.json")
"""

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional
from urllib import error, parse, request

from .config import Config
from .logging_utils import log_detail


class KarmalensError(Exception):
    """Base class for karmalens errors."""


class FetchError(KarmalensError):
    """Raised when a document cannot be fetched or is not valid JSON."""

    def __init__(self, filename: str, message: str):
        super().__init__(f"Failed to fetch {filename}: {message}")
        self.filename = filename


class DataFetcher(ABC):
    """Abstract transport for JSON documents addressed by filename."""

    @abstractmethod
    async def fetch_json(self, filename: str) -> Any:
        """
        Fetch and parse one JSON document.

        Args:
            filename: Document name relative to the fetcher's root

        Returns:
            Parsed JSON value

        Raises:
            FetchError: If the document is missing, unreachable or not JSON
        """
        pass


class LocalFileFetcher(DataFetcher):
    """Reads documents from a local export directory."""

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir)

    def _read(self, filename: str) -> Any:
        path = self.base_dir / filename
        try:
            text = path.read_text("utf-8")
        except OSError as exc:
            raise FetchError(filename, f"could not read {path}: {exc.strerror or exc}") from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise FetchError(filename, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc

    async def fetch_json(self, filename: str) -> Any:
        log_detail(f"Reading {self.base_dir / filename}")
        return await asyncio.to_thread(self._read, filename)


def _perform_get_request(url: str, filename: str, timeout: float) -> Any:
    """Execute the blocking GET request and decode the JSON body."""

    req = request.Request(url, headers={"Accept": "application/json"}, method="GET")

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        raise FetchError(filename, f"GET {url} failed with status {exc.code}: {exc.reason}") from exc
    except error.URLError as exc:
        raise FetchError(filename, f"could not reach {url}: {exc.reason}") from exc
    except TimeoutError as exc:
        raise FetchError(filename, f"GET {url} timed out after {timeout}s") from exc

    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FetchError(filename, "response was not valid JSON") from exc


class HttpFetcher(DataFetcher):
    """Fetches documents over HTTP(S) from a static site.

    There are no retries: the request timeout is the only limit on a fetch.
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive (got {timeout})")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def url_for(self, filename: str) -> str:
        return f"{self.base_url}/{parse.quote(filename)}"

    async def fetch_json(self, filename: str) -> Any:
        url = self.url_for(filename)
        log_detail(f"GET {url}")
        return await asyncio.to_thread(_perform_get_request, url, filename, self.timeout)


class InMemoryFetcher(DataFetcher):
    """Serves pre-parsed payloads keyed by filename.

    Each fetch returns a deep copy, so callers can never mutate the stored
    payload between runs.
    """

    def __init__(self, payloads: Optional[Dict[str, Any]] = None):
        self.payloads: Dict[str, Any] = dict(payloads or {})

    def add(self, filename: str, payload: Any) -> None:
        self.payloads[filename] = payload

    async def fetch_json(self, filename: str) -> Any:
        if filename not in self.payloads:
            raise FetchError(filename, "no such document")
        return copy.deepcopy(self.payloads[filename])


def build_default_fetcher(base_dir: Path | str | None = None) -> DataFetcher:
    """Fetcher selected by configuration: HTTP when a base URL is set, else local files."""
    Config.validate()
    if Config.DATA_BASE_URL:
        return HttpFetcher(Config.DATA_BASE_URL, timeout=Config.FETCH_TIMEOUT_SECONDS)
    return LocalFileFetcher(base_dir if base_dir is not None else Config.DATA_DIR)
