"""Tests for console log tags and configuration."""

import contextlib
import io

import pytest

from karmalens.config import Config
from karmalens.logging_utils import (
    Color,
    LOG_TAG_DETERMINISTIC,
    LOG_TAG_ERROR,
    colored,
    log_detail,
    log_deterministic,
    log_error,
)


def test_colored_respects_no_color(monkeypatch):
    monkeypatch.setenv("KARMALENS_NO_COLOR", "1")
    assert colored("plain", Color.RED) == "plain"

    monkeypatch.delenv("KARMALENS_NO_COLOR")
    assert colored("red", Color.RED, bold=True) == f"{Color.BOLD.value}{Color.RED.value}red{Color.RESET.value}"


def test_log_helpers_prefix_tags(monkeypatch):
    monkeypatch.setenv("KARMALENS_NO_COLOR", "1")

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        log_deterministic("[Detect] 3 moments")
        log_error("[Fetch] alpha: unreachable")
    out = buf.getvalue().splitlines()

    assert out == [f"{LOG_TAG_DETERMINISTIC} [Detect] 3 moments", f"{LOG_TAG_ERROR} [Fetch] alpha: unreachable"]


def test_log_detail_only_when_verbose(monkeypatch):
    monkeypatch.setenv("KARMALENS_NO_COLOR", "1")
    monkeypatch.delenv("KARMALENS_VERBOSE", raising=False)

    quiet = io.StringIO()
    with contextlib.redirect_stdout(quiet):
        log_detail("GET https://example.org/a.json")
    assert quiet.getvalue() == ""

    monkeypatch.setenv("KARMALENS_VERBOSE", "true")
    loud = io.StringIO()
    with contextlib.redirect_stdout(loud):
        log_detail("GET https://example.org/a.json")
    assert loud.getvalue() == "[i] GET https://example.org/a.json\n"


def test_config_validate_rejects_bad_values(monkeypatch):
    monkeypatch.setattr(Config, "DATA_BASE_URL", None)
    monkeypatch.setattr(Config, "FETCH_TIMEOUT_SECONDS", 0.0)
    with pytest.raises(ValueError, match="TIMEOUT"):
        Config.validate()

    monkeypatch.setattr(Config, "FETCH_TIMEOUT_SECONDS", 5.0)
    monkeypatch.setattr(Config, "DATA_BASE_URL", "ftp://example.org")
    with pytest.raises(ValueError, match="http"):
        Config.validate()

    monkeypatch.setattr(Config, "DATA_BASE_URL", "https://example.org")
    Config.validate()


def test_config_display_mentions_data_source(monkeypatch):
    monkeypatch.setattr(Config, "DATA_BASE_URL", "https://example.org/data")

    text = Config.display()

    assert "Karmalens Configuration" in text
    assert "https://example.org/data" in text
