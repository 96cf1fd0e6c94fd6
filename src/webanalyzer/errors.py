"""
Error types raised by the analysis pipeline.
"""
from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base class for every failure surfaced by the analyzer."""


class InvalidInput(AnalysisError):
    """Target address is missing, malformed or not http(s)."""


class FetchError(AnalysisError):
    """The target page could not be retrieved."""

    NETWORK_FAILURE = "network failure"
    NON_SUCCESS_STATUS = "non-success status"

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None, detail: str = "") -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.detail = detail
        if status_code is not None:
            message = f"Failed to fetch {url}: {reason} (HTTP {status_code})"
        else:
            message = f"Failed to fetch {url}: {reason}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ParseError(AnalysisError):
    """Fetched markup could not be turned into a document tree."""


class AnalysisCancelled(AnalysisError):
    """The caller cancelled the analysis before it completed."""


class ProbeError(Exception):
    """A single liveness probe failed. Never escapes the prober."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Probe of {url} failed: {detail}")
