"""
Core analysis pipeline and its data structures.
"""
from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlsplit

import requests

from webanalyzer.config import AnalyzerConfig
from webanalyzer.document import (
    count_headings,
    extract_title,
    has_login_form,
    parse_document,
    sniff_html_version,
)
from webanalyzer.errors import AnalysisCancelled, InvalidInput
from webanalyzer.fetch import build_session, fetch_page, read_body
from webanalyzer.links import EXTERNAL, INTERNAL, classify_links, probe_links

logger = logging.getLogger(__name__)

HTTP_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def validate_target_url(url: Any) -> str:
    """Return url if it is an absolute http(s) URL with a host, else raise InvalidInput."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidInput("URL is required")
    url = url.strip()
    if not HTTP_URL_PATTERN.match(url):
        raise InvalidInput(f"Invalid URL format: {url}")
    try:
        parsed = urlsplit(url)
    except ValueError as e:
        raise InvalidInput(f"Invalid URL format: {url}") from e
    if not parsed.hostname:
        raise InvalidInput(f"URL has no host: {url}")
    return url


@dataclass(frozen=True, slots=True)
class AnalysisRequest:
    """A validated target address."""
    url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", validate_target_url(self.url))

    @classmethod
    def from_payload(cls, payload: Any) -> "AnalysisRequest":
        """Build a request from a decoded ``{"url": ...}`` JSON envelope."""
        if not isinstance(payload, Mapping):
            raise InvalidInput("Invalid request payload")
        return cls(url=payload.get("url"))


@dataclass(frozen=True, slots=True)
class AnalysisOptions:
    enable_liveness_probe: bool = True


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Summary of one analyzed page. headings is stored as a read-only mapping."""
    html_version: str
    title: str
    headings: Mapping[str, int] = field(default_factory=dict)
    internal_links: int = 0
    external_links: int = 0
    has_login_form: bool = False
    accessible_external_links: Optional[int] = None
    broken_external_links: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headings", MappingProxyType(dict(self.headings)))

    def to_dict(self) -> Dict[str, Any]:
        """JSON envelope; probe counts only appear when probing ran."""
        payload: Dict[str, Any] = {
            "htmlVersion": self.html_version,
            "title": self.title,
            "headings": dict(self.headings),
            "internalLinks": self.internal_links,
            "externalLinks": self.external_links,
            "hasLoginForm": self.has_login_form,
        }
        if self.accessible_external_links is not None:
            payload["accessibleExternalLinks"] = self.accessible_external_links
            payload["brokenExternalLinks"] = self.broken_external_links
        return payload


def _check_cancelled(cancel_event: Optional[threading.Event], step: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.warning("Analysis cancelled before %s", step)
        raise AnalysisCancelled(f"Analysis cancelled before {step}")


def analyze(
    request: Union[AnalysisRequest, str],
    options: Optional[AnalysisOptions] = None,
    *,
    config: Optional[AnalyzerConfig] = None,
    session: Optional[requests.Session] = None,
    cancel_event: Optional[threading.Event] = None,
) -> AnalysisResult:
    """
    Fetch, parse and summarize a single page.

    Args:
        request: The target, either an AnalysisRequest or a URL string
                 (validated on the way in).
        options: Whether to probe external links; probing is on by default.
        config: Timeouts and probe pool size. Defaults to AnalyzerConfig().
        session: HTTP session to use. When omitted one is built from config
                 and closed before returning.
        cancel_event: Checked before every blocking step, between body chunks
                      and while probing. A GET still waiting for response
                      headers is bounded only by fetch_timeout.

    Returns:
        The AnalysisResult for the page.

    Raises:
        InvalidInput: request is a string that is not an http(s) URL.
        FetchError: the page could not be retrieved or returned non-2xx.
        ParseError: the content could not be parsed.
        AnalysisCancelled: cancel_event was set.
    """
    if not isinstance(request, AnalysisRequest):
        request = AnalysisRequest(url=request)
    options = options or AnalysisOptions()
    config = config or AnalyzerConfig()

    own_session = session is None
    if own_session:
        session = build_session(config)
    try:
        return _run(request.url, options, config, session, cancel_event)
    finally:
        # After a cancelled or over-budget probe stage, abandoned probe threads
        # may still hold this session; closing it makes their requests fail
        # fast and their outcomes are discarded.
        if own_session:
            session.close()


def _run(
    url: str,
    options: AnalysisOptions,
    config: AnalyzerConfig,
    session: requests.Session,
    cancel_event: Optional[threading.Event],
) -> AnalysisResult:
    logger.info("Starting page analysis for %s", url)

    _check_cancelled(cancel_event, "fetch")
    with fetch_page(session, url, timeout=config.fetch_timeout) as resp:
        body = read_body(resp, url, cancel_event)
        _check_cancelled(cancel_event, "parse")
        doc = parse_document(body)

    logger.info("Extracting data from %s", url)
    html_version = sniff_html_version(doc)
    title = extract_title(doc)
    headings = count_headings(doc)
    login_form = has_login_form(doc)
    records = classify_links(doc, url)
    internal = sum(1 for r in records if r.kind == INTERNAL)
    external = sum(1 for r in records if r.kind == EXTERNAL)

    accessible = broken = None
    if options.enable_liveness_probe:
        _check_cancelled(cancel_event, "link probing")
        summary = probe_links(
            records,
            session,
            timeout=config.probe_timeout,
            max_workers=config.max_probe_workers,
            cancel_event=cancel_event,
        )
        accessible, broken = summary.accessible, summary.broken

    logger.info(
        "Page analysis of %s completed: %d internal, %d external links",
        url, internal, external,
    )
    return AnalysisResult(
        html_version=html_version,
        title=title,
        headings=headings,
        internal_links=internal,
        external_links=external,
        has_login_form=login_form,
        accessible_external_links=accessible,
        broken_external_links=broken,
    )
