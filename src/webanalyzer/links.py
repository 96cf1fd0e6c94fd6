"""
Link classification and liveness probing of external links.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import urldefrag, urljoin, urlsplit

import requests

from webanalyzer.document import ParsedDocument
from webanalyzer.errors import AnalysisCancelled, ProbeError
from webanalyzer.fetch import is_success

logger = logging.getLogger(__name__)

INTERNAL = "internal"
EXTERNAL = "external"

ACCESSIBLE = "accessible"
BROKEN = "broken"
UNRESOLVED = "unresolved"

# How often the gather loop wakes up to look at the cancel event
CANCEL_POLL_INTERVAL = 0.1


@dataclass(slots=True)
class LinkRecord:
    """One anchor on the page and what we learned about it."""
    href: str
    host: str
    kind: str
    target: Optional[str] = None
    status: str = UNRESOLVED


@dataclass(frozen=True, slots=True)
class ProbeSummary:
    """Aggregate liveness counts over the external links of a page."""
    accessible: int = 0
    broken: int = 0

    @property
    def total(self) -> int:
        return self.accessible + self.broken


def host_of(url: str) -> str:
    """
    Authority of url without userinfo, port kept, case untouched.

    Raises ValueError when url cannot be split (e.g. an unbalanced IPv6 bracket).
    """
    return urlsplit(url).netloc.rpartition("@")[2]


def classify_link(href: str, page_url: str, page_host: str) -> LinkRecord:
    """Bucket a single href as internal or external relative to page_host."""
    try:
        host = host_of(href)
    except ValueError as e:
        # Unparseable hrefs are counted as internal
        logger.debug("Treating malformed href %r as internal: %s", href, e)
        return LinkRecord(href=href, host="", kind=INTERNAL)

    if not host or host == page_host:
        return LinkRecord(href=href, host=host, kind=INTERNAL)

    target, _ = urldefrag(urljoin(page_url, href))
    return LinkRecord(href=href, host=host, kind=EXTERNAL, target=target)


def classify_links(doc: ParsedDocument, page_url: str) -> List[LinkRecord]:
    """
    Classify every <a> carrying an href attribute, in document order.

    Anchors without href are skipped. An href whose host is empty or equal to
    the page's host (exact string match, no www./port normalization) is
    internal; anything else is external.
    """
    page_host = host_of(page_url)
    records = [
        classify_link(anchor["href"].strip(), page_url, page_host)
        for anchor in doc.soup.find_all("a", href=True)
    ]
    logger.debug(
        "Classified %d links on %s (%d external)",
        len(records), page_url, sum(1 for r in records if r.kind == EXTERNAL),
    )
    return records


def head_request(session: requests.Session, url: str, timeout: float) -> int:
    """Issue a HEAD request and return its status; failures raise ProbeError."""
    try:
        resp = session.head(url, timeout=timeout, allow_redirects=True)
    except (requests.RequestException, ValueError) as e:
        raise ProbeError(url, str(e)) from e
    try:
        return resp.status_code
    finally:
        resp.close()


def check_link(
    session: requests.Session,
    url: str,
    timeout: float,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    """Return ACCESSIBLE for a 2xx HEAD response, BROKEN for anything else."""
    if cancel_event is not None and cancel_event.is_set():
        return BROKEN
    try:
        status_code = head_request(session, url, timeout)
    except ProbeError as e:
        logger.debug("%s", e)
        return BROKEN

    if is_success(status_code):
        return ACCESSIBLE
    logger.debug("Link %s returned status %s", url, status_code)
    return BROKEN


def gather_budget(timeout: float, targets: int, workers: int) -> float:
    """Seconds the whole probe stage may take: one timeout per wave of workers, plus one spare wave."""
    waves = math.ceil(targets / workers)
    return timeout * (waves + 1)


def probe_links(
    records: Sequence[LinkRecord],
    session: requests.Session,
    timeout: float,
    max_workers: int,
    cancel_event: Optional[threading.Event] = None,
) -> ProbeSummary:
    """
    Probe the external links in records and count accessible vs. broken.

    Each distinct target is probed once on a bounded thread pool; its
    outcome is written back to every record pointing at it. Returns only
    after every probe has reported or the stage has used up its
    gather_budget; probes still running at that point count as broken.
    Setting cancel_event abandons the outstanding probes and raises
    AnalysisCancelled.
    """
    external = [r for r in records if r.kind == EXTERNAL]
    if not external:
        return ProbeSummary()

    targets = list(dict.fromkeys(r.target for r in external))
    workers = min(max_workers, len(targets))
    budget = gather_budget(timeout, len(targets), workers)
    logger.info(
        "Probing %d external links (%d unique) with %d workers, budget %.1fs",
        len(external), len(targets), workers, budget,
    )

    outcomes: Dict[str, str] = {}
    pending: Set[Future] = set()
    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="link-probe")
    try:
        futures: Dict[Future, str] = {
            pool.submit(check_link, session, target, timeout, cancel_event): target
            for target in targets
        }
        pending = set(futures)
        deadline = time.monotonic() + budget
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Link probing cancelled with %d probes outstanding", len(pending))
                raise AnalysisCancelled("Analysis cancelled while probing links")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("%d link probes exceeded %.1fs; counting them as broken", len(pending), budget)
                for future in pending:
                    outcomes[futures[future]] = BROKEN
                break
            if cancel_event is not None:
                remaining = min(remaining, CANCEL_POLL_INTERVAL)
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for future in done:
                outcomes[futures[future]] = future.result()
    finally:
        pool.shutdown(wait=not pending, cancel_futures=True)

    accessible = broken = 0
    for record in external:
        record.status = outcomes[record.target]
        if record.status == ACCESSIBLE:
            accessible += 1
        else:
            broken += 1
    return ProbeSummary(accessible=accessible, broken=broken)
