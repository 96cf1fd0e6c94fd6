"""
Retrieval of the target page.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter

from webanalyzer.config import AnalyzerConfig
from webanalyzer.errors import AnalysisCancelled, FetchError

logger = logging.getLogger(__name__)

BODY_CHUNK_SIZE = 64 * 1024


def build_session(config: AnalyzerConfig) -> requests.Session:
    """Create the pooled HTTP session shared by the fetch and the probes."""
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent
    # Pool must be at least as wide as the probe fan-out
    adapter = HTTPAdapter(
        pool_connections=config.max_probe_workers,
        pool_maxsize=config.max_probe_workers,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def fetch_page(session: requests.Session, url: str, timeout: float) -> requests.Response:
    """
    GET the page at url and return the open response.

    The body is streamed; the caller owns the returned response and must
    close it (``with fetch_page(...) as resp:``). Non-2xx responses are
    closed here before FetchError is raised.
    """
    logger.debug("Sending GET request to %s (timeout=%ss)", url, timeout)
    try:
        resp = session.get(url, timeout=timeout, allow_redirects=True, stream=True)
    except requests.RequestException as e:
        logger.error("Failed to fetch %s: %s", url, e)
        raise FetchError(url, FetchError.NETWORK_FAILURE, detail=str(e)) from e

    if not is_success(resp.status_code):
        logger.warning("%s returned non-success status %s", url, resp.status_code)
        resp.close()
        raise FetchError(url, FetchError.NON_SUCCESS_STATUS, status_code=resp.status_code)

    logger.debug("Fetched %s with status %s", url, resp.status_code)
    return resp


def read_body(
    resp: requests.Response,
    url: str,
    cancel_event: Optional[threading.Event] = None,
) -> bytes:
    """
    Read the streamed body chunk by chunk.

    Interrupted transfers are fetch failures. cancel_event is checked between
    chunks; once set, reading stops with AnalysisCancelled and the caller's
    ``with`` block releases the connection.
    """
    chunks: List[bytes] = []
    try:
        for chunk in resp.iter_content(chunk_size=BODY_CHUNK_SIZE):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Analysis cancelled while reading body of %s", url)
                raise AnalysisCancelled(f"Analysis cancelled while reading {url}")
            chunks.append(chunk)
    except requests.RequestException as e:
        logger.error("Failed to read body of %s: %s", url, e)
        raise FetchError(url, FetchError.NETWORK_FAILURE, detail=str(e)) from e
    return b"".join(chunks)
