"""Shared HTTP session for the data providers.

Retries are disabled: a failed provider call is absorbed by ingestion as a
missing source, never retried. The session still gives connection pooling
across evaluation cycles.
"""
from __future__ import annotations

import logging
import threading

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

log = logging.getLogger(__name__)

_NO_RETRY = Retry(
    total=0,
    read=False,
    raise_on_status=False,        # let caller inspect status codes
)

_session: requests.Session | None = None
_session_lock = threading.Lock()


def get_session() -> requests.Session:
    """Return the module-level session, creating it on first use.

    Thread-safe: ingestion calls this from several worker threads at once.
    """
    global _session
    if _session is not None:
        return _session
    with _session_lock:
        if _session is not None:
            return _session
        s = requests.Session()
        adapter = HTTPAdapter(max_retries=_NO_RETRY, pool_maxsize=8)
        s.mount("https://", adapter)
        s.mount("http://", adapter)
        log.info("HTTP session initialized (no retries, pooled)")
        _session = s
    return _session
