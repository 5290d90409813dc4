"""
Shared HTTP client for upstream collaborators (policy machine, source system).

Timeouts and retries live here, not in the enforcement core: urllib3's Retry
handles idempotent GETs against 429/5xx, and every request carries the
inbound X-Request-Id so upstream logs can be correlated.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from gatekeepr_common.context import current_request_id
from gatekeepr_config.settings import env_float, env_int

logger = logging.getLogger(__name__)

Timeout = Union[float, Tuple[float, float]]

RETRY_ON_STATUS = (429, 500, 502, 503, 504)
IDEMPOTENT_METHODS = frozenset({"HEAD", "GET", "OPTIONS"})


def _timeouts_from_env() -> Tuple[float, float]:
    return (
        env_float("GATEKEEPR_HTTP_CONNECT_TIMEOUT", 3.05),
        env_float("GATEKEEPR_HTTP_READ_TIMEOUT", 20.0),
    )


@dataclass(frozen=True)
class HttpClientConfig:
    timeout: Tuple[float, float] = field(default_factory=_timeouts_from_env)
    retries: int = field(default_factory=lambda: env_int("GATEKEEPR_HTTP_RETRIES", 3))
    backoff: float = field(default_factory=lambda: env_float("GATEKEEPR_HTTP_BACKOFF", 0.4))
    user_agent: str = "gatekeepr/0.1"

    def retry_policy(self) -> Optional[Retry]:
        if self.retries <= 0:
            return None
        # raise_on_status=False hands the last 5xx back so raise_for_status() reports it
        return Retry(
            total=self.retries,
            backoff_factor=self.backoff,
            status_forcelist=RETRY_ON_STATUS,
            allowed_methods=IDEMPOTENT_METHODS,
            respect_retry_after_header=True,
            raise_on_status=False,
        )


def api_url(base_url: str, path: str) -> str:
    """Join base and path without duplicate or missing slashes."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class HttpClient:
    """GET-only `requests.Session` wrapper used by the upstream adapters."""

    def __init__(self, *, config: Optional[HttpClientConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or HttpClientConfig()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self.config.user_agent)

        retry = self.config.retry_policy()
        if retry is not None:
            adapter = HTTPAdapter(max_retries=retry)
            for scheme in ("http://", "https://"):
                self.session.mount(scheme, adapter)

    def _headers(self, extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
        headers = dict(extra or {})
        rid = current_request_id()
        if rid and "X-Request-Id" not in headers:
            headers["X-Request-Id"] = rid
        return headers

    def get(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[Timeout] = None,
    ) -> requests.Response:
        """GET and raise for non-2xx responses; failures are logged with status and latency."""
        started = time.perf_counter()
        try:
            resp = self.session.get(
                url,
                headers=self._headers(headers),
                params=dict(params) if params else None,
                timeout=timeout or self.config.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            status = e.response.status_code if e.response is not None else None
            logger.warning("GET %s failed (status=%s, %d ms): %s", url, status, elapsed_ms, e)
            raise
        logger.debug("GET %s -> %s in %d ms", url, resp.status_code, int((time.perf_counter() - started) * 1000))
        return resp

    def get_json(self, url: str, **kwargs: Any) -> Any:
        return self.get(url, **kwargs).json()
