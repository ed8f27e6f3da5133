from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import urlparse

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import FeedUnavailable, HostNotAllowed

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_HOSTS = ("service.bfv.de", "www.bfv.de")
USER_AGENT = "FCSternPitchPlanner/1.0"
NO_CACHE_HEADERS = {"cache-control": "no-cache", "pragma": "no-cache"}


def check_url(url: Optional[str], allowed_hosts: Iterable[str] = DEFAULT_ALLOWED_HOSTS) -> str:
    """Validate a feed URL against the host allow-list and return it."""
    if not url:
        raise FeedUnavailable("parameter 'url' missing", status_code=400)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise FeedUnavailable(f"invalid url: {url}", status_code=400)
    host = parsed.hostname.lower()
    if not any(host == h or host.endswith("." + h) for h in allowed_hosts):
        raise HostNotAllowed(host)
    return url


@retry(
    retry=retry_if_exception_type(httpx.TransportError),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _get(client: httpx.Client, url: str) -> httpx.Response:
    return client.get(url)


def fetch_feed(
    url: Optional[str],
    allowed_hosts: Iterable[str] = DEFAULT_ALLOWED_HOSTS,
    timeout: float = 20,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Fetch raw calendar text, or raise FeedUnavailable with the upstream status."""
    allowed_hosts = tuple(allowed_hosts)
    url = check_url(url, allowed_hosts)
    headers = {"User-Agent": USER_AGENT, **NO_CACHE_HEADERS}

    def _check_hop(request: httpx.Request) -> None:
        # Redirect targets must pass the allow-list too.
        check_url(str(request.url), allowed_hosts)

    with httpx.Client(
        headers=headers,
        timeout=timeout,
        transport=transport,
        follow_redirects=True,
        event_hooks={"request": [_check_hop]},
    ) as client:
        try:
            r = _get(client, url)
        except httpx.TransportError as e:
            raise FeedUnavailable(f"feed fetch failed: {e}", status_code=502) from e
    if not r.is_success:
        logger.warning("feed %s answered %d", url, r.status_code)
        raise FeedUnavailable(f"feed fetch failed ({r.status_code})", status_code=r.status_code, text=r.text)
    return r.text
