"""Guarded raw-text fetcher for URL scan input.

Only public http(s) hosts are fetched. Hostnames that point at the local
machine or a private network, and IP literals in private, loopback,
link-local, reserved or unspecified ranges, are refused before any network
I/O. Bodies are streamed and cut off at ``MAX_FETCH_BYTES``.

No DNS resolution is performed, so a public name that resolves to a private
address is not caught here.
"""

import ipaddress
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from agentshield import config
from agentshield.errors import FetchError

logger = logging.getLogger(__name__)


ALLOWED_SCHEMES = ("http", "https")
BLOCKED_HOSTNAMES = frozenset(["localhost", "localhost.localdomain", "ip6-localhost"])
BLOCKED_SUFFIXES = (".localhost", ".local", ".internal")
MAX_REDIRECTS: int = 3


def validate_public_url(url: str) -> str:
    """Return ``url`` unchanged if it may be fetched, else raise FetchError."""
    if not isinstance(url, str) or not url.strip():
        raise FetchError("URL must be a non-empty string")

    parsed = urlparse(url.strip())
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise FetchError(f"Unsupported URL scheme: {parsed.scheme or 'none'}")

    host = (parsed.hostname or "").lower().rstrip(".")
    if not host:
        raise FetchError("URL has no host")
    if host in BLOCKED_HOSTNAMES or host.endswith(BLOCKED_SUFFIXES):
        raise FetchError(f"Refusing to fetch from local host: {host}")

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return url.strip()

    if (ip.is_private or ip.is_loopback or ip.is_link_local
            or ip.is_reserved or ip.is_unspecified or ip.is_multicast):
        raise FetchError(f"Refusing to fetch from non-public address: {host}")
    return url.strip()


def to_raw_url(url: str) -> str:
    """Rewrite a github.com ``/blob/`` URL to its raw.githubusercontent.com form."""
    parsed = urlparse(url)
    if (parsed.hostname or "").lower() not in ("github.com", "www.github.com"):
        return url
    if "/blob/" not in parsed.path:
        return url
    path = parsed.path.replace("/blob/", "/", 1)
    return f"https://raw.githubusercontent.com{path}"


async def fetch_text(
    url: str,
    max_bytes: Optional[int] = None,
    timeout: Optional[float] = None,
) -> str:
    """GET ``url`` and return its body as text.

    Redirects are followed manually (up to MAX_REDIRECTS) so every hop goes
    through ``validate_public_url``. Raises FetchError on any refusal,
    transport error, non-2xx status, or a body over ``max_bytes``.
    """
    max_bytes = max_bytes if max_bytes is not None else config.MAX_FETCH_BYTES
    timeout = timeout if timeout is not None else config.FETCH_TIMEOUT_SECONDS
    target = validate_public_url(to_raw_url(url))
    headers = {"User-Agent": config.FETCH_USER_AGENT}

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=False) as client:
            for _ in range(MAX_REDIRECTS + 1):
                async with client.stream("GET", target, headers=headers) as r:
                    if r.is_redirect:
                        location = r.headers.get("location", "")
                        target = validate_public_url(str(r.url.join(location)))
                        continue
                    if r.status_code < 200 or r.status_code >= 300:
                        raise FetchError(f"Failed to fetch URL: HTTP {r.status_code}")

                    chunks = []
                    received = 0
                    async for chunk in r.aiter_bytes():
                        received += len(chunk)
                        if received > max_bytes:
                            raise FetchError(f"Response exceeds {max_bytes} bytes")
                        chunks.append(chunk)
                    body = b"".join(chunks)
                    return body.decode(r.encoding or "utf-8", errors="replace")
    except httpx.HTTPError as exc:
        logger.warning(f"Fetch failed for {target}: {exc}")
        raise FetchError(f"Failed to fetch URL: {exc}") from exc

    raise FetchError("Too many redirects")
