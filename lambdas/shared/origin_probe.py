"""
WebP rewrite gated on an HTTPS HEAD to the origin host

Only the origin-probe handler imports this module, so httpx is bundled with
that function alone.
"""

import logging
from typing import Optional

import httpx

from lambdas.shared.edge_request import EdgeRequest
from lambdas.shared.rewriters import WEBP_SUFFIX, rewrite_to_webp, wants_webp

logger = logging.getLogger(__name__)

ORIGIN_PROBE_TIMEOUT_SECONDS = 2.0


class OriginProbeWebpRewriter:
    """
    Rewrite to .webp only when an HTTPS HEAD on the origin host answers 2xx.

    The HEAD is unsigned, so the origin must serve the variant publicly. A
    private bucket behind Origin Access Control answers 403 and nothing is
    rewritten.
    """

    def __init__(self, http_client: httpx.Client, timeout: float = ORIGIN_PROBE_TIMEOUT_SECONDS):
        self.http = http_client
        self.timeout = timeout

    @staticmethod
    def origin_url(origin: Optional[dict], uri: str) -> Optional[str]:
        origin = origin or {}
        for origin_type in ("custom", "s3"):
            descriptor = origin.get(origin_type) or {}
            domain_name = descriptor.get("domainName")
            if domain_name:
                path = (descriptor.get("path") or "").rstrip("/")
                return f"https://{domain_name}{path}{uri}"
        return None

    def _webp_exists(self, url: str) -> bool:
        try:
            response = self.http.head(url, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning(f"Origin probe failed for {url}: {e!r}")
            return False
        return response.is_success

    def rewrite(self, request: EdgeRequest) -> EdgeRequest:
        if not wants_webp(request):
            return request

        url = self.origin_url(request.origin, f"{request.uri}{WEBP_SUFFIX}")
        if not url:
            return request

        if self._webp_exists(url):
            return rewrite_to_webp(request)
        return request
