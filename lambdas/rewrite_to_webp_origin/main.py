"""
WebP rewrite with origin probe (origin request)

Sends an HTTPS HEAD for "<uri>.webp" straight to the origin host. Timeouts and
network errors count as "not found".
"""

import logging

import httpx

from lambdas.shared.origin_probe import ORIGIN_PROBE_TIMEOUT_SECONDS, OriginProbeWebpRewriter
from lambdas.shared.rewriters import DirectoryIndexRewriter, RewriterChain, make_request_handler

logger = logging.getLogger()
logger.setLevel(logging.INFO)

http_client = httpx.Client(timeout=ORIGIN_PROBE_TIMEOUT_SECONDS, follow_redirects=False)

webp_rewriter = OriginProbeWebpRewriter(http_client)

handler = make_request_handler(webp_rewriter)
handler_with_directory_index = make_request_handler(
    RewriterChain([DirectoryIndexRewriter(), webp_rewriter])
)
