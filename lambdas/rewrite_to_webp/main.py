"""
WebP rewrite without existence check (viewer request)

Appends .webp to image URIs for clients that accept WebP and records the
original URI in x-original-uri. The origin-response fallback redirects back
to that URI when the variant turns out to be missing.
"""

import logging

from lambdas.shared.rewriters import UnconditionalWebpRewriter, make_request_handler

logger = logging.getLogger()
logger.setLevel(logging.INFO)

handler = make_request_handler(UnconditionalWebpRewriter())
