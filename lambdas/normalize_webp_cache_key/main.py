"""
WebP cache key normalization (viewer request)

Sets x-viewer-accept-webp to "true"/"false" on image requests so the cache
policy can key on that header instead of the raw Accept value.
"""

import logging

from lambdas.shared.rewriters import CacheKeyNormalizer, make_request_handler

logger = logging.getLogger()
logger.setLevel(logging.INFO)

handler = make_request_handler(CacheKeyNormalizer())
