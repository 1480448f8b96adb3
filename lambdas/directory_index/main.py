"""
Directory index resolution (origin request)

"/docs/" -> "/docs/index.html", "/docs" -> "/docs/index.html".
URIs that already carry a file extension pass through unchanged.
"""

import logging

from lambdas.shared.rewriters import DirectoryIndexRewriter, make_request_handler

logger = logging.getLogger()
logger.setLevel(logging.INFO)

handler = make_request_handler(DirectoryIndexRewriter())
