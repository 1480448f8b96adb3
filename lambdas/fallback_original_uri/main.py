"""
Original URI fallback (origin response)

When a request was rewritten to a .webp variant that the origin does not have,
the origin answers 404. Redirect the viewer to the original image recorded in
x-original-uri instead of serving the error.
"""

import json
import logging

from lambdas.shared.edge_request import (
    HeaderConvention,
    encode_header,
    event_convention,
    extract_cf,
    read_headers,
)
from lambdas.shared.rewriters import ORIGINAL_URI_HEADER

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def fallback_to_original_uri(
    response: dict,
    request: dict,
    convention: HeaderConvention = HeaderConvention.LAMBDA_EDGE,
) -> dict:
    original_uri = read_headers(request.get("headers")).get(ORIGINAL_URI_HEADER)

    if str(response.get("status")) != "404" or not original_uri:
        return response

    logger.info(f"WebP variant {request.get('uri')} not found, redirecting to {original_uri}")
    return {
        "status": "302",
        "statusDescription": "Found",
        "headers": {
            **(response.get("headers") or {}),
            "location": encode_header("location", original_uri, convention, key="Location"),
        },
    }


def handler(event: dict, context) -> dict:
    cf = extract_cf(event)
    response = cf["response"]
    request = cf["request"]

    logger.debug(json.dumps(response))
    logger.debug(json.dumps(request))

    return fallback_to_original_uri(response, request, event_convention(event))
