"""
Request rewriters for CloudFront edge handlers

Every rewriter takes an EdgeRequest and returns it (possibly changed). Which
rewriter runs for a given distribution is decided at deploy time by choosing
the handler module, not by branching at request time.

The rewriters that probe for a .webp variant live in lambdas.shared.s3_probe
and lambdas.shared.origin_probe. This module only uses the standard library.
"""

import re
from typing import Protocol, Sequence

from lambdas.shared.accept import accepts_webp
from lambdas.shared.edge_request import EdgeRequest, event_convention, extract_cf

IMAGE_EXTENSION_PATTERN = re.compile(r"\.(jpe?g|png)$", re.IGNORECASE)
WEBP_SUFFIX = ".webp"
ORIGINAL_URI_HEADER = "x-original-uri"
VIEWER_ACCEPT_WEBP_HEADER = "x-viewer-accept-webp"


class RequestRewriter(Protocol):
    def rewrite(self, request: EdgeRequest) -> EdgeRequest: ...


def is_image_uri(uri: str) -> bool:
    return bool(IMAGE_EXTENSION_PATTERN.search(uri))


def viewer_accepts_webp(request: EdgeRequest) -> bool:
    """
    WebP support of the viewer.

    At origin request CloudFront only forwards the headers of the cache policy,
    so the x-viewer-accept-webp value set at viewer request takes precedence
    over the Accept header.
    """
    signal = request.header(VIEWER_ACCEPT_WEBP_HEADER)
    if signal:
        return signal.strip().lower() == "true"
    return accepts_webp(request.header("accept"))


def wants_webp(request: EdgeRequest) -> bool:
    return is_image_uri(request.uri) and viewer_accepts_webp(request)


def rewrite_to_webp(request: EdgeRequest) -> EdgeRequest:
    request.set_header(ORIGINAL_URI_HEADER, request.uri)
    request.uri = f"{request.uri}{WEBP_SUFFIX}"
    return request


def resolve_directory_index(uri: str) -> str:
    # Missing file name
    if uri.endswith("/"):
        return f"{uri}index.html"
    # Missing file extension
    if "." not in uri:
        return f"{uri}/index.html"
    return uri


class DirectoryIndexRewriter:
    def rewrite(self, request: EdgeRequest) -> EdgeRequest:
        request.uri = resolve_directory_index(request.uri)
        return request


class UnconditionalWebpRewriter:
    """Append .webp for WebP clients, assuming the variant exists next to the original."""

    def rewrite(self, request: EdgeRequest) -> EdgeRequest:
        if wants_webp(request):
            return rewrite_to_webp(request)

        # A previously rewritten URI replayed by a client that does not accept WebP
        if request.uri.endswith(WEBP_SUFFIX) and not viewer_accepts_webp(request):
            stripped = request.uri[: -len(WEBP_SUFFIX)]
            if is_image_uri(stripped):
                request.uri = stripped
        return request


class CacheKeyNormalizer:
    """Collapse the Accept header into a two-valued header a cache policy can key on."""

    def rewrite(self, request: EdgeRequest) -> EdgeRequest:
        if is_image_uri(request.uri):
            viewer_accept_webp = accepts_webp(request.header("accept"))
            request.set_header(VIEWER_ACCEPT_WEBP_HEADER, "true" if viewer_accept_webp else "false")
        return request


class RewriterChain:
    def __init__(self, rewriters: Sequence[RequestRewriter]):
        self.rewriters = list(rewriters)

    def rewrite(self, request: EdgeRequest) -> EdgeRequest:
        for rewriter in self.rewriters:
            request = rewriter.rewrite(request)
        return request


def make_request_handler(rewriter: RequestRewriter):
    """Build a Lambda handler that runs `rewriter` on the request record of the event."""

    def handler(event: dict, context) -> dict:
        record = extract_cf(event)["request"]
        request = rewriter.rewrite(EdgeRequest.from_record(record))
        return request.apply_to(record, event_convention(event))

    return handler
