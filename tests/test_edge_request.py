"""
Tests for the normalized edge request and its header adapters
"""

from lambdas.shared.edge_request import (
    EdgeRequest,
    HeaderConvention,
    detect_convention,
    event_convention,
    extract_cf,
    read_headers,
    s3_origin_bucket,
)


LAMBDA_EDGE_RECORD = {
    "clientIp": "203.0.113.178",
    "method": "GET",
    "querystring": "size=large",
    "uri": "/images/photo.jpg",
    "headers": {
        "host": [{"key": "Host", "value": "d111111abcdef8.cloudfront.net"}],
        "accept": [
            {"key": "Accept", "value": "image/avif"},
            {"key": "Accept", "value": "image/webp"},
        ],
    },
    "origin": {"s3": {"domainName": "my-bucket.s3.us-east-1.amazonaws.com", "path": ""}},
}

CLOUDFRONT_FUNCTION_RECORD = {
    "method": "GET",
    "uri": "/images/photo.jpg",
    "querystring": {},
    "headers": {
        "host": {"value": "d111111abcdef8.cloudfront.net"},
        "accept": {"value": "image/webp,*/*"},
    },
}


class TestReadHeaders:
    def test_lambda_edge_values_are_joined(self):
        headers = read_headers(LAMBDA_EDGE_RECORD["headers"])
        assert headers["accept"] == "image/avif,image/webp"
        assert headers["host"] == "d111111abcdef8.cloudfront.net"

    def test_cloudfront_function_values(self):
        headers = read_headers(CLOUDFRONT_FUNCTION_RECORD["headers"])
        assert headers["accept"] == "image/webp,*/*"

    def test_names_are_lowercased(self):
        assert read_headers({"Accept": {"value": "text/html"}}) == {"accept": "text/html"}

    def test_missing_headers(self):
        assert read_headers(None) == {}


class TestDetectConvention:
    def test_lambda_edge(self):
        assert detect_convention(LAMBDA_EDGE_RECORD["headers"]) is HeaderConvention.LAMBDA_EDGE

    def test_cloudfront_function(self):
        assert detect_convention(CLOUDFRONT_FUNCTION_RECORD["headers"]) is HeaderConvention.CLOUDFRONT_FUNCTION

    def test_empty_defaults_to_lambda_edge(self):
        assert detect_convention({}) is HeaderConvention.LAMBDA_EDGE


class TestApplyTo:
    def test_unchanged_request_round_trips(self):
        request = EdgeRequest.from_record(LAMBDA_EDGE_RECORD)
        assert request.apply_to(LAMBDA_EDGE_RECORD) == LAMBDA_EDGE_RECORD

    def test_new_header_lambda_edge(self):
        request = EdgeRequest.from_record(LAMBDA_EDGE_RECORD)
        request.set_header("x-original-uri", "/images/photo.jpg")
        request.uri = "/images/photo.jpg.webp"

        updated = request.apply_to(LAMBDA_EDGE_RECORD)

        assert updated["uri"] == "/images/photo.jpg.webp"
        assert updated["headers"]["x-original-uri"] == [
            {"key": "x-original-uri", "value": "/images/photo.jpg"}
        ]
        # untouched fields and multi-valued headers survive
        assert updated["querystring"] == "size=large"
        assert updated["headers"]["accept"] == LAMBDA_EDGE_RECORD["headers"]["accept"]
        assert updated["origin"] == LAMBDA_EDGE_RECORD["origin"]

    def test_new_header_cloudfront_function(self):
        request = EdgeRequest.from_record(CLOUDFRONT_FUNCTION_RECORD)
        request.set_header("x-viewer-accept-webp", "true")

        updated = request.apply_to(CLOUDFRONT_FUNCTION_RECORD)

        assert updated["headers"]["x-viewer-accept-webp"] == {"value": "true"}

    def test_changed_header_keeps_original_key(self):
        request = EdgeRequest.from_record(LAMBDA_EDGE_RECORD)
        request.set_header("host", "example.com")

        updated = request.apply_to(LAMBDA_EDGE_RECORD)

        assert updated["headers"]["host"] == [{"key": "Host", "value": "example.com"}]

    def test_removed_header(self):
        request = EdgeRequest.from_record(LAMBDA_EDGE_RECORD)
        del request.headers["host"]

        updated = request.apply_to(LAMBDA_EDGE_RECORD)

        assert "host" not in updated["headers"]

    def test_explicit_convention_for_empty_headers(self):
        record = {"uri": "/a.png", "headers": {}}
        request = EdgeRequest.from_record(record)
        request.set_header("x-viewer-accept-webp", "false")

        updated = request.apply_to(record, HeaderConvention.CLOUDFRONT_FUNCTION)

        assert updated["headers"] == {"x-viewer-accept-webp": {"value": "false"}}

    def test_empty_headers_default_to_lambda_edge(self):
        record = {"uri": "/a.png", "headers": {}}
        request = EdgeRequest.from_record(record)
        request.set_header("x-viewer-accept-webp", "false")

        updated = request.apply_to(record)

        assert updated["headers"] == {"x-viewer-accept-webp": [{"key": "x-viewer-accept-webp", "value": "false"}]}

    def test_original_record_is_not_mutated(self):
        request = EdgeRequest.from_record(LAMBDA_EDGE_RECORD)
        request.uri = "/other"
        request.apply_to(LAMBDA_EDGE_RECORD)
        assert LAMBDA_EDGE_RECORD["uri"] == "/images/photo.jpg"


class TestHelpers:
    def test_extract_cf_lambda_edge(self):
        event = {"Records": [{"cf": {"request": LAMBDA_EDGE_RECORD}}]}
        assert extract_cf(event)["request"] is LAMBDA_EDGE_RECORD

    def test_extract_cf_cloudfront_function(self):
        event = {"version": "1.0", "request": CLOUDFRONT_FUNCTION_RECORD}
        assert extract_cf(event)["request"] is CLOUDFRONT_FUNCTION_RECORD

    def test_event_convention(self):
        assert event_convention({"Records": [{"cf": {}}]}) is HeaderConvention.LAMBDA_EDGE
        assert event_convention({"version": "1.0", "request": {}}) is HeaderConvention.CLOUDFRONT_FUNCTION

    def test_s3_origin_bucket(self):
        assert s3_origin_bucket(LAMBDA_EDGE_RECORD["origin"]) == "my-bucket"

    def test_s3_origin_bucket_missing(self):
        assert s3_origin_bucket(None) is None
        assert s3_origin_bucket({"custom": {"domainName": "example.com"}}) is None
