"""
Tests for the origin-response fallback to the original image
"""

from lambdas.fallback_original_uri.main import fallback_to_original_uri, handler


def make_request(original_uri=None, convention="lambda_edge"):
    headers = {}
    if original_uri is not None:
        if convention == "lambda_edge":
            headers["x-original-uri"] = [{"key": "x-original-uri", "value": original_uri}]
        else:
            headers["x-original-uri"] = {"value": original_uri}
    return {"uri": "/a.png.webp", "headers": headers}


def make_response(status="404"):
    return {
        "status": status,
        "statusDescription": "Not Found",
        "headers": {
            "cache-control": [{"key": "Cache-Control", "value": "max-age=60"}],
        },
    }


class TestFallbackToOriginalUri:
    def test_404_with_original_uri_redirects(self):
        response = fallback_to_original_uri(make_response("404"), make_request("/a.png"))

        assert response["status"] == "302"
        assert response["statusDescription"] == "Found"
        assert response["headers"]["location"] == [{"key": "Location", "value": "/a.png"}]
        assert response["headers"]["cache-control"] == [{"key": "Cache-Control", "value": "max-age=60"}]

    def test_integer_status(self):
        response = fallback_to_original_uri(make_response(404), make_request("/a.png"))
        assert response["status"] == "302"

    def test_single_value_header_convention(self):
        response = fallback_to_original_uri(make_response(), make_request("/a.png", convention="cloudfront_function"))
        assert response["headers"]["location"][0]["value"] == "/a.png"

    def test_200_is_unchanged(self):
        original = make_response("200")
        assert fallback_to_original_uri(original, make_request("/a.png")) is original

    def test_404_without_original_uri_is_unchanged(self):
        original = make_response("404")
        assert fallback_to_original_uri(original, make_request()) is original

    def test_404_with_empty_original_uri_is_unchanged(self):
        original = make_response("404")
        assert fallback_to_original_uri(original, make_request("")) is original


def test_handler():
    event = {
        "Records": [
            {
                "cf": {
                    "config": {"eventType": "origin-response"},
                    "request": make_request("/img/a.jpg"),
                    "response": make_response("404"),
                }
            }
        ]
    }

    response = handler(event, None)

    assert response["status"] == "302"
    assert response["headers"]["location"][0]["value"] == "/img/a.jpg"


def test_handler_cloudfront_function_event():
    event = {
        "version": "1.0",
        "request": make_request("/img/a.jpg", convention="cloudfront_function"),
        "response": {"status": "404", "statusDescription": "Not Found", "headers": {}},
    }

    response = handler(event, None)

    assert response["status"] == "302"
    assert response["headers"]["location"] == {"value": "/img/a.jpg"}
