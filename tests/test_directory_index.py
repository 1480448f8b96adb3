import pytest

from lambdas.directory_index.main import handler
from lambdas.shared.rewriters import resolve_directory_index


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("/", "/index.html"),
        ("/about", "/about/index.html"),
        ("/about/", "/about/index.html"),
        ("/docs/guide", "/docs/guide/index.html"),
        ("/about.html", "/about.html"),
        ("/img/photo.jpg", "/img/photo.jpg"),
        ("/v1.2/notes", "/v1.2/notes"),
    ],
)
def test_resolve_directory_index(uri, expected):
    assert resolve_directory_index(uri) == expected


def test_handler():
    event = {
        "Records": [
            {
                "cf": {
                    "request": {
                        "method": "GET",
                        "querystring": "page=2",
                        "uri": "/blog/",
                        "headers": {"host": [{"key": "Host", "value": "www.example.com"}]},
                    }
                }
            }
        ]
    }

    request = handler(event, None)

    assert request["uri"] == "/blog/index.html"
    assert request["querystring"] == "page=2"
    assert request["headers"] == {"host": [{"key": "Host", "value": "www.example.com"}]}
