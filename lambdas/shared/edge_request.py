"""
Edge request/response records

CloudFront hands requests to edge code in two header conventions:

- Lambda@Edge: headers["accept"] == [{"key": "Accept", "value": "..."}]
- CloudFront Functions: headers["accept"] == {"value": "..."}

Handlers work on EdgeRequest, a normalized view (lowercase name -> single
string value), and write their changes back into the original record so every
other field (querystring, method, clientIp, origin...) passes through untouched.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class HeaderConvention(Enum):
    LAMBDA_EDGE = "lambda_edge"
    CLOUDFRONT_FUNCTION = "cloudfront_function"


def detect_convention(headers: dict) -> HeaderConvention:
    """Infer the convention from the first header value, Lambda@Edge when empty."""
    for value in headers.values():
        if isinstance(value, dict):
            return HeaderConvention.CLOUDFRONT_FUNCTION
        return HeaderConvention.LAMBDA_EDGE
    return HeaderConvention.LAMBDA_EDGE


def read_headers(headers: Optional[dict]) -> dict[str, str]:
    normalized = {}
    for name, value in (headers or {}).items():
        if isinstance(value, list):
            values = [item.get("value", "") for item in value if isinstance(item, dict)]
            normalized[name.lower()] = ",".join(values)
        elif isinstance(value, dict):
            normalized[name.lower()] = value.get("value", "")
        elif value is not None:
            normalized[name.lower()] = str(value)
    return normalized


def encode_header(name: str, value: str, convention: HeaderConvention, key: Optional[str] = None) -> Any:
    if convention is HeaderConvention.CLOUDFRONT_FUNCTION:
        return {"value": value}
    return [{"key": key or name, "value": value}]


def _original_key(record_value: Any, name: str) -> str:
    if isinstance(record_value, list) and record_value and isinstance(record_value[0], dict):
        return record_value[0].get("key", name)
    return name


@dataclass
class EdgeRequest:
    uri: str
    headers: dict[str, str] = field(default_factory=dict)
    origin: Optional[dict] = None

    @classmethod
    def from_record(cls, record: dict) -> "EdgeRequest":
        return cls(
            uri=record.get("uri", "/"),
            headers=read_headers(record.get("headers")),
            origin=record.get("origin"),
        )

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def apply_to(self, record: dict, convention: Optional[HeaderConvention] = None) -> dict:
        """
        Write uri and changed headers back into a copy of the original record.

        New headers follow `convention`, or the shape of the record's existing
        headers when not given.
        """
        updated = deepcopy(record)
        raw_headers = updated.setdefault("headers", {})
        if convention is None:
            convention = detect_convention(raw_headers)
        previous = read_headers(raw_headers)

        updated["uri"] = self.uri

        for name in set(previous) - set(self.headers):
            for raw_name in [n for n in raw_headers if n.lower() == name]:
                del raw_headers[raw_name]

        for name, value in self.headers.items():
            if previous.get(name) == value:
                continue
            raw_name = next((n for n in raw_headers if n.lower() == name), name)
            key = _original_key(raw_headers.get(raw_name), name)
            raw_headers.pop(raw_name, None)
            raw_headers[name] = encode_header(name, value, convention, key)

        return updated


def event_convention(event: dict) -> HeaderConvention:
    """Lambda@Edge events wrap the record in Records[0].cf, CloudFront Functions do not."""
    if "Records" in event:
        return HeaderConvention.LAMBDA_EDGE
    return HeaderConvention.CLOUDFRONT_FUNCTION


def extract_cf(event: dict) -> dict:
    """Return the {request, response, config} part of either event shape."""
    if "Records" in event:
        return event["Records"][0]["cf"]
    return event


def s3_origin_bucket(origin: Optional[dict]) -> Optional[str]:
    """Bucket name from an S3 origin domain such as "my-bucket.s3.us-east-1.amazonaws.com"."""
    domain_name = ((origin or {}).get("s3") or {}).get("domainName")
    if not domain_name:
        return None
    return domain_name.split(".")[0]
