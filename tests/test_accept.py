"""
Tests for Accept header negotiation

Tests covering:
- Directive parsing (q-values, whitespace, malformed parameters)
- Exact matches and wildcard handling
- Empty/absent headers
"""

import pytest

from lambdas.shared.accept import AcceptDirective, accepts_webp, parse_accept, prefers_format


# =============================================================================
# Parsing
# =============================================================================

class TestParseAccept:
    def test_empty_header(self):
        assert parse_accept("") == []
        assert parse_accept(None) == []

    def test_directives_with_and_without_q(self):
        directives = parse_accept("text/html, image/webp;q=0.9 ,*/*;q=0.8")
        assert directives == [
            AcceptDirective("text/html", 1.0),
            AcceptDirective("image/webp", 0.9),
            AcceptDirective("*/*", 0.8),
        ]

    def test_malformed_q_defaults_to_one(self):
        assert parse_accept("image/*;q=abc") == [AcceptDirective("image/*", 1.0)]
        assert parse_accept("image/*;q=0.5.1") == [AcceptDirective("image/*", 1.0)]

    def test_q_after_other_parameters(self):
        assert parse_accept("text/html;level=1;q=0.3") == [AcceptDirective("text/html", 0.3)]

    def test_empty_segments_are_skipped(self):
        assert parse_accept("text/html,,") == [AcceptDirective("text/html", 1.0)]


# =============================================================================
# Negotiation
# =============================================================================

class TestPrefersFormat:
    @pytest.mark.parametrize(
        "accept",
        [
            "image/webp",
            "image/avif,image/webp,*/*;q=0.8",
            "text/html,image/webp;q=0.1",
            "image/png;q=0.5, image/webp",
        ],
    )
    def test_bare_webp_directive_always_wins(self, accept):
        assert prefers_format(accept, "image/webp") is True

    def test_deprioritized_type_wildcard(self):
        assert prefers_format("text/html,image/*;q=0.5", "image/webp") is False

    def test_deprioritized_full_wildcard(self):
        assert prefers_format("text/html,*/*;q=0.8", "image/webp") is False

    def test_maximal_wildcards(self):
        assert prefers_format("image/*", "image/webp") is True
        assert prefers_format("*/*", "image/webp") is True
        assert prefers_format("image/*;q=1.0", "image/webp") is True

    def test_wildcard_of_other_type(self):
        assert prefers_format("text/*", "image/webp") is False

    def test_other_image_types_only(self):
        assert prefers_format("image/png,image/jpeg", "image/webp") is False

    def test_empty_header(self):
        assert prefers_format("", "image/webp") is False
        assert prefers_format(None, "image/webp") is False

    def test_case_insensitive_mime_type(self):
        assert prefers_format("Image/WebP", "image/webp") is True

    def test_accepts_webp_shortcut(self):
        assert accepts_webp("image/webp,*/*") is True
        assert accepts_webp("text/html") is False
