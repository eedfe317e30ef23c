"""
Tests for the listing query-string builder and option value helpers.
"""

from storefront import ProductRetrievalOptions
from storefront.utils.query import build_query, encode_component, filtered_values


class TestBuildQuery:
    """Test cases for build_query."""

    def test_limit_and_encoded_expand(self):
        """Test the documented example: limit then percent-encoded expand."""
        assert build_query("/store/products", {"limit": 10, "expand": "a b"}) == "/store/products?limit=10&expand=a%20b&"

    def test_empty_options_leave_base_unchanged(self):
        assert build_query("/store/products", {}) == "/store/products"
        assert build_query("/store/products", None) == "/store/products"

    def test_fixed_key_order(self):
        """Test that keys are emitted in a fixed order regardless of input order."""
        options = {"fields": "id,title", "query": "q=x", "order": "-created_at", "offset": 5, "limit": 10}
        expected = "/store/products?limit=10&offset=5&order=-created_at&fields=id%2Ctitle&q%3Dx&"
        assert build_query("/store/products", options) == expected

    def test_same_options_same_url(self):
        first = build_query("/store/products", {"offset": 20, "limit": 10, "expand": "variants"})
        second = build_query("/store/products", {"expand": "variants", "limit": 10, "offset": 20})
        assert first == second

    def test_unknown_and_falsy_keys_omitted(self):
        """Test that unknown keys and falsy values are dropped."""
        options = {"limit": 10, "offset": 0, "order": "", "color": "red", "expand": None}
        assert build_query("/store/products", options) == "/store/products?limit=10&"

    def test_base_with_query_string_uses_ampersand(self):
        base = "/store/products?collection_id[]=pcol_1"
        assert build_query(base, {"limit": 4}) == "/store/products?collection_id[]=pcol_1&limit=4&"

    def test_accepts_pydantic_options(self):
        options = ProductRetrievalOptions(limit=12, expand="variants,variants.prices")
        assert build_query("/store/products", options) == (
            "/store/products?limit=12&expand=variants%2Cvariants.prices&"
        )

    def test_encode_component_keeps_unreserved_marks(self):
        assert encode_component("a-b_c.d!e~f*g'h(i)") == "a-b_c.d!e~f*g'h(i)"
        assert encode_component("a/b c&d") == "a%2Fb%20c%26d"


class TestFilteredValues:
    """Test cases for filtered_values."""

    def test_unique_in_first_seen_order(self):
        option = {"title": "Size", "values": [
            {"value": "M"}, {"value": "S"}, {"value": "M"}, {"value": "L"}, {"value": "S"},
        ]}
        assert filtered_values(option) == ["M", "S", "L"]

    def test_no_values(self):
        assert filtered_values({"title": "Size"}) == []
        assert filtered_values({"title": "Size", "values": None}) == []
