"""
Query-string helpers for Medusa listing endpoints.

build_query() appends the known listing parameters in a fixed order so the same
options always produce the same URL. Values that may contain spaces or commas
(expand, fields, query) are percent-encoded the way JavaScript's
encodeURIComponent does it, which is what the Medusa store API expects.
"""

from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel

# Characters encodeURIComponent leaves alone besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"

# (option key, percent-encode value)
QUERY_KEYS = (
    ("limit", False),
    ("offset", False),
    ("order", False),
    ("expand", True),
    ("fields", True),
)


def encode_component(value: Any) -> str:
    """Percent-encode a value like JavaScript's encodeURIComponent."""
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def build_query(base: str, options: Optional[Union[Mapping[str, Any], BaseModel]] = None) -> str:
    """
    Append listing options to a path.

    Known keys are appended as "key=value&" in the order limit, offset, order,
    expand, fields, followed by the free-form "query" fragment (encoded, no
    key). Unknown keys are ignored and falsy values are omitted. The separator
    is "?" unless base already carries a query string.

    Args:
        base: Path, optionally with a query string (e.g. "/store/products?handle=x")
        options: Mapping or pydantic model of listing options

    Returns:
        Path with the options appended

    Examples:
        >>> build_query("/store/products", {"limit": 10, "expand": "a b"})
        '/store/products?limit=10&expand=a%20b&'
        >>> build_query("/store/products", {})
        '/store/products'
    """
    if isinstance(options, BaseModel):
        options = options.model_dump(exclude_none=True)
    if not options:
        return base

    query_string = base
    query_string += "&" if "?" in base else "?"
    for key, encoded in QUERY_KEYS:
        value = options.get(key)
        if value:
            query_string += f"{key}={encode_component(value) if encoded else value}&"
    if options.get("query"):
        query_string += f"{encode_component(options['query'])}&"
    return query_string


def filtered_values(option: Mapping[str, Any]) -> List[Any]:
    """
    Unique values of a product option, in first-seen order.

    Product options list one value entry per variant, so "Size" on a product
    with six variants repeats each size; storefronts want each size once.
    """
    seen: Dict[Any, None] = {}
    for entry in option.get("values") or []:
        seen.setdefault(entry.get("value"), None)
    return list(seen)
