"""
Helpers shared by the storefront client.

This package contains:
- query: Query-string building for listing endpoints and product option helpers
"""
