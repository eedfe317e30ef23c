"""FastAPI application exposing the storefront client."""
