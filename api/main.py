"""
FastAPI application for the Medusa storefront API.

This module exposes the storefront client over HTTP and is the request-lifecycle
entry point for it: the get_storefront dependency wraps the inbound cookies in a
CookieJar, runs StorefrontClient.handle_request() and stores the resolved
StorefrontContext and the jar on request.state. CookieJarMiddleware writes the
jar's cookies onto whatever response goes out, error responses included.

Endpoints:
- GET  /session: Session and cart resolved for this request
- POST /auth/login, /auth/logout, /auth/register: Customer session
- GET  /search, /products, /products/{handle}, /collections...: Catalog
- GET/POST /products/{product_id}/reviews, /reviews/{review_id}: Reviews
- GET  /cart, POST/DELETE /cart/items...: Cart
- /checkout/*: Addresses, shipping, payment and order placement
- /account/*, /orders/{order_id}, /password/*: Customer account

Session and cart identity travel in the sid and cartid cookies; the Medusa
session token itself never leaves the server.

Run the API with:
    uvicorn api.main:app --reload

Access API documentation at:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

# Import config early to load .env file before any other code accesses environment variables
import api.config  # noqa: F401

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status

from api.config import MedusaConfig, build_client_options, validate_required_config
from api.middleware import CookieJarMiddleware
from api.schemas import (
    AddToCartRequest,
    LoginRequest,
    PasswordResetRequest,
    PasswordTokenRequest,
    PaymentSessionRequest,
    ReviewInput,
    SessionView,
    ShippingMethodRequest,
    StatusResponse,
    UpdateLineItemRequest,
)
from storefront import (
    Address,
    CookieJar,
    Customer,
    Failure,
    Result,
    StorefrontClient,
    StorefrontContext,
    User,
)

logger = logging.getLogger(__name__)

# Track app start time for uptime calculation
_APP_START_TIME = time.time()

app = FastAPI(
    title="Medusa Storefront API",
    description="Session-aware storefront API in front of a Medusa commerce backend",
    version="1.0.0",
    tags_metadata=[
        {"name": "session", "description": "Customer login, logout, registration and session state."},
        {"name": "catalog", "description": "Products, collections and search."},
        {"name": "reviews", "description": "Product reviews."},
        {"name": "cart", "description": "Cart line items. The cart id travels in the cartid cookie."},
        {"name": "checkout", "description": "Addresses, shipping, payment and order placement."},
        {"name": "account", "description": "Address book, profile, orders and password reset."},
        {"name": "health", "description": "Health check and monitoring endpoints."},
    ],
)

app.add_middleware(CookieJarMiddleware)

# Result failures that do not depend on the route
FAILURE_STATUS = {
    Failure.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
    Failure.PARSE: status.HTTP_502_BAD_GATEWAY,
    Failure.COOKIE: status.HTTP_502_BAD_GATEWAY,
    Failure.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Failure.PRECONDITION: status.HTTP_400_BAD_REQUEST,
    Failure.REJECTED: status.HTTP_409_CONFLICT,
}


@lru_cache(maxsize=1)
def get_client() -> StorefrontClient:
    """
    Process-wide storefront client, built from the environment on first use.

    Raises:
        RuntimeError: If MEDUSA_URL is not configured
    """
    validate_required_config()
    options = build_client_options()
    logger.info(
        "Storefront client configured for %s (retry=%d, persistent_cart=%s, log_level=%s)",
        MedusaConfig.get_url(),
        options.retry,
        options.persistent_cart,
        options.log_level,
    )
    return StorefrontClient(MedusaConfig.get_url(), options)


@dataclass
class Storefront:
    """Per-request storefront state handed to route handlers."""
    context: StorefrontContext
    cookies: CookieJar


def get_storefront(
    request: Request,
    client: StorefrontClient = Depends(get_client),
) -> Storefront:
    """
    Bootstrap the storefront context for this request.

    Cookie writes made while handling the request (rotated session, new or
    cleared cart) are kept in the jar on request.state; CookieJarMiddleware
    applies them to the final response even when the route raises.
    """
    cookies = CookieJar(request.cookies)
    context = client.handle_request(cookies)
    request.state.storefront = context
    request.state.cookies = cookies
    return Storefront(context=context, cookies=cookies)


def require_user(storefront: Storefront = Depends(get_storefront)) -> Storefront:
    if not storefront.context.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "detail": "Log in to access your account"},
        )
    return storefront


def unwrap(result: Result, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> Any:
    """
    Payload of a successful Result, or the matching HTTPException.

    Failure.STATUS (the backend rejected the call) uses the route's status_code;
    other failures map through FAILURE_STATUS.

    Raises:
        HTTPException: If the result is a failure
    """
    if result:
        return result.data
    code = FAILURE_STATUS.get(result.reason, status_code)
    raise HTTPException(status_code=code, detail={"error": result.reason.value, "detail": detail})


# ----------------------------------------------------------------------
# Session
# ----------------------------------------------------------------------

@app.get("/session", response_model=SessionView, tags=["session"])
def session(storefront: Storefront = Depends(get_storefront)) -> SessionView:
    """Session and cart resolved from the request cookies."""
    context = storefront.context
    return SessionView(
        logged_in=bool(context.user),
        user=context.user,
        cart_id=context.cart_id,
        cart=context.cart,
    )


@app.post("/auth/login", response_model=SessionView, tags=["session"])
def login(
    payload: LoginRequest,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> SessionView:
    """
    Log a customer in.

    On success the sid cookie is (re)issued with the backend session's expiry.

    Raises:
        HTTPException 401: If the credentials are rejected
    """
    result = client.login(storefront.context, storefront.cookies, payload.email, payload.password)
    unwrap(result, "Invalid email or password", status.HTTP_401_UNAUTHORIZED)
    context = storefront.context
    return SessionView(logged_in=True, user=context.user, cart_id=context.cart_id, cart=context.cart)


@app.post("/auth/logout", response_model=StatusResponse, tags=["session"])
def logout(
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.logout(storefront.context, storefront.cookies), "Logout failed", status.HTTP_502_BAD_GATEWAY)
    return StatusResponse(success=True)


@app.post("/auth/register", response_model=StatusResponse, status_code=status.HTTP_201_CREATED, tags=["session"])
def register(
    user: User,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    """
    Create a customer account and log it in.

    Raises:
        HTTPException 400: If the backend rejects the registration (e.g. email already taken)
    """
    unwrap(client.register(storefront.context, storefront.cookies, user), "Registration failed")
    return StatusResponse(success=True)


# ----------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------

@app.get("/search", tags=["catalog"])
def search(
    q: str = Query("", description="Search query"),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    return unwrap(client.get_search_results(q), "Search is unavailable", status.HTTP_502_BAD_GATEWAY)


@app.get("/products", tags=["catalog"])
def list_products(
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    order: Optional[str] = Query(None, description="Sort field, prefix with '-' for descending"),
    expand: Optional[str] = Query(None, description="Comma-separated relations to expand"),
    fields: Optional[str] = Query(None, description="Comma-separated fields to return"),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    options = {"limit": limit, "offset": offset, "order": order, "expand": expand, "fields": fields}
    options = {key: value for key, value in options.items() if value is not None}
    return unwrap(client.get_products(options), "Products are unavailable", status.HTTP_502_BAD_GATEWAY)


@app.get("/products/{handle}", tags=["catalog"])
def get_product(handle: str, client: StorefrontClient = Depends(get_client)) -> Dict[str, Any]:
    """Product by handle; each option carries its distinct values in filtered_values."""
    return unwrap(client.get_product(handle), f"Product '{handle}' not found", status.HTTP_404_NOT_FOUND)


@app.get("/collections", tags=["catalog"])
def list_collections(
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    options = {key: value for key, value in {"limit": limit, "offset": offset}.items() if value is not None}
    return unwrap(client.get_collections(options), "Collections are unavailable", status.HTTP_502_BAD_GATEWAY)


@app.get("/collections/{handle}", tags=["catalog"])
def get_collection(handle: str, client: StorefrontClient = Depends(get_client)) -> Dict[str, Any]:
    return unwrap(client.get_collection(handle), f"Collection '{handle}' not found", status.HTTP_404_NOT_FOUND)


@app.get("/collections/{handle}/products", tags=["catalog"])
def get_collection_products(
    handle: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    collection = unwrap(
        client.get_collection(handle), f"Collection '{handle}' not found", status.HTTP_404_NOT_FOUND
    )
    options = {key: value for key, value in {"limit": limit, "offset": offset}.items() if value is not None}
    return unwrap(
        client.get_collection_products(collection.get("id", ""), options),
        "Collection products are unavailable",
        status.HTTP_502_BAD_GATEWAY,
    )


# ----------------------------------------------------------------------
# Reviews
# ----------------------------------------------------------------------

@app.get("/products/{product_id}/reviews", tags=["reviews"])
def list_reviews(product_id: str, client: StorefrontClient = Depends(get_client)) -> List[Dict[str, Any]]:
    return unwrap(client.get_reviews(product_id), "Reviews are unavailable", status.HTTP_502_BAD_GATEWAY)


@app.post(
    "/products/{product_id}/reviews",
    response_model=StatusResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["reviews"],
)
def add_review(
    product_id: str,
    review: ReviewInput,
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    payload = {"product_id": product_id, **review.model_dump()}
    unwrap(client.add_review(storefront.context, payload), "Review was not accepted")
    return StatusResponse(success=True)


@app.get("/reviews/{review_id}", tags=["reviews"])
def get_review(review_id: str, client: StorefrontClient = Depends(get_client)) -> Dict[str, Any]:
    return unwrap(client.get_review(review_id), f"Review '{review_id}' not found", status.HTTP_404_NOT_FOUND)


@app.post("/reviews/{review_id}", response_model=StatusResponse, tags=["reviews"])
def update_review(
    review_id: str,
    review: ReviewInput,
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.update_review(storefront.context, review_id, review), "Review was not updated")
    return StatusResponse(success=True)


# ----------------------------------------------------------------------
# Cart
# ----------------------------------------------------------------------

@app.get("/cart", tags=["cart"])
def view_cart(storefront: Storefront = Depends(get_storefront)) -> Optional[Dict[str, Any]]:
    """Cart resolved during the bootstrap; null when the visitor has no cart."""
    return storefront.context.cart


@app.post("/cart/items", tags=["cart"])
def add_item(
    item: AddToCartRequest,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    """
    Add a variant to the cart.

    Creates a cart (and issues the cartid cookie) when the customer has none
    or the existing one no longer accepts items.

    Raises:
        HTTPException 400: If the backend rejects the line item
    """
    result = client.add_to_cart(storefront.context, storefront.cookies, item.variant_id, item.quantity)
    return unwrap(result, "Item could not be added to the cart")


@app.post("/cart/items/{item_id}", tags=["cart"])
def update_item(
    item_id: str,
    payload: UpdateLineItemRequest,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(client.update_cart(storefront.context, item_id, payload.quantity), "Line item was not updated")


@app.delete("/cart/items/{item_id}", tags=["cart"])
def remove_item(
    item_id: str,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(client.remove_from_cart(storefront.context, item_id), "Line item was not removed")


# ----------------------------------------------------------------------
# Checkout
# ----------------------------------------------------------------------

@app.post("/checkout/billing-address", tags=["checkout"])
def set_billing_address(
    address: Address,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(client.update_cart_billing_address(storefront.context, address), "Billing address was not saved")


@app.post("/checkout/shipping-address", tags=["checkout"])
def set_shipping_address(
    address: Address,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(
        client.update_cart_shipping_address(storefront.context, address), "Shipping address was not saved"
    )


@app.get("/checkout/shipping-options", tags=["checkout"])
def shipping_options(
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    return unwrap(
        client.get_shipping_options(storefront.context), "Shipping options are unavailable",
        status.HTTP_502_BAD_GATEWAY,
    )


@app.post("/checkout/shipping-method", tags=["checkout"])
def select_shipping_method(
    payload: ShippingMethodRequest,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(
        client.select_shipping_option(storefront.context, payload.option_id), "Shipping method was not selected"
    )


@app.post("/checkout/payment-sessions", tags=["checkout"])
def create_payment_sessions(
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(client.create_payment_sessions(storefront.context), "Payment sessions were not created")


@app.post("/checkout/payment-session", tags=["checkout"])
def select_payment_session(
    payload: PaymentSessionRequest,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(
        client.select_payment_session(storefront.context, payload.provider_id), "Payment provider was not selected"
    )


@app.post("/checkout/complete", tags=["checkout"])
def complete_checkout(
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    """
    Place the order for the open cart.

    Returns:
        The placed order; the cartid cookie is cleared

    Raises:
        HTTPException 409: If the backend did not turn the cart into an order
            (e.g. payment requires further action)
    """
    return unwrap(client.complete_cart(storefront.context, storefront.cookies), "Order was not placed")


# ----------------------------------------------------------------------
# Account
# ----------------------------------------------------------------------

@app.post("/account", response_model=StatusResponse, tags=["account"])
def edit_account(
    customer: Customer,
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.edit_customer(storefront.context, customer), "Profile was not updated")
    return StatusResponse(success=True)


@app.get("/account/reviews", tags=["account"])
def my_reviews(
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    return unwrap(
        client.get_customer_reviews(storefront.context), "Reviews are unavailable", status.HTTP_502_BAD_GATEWAY
    )


@app.get("/account/addresses", tags=["account"])
def list_addresses(
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> List[Dict[str, Any]]:
    return unwrap(client.get_addresses(storefront.context), "Addresses are unavailable", status.HTTP_502_BAD_GATEWAY)


@app.post(
    "/account/addresses", response_model=StatusResponse, status_code=status.HTTP_201_CREATED, tags=["account"]
)
def add_address(
    address: Address,
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.add_shipping_address(storefront.context, address), "Address was not saved")
    return StatusResponse(success=True)


@app.post("/account/addresses/{address_id}", response_model=StatusResponse, tags=["account"])
def update_address(
    address_id: str,
    address: Address,
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.update_shipping_address(storefront.context, address_id, address), "Address was not updated")
    return StatusResponse(success=True)


@app.delete("/account/addresses/{address_id}", response_model=StatusResponse, tags=["account"])
def delete_address(
    address_id: str,
    storefront: Storefront = Depends(require_user),
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.delete_address(storefront.context, address_id), "Address was not deleted")
    return StatusResponse(success=True)


@app.get("/orders/{order_id}", tags=["account"])
def get_order(
    order_id: str,
    storefront: Storefront = Depends(get_storefront),
    client: StorefrontClient = Depends(get_client),
) -> Dict[str, Any]:
    return unwrap(
        client.get_order(storefront.context, order_id), f"Order '{order_id}' not found", status.HTTP_404_NOT_FOUND
    )


@app.post("/password/token", response_model=StatusResponse, tags=["account"])
def request_password_reset(
    payload: PasswordTokenRequest,
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(client.request_reset_password(payload.email), "Password reset could not be requested")
    return StatusResponse(success=True)


@app.post("/password/reset", response_model=StatusResponse, tags=["account"])
def reset_password(
    payload: PasswordResetRequest,
    client: StorefrontClient = Depends(get_client),
) -> StatusResponse:
    unwrap(
        client.reset_password(payload.email, payload.password, payload.token),
        "Password was not reset",
    )
    return StatusResponse(success=True)


# ----------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------

@app.get("/health", tags=["health"])
def health() -> Dict[str, Any]:
    """
    Liveness check.

    Does not call the backend; reports whether the backend URL is configured.
    """
    return {
        "status": "ok",
        "uptime_seconds": round(time.time() - _APP_START_TIME, 1),
        "backend_configured": MedusaConfig.get_url() is not None,
    }


@app.get("/")
def root() -> Dict[str, str]:
    return {"name": "Medusa Storefront API", "docs_url": "/docs"}
