"""
Session-aware Medusa storefront client.

StorefrontClient mediates every call a storefront makes to the Medusa store API
while handling one inbound web request:
- handle_request() bootstraps a StorefrontContext from the browser's cookies:
  it checks the session (sid cookie) and resolves the open cart (cartid cookie)
- every backend call re-attaches the current session as "Cookie: connect.sid=..."
- auth calls read the rotated session cookie back from the backend and re-issue
  the browser's sid cookie with the backend's expiry
- cart creation, resolution failures and checkout keep the cartid cookie and
  the context's cart_id in step

Error policy: nothing raises past this class. Every method returns a Result;
preconditions (missing cart, missing user, empty required argument) fail before
any network call. Transport, status and parse failures are folded into the
Result's reason.

Example:
    client = StorefrontClient("http://localhost:9000", ClientOptions(persistent_cart=True))
    context = client.handle_request(CookieJar(request.cookies, response))
    products = client.get_products({"limit": 12, "expand": "variants,variants.prices"})
    if products:
        render(products.data)
"""

import json
import logging
from datetime import datetime, timezone
from http.cookiejar import Cookie
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

import requests
from pydantic import BaseModel

from .context import StorefrontContext
from .cookies import (
    BACKEND_SESSION_COOKIE,
    CART_COOKIE,
    CART_COOKIE_MAX_AGE,
    SESSION_COOKIE,
    CookieJar,
    cookie_max_age,
)
from .fetch import Fetcher
from .models import Payload, dump_payload
from .options import ClientOptions
from .result import Failure, Result
from .utils.query import build_query, encode_component, filtered_values

logger = logging.getLogger(__name__)

ListingOptions = Optional[Union[Mapping[str, Any], BaseModel]]


class StorefrontClient:
    """
    Client for the Medusa store API bound to one backend URL.

    The instance holds configuration only and is safe to share between
    requests; all per-customer state lives in the StorefrontContext and
    CookieJar passed into each call.

    Args:
        url: Backend base URL, e.g. "https://shop.example.com"
        options: ClientOptions (or a dict of them)
        fetcher: HTTP helper; built from options when omitted
        clock: Returns the current time as an aware datetime (cookie expiry math)

    Raises:
        ValueError: If url is empty
    """

    def __init__(
        self,
        url: str,
        options: Optional[Union[ClientOptions, Dict[str, Any]]] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not url:
            raise ValueError("Medusa backend URL is required")
        if isinstance(options, dict):
            options = ClientOptions(**options)
        self.url = url.rstrip("/")
        self.options = options or ClientOptions()
        self.headers: Dict[str, str] = dict(self.options.headers)
        self.persistent_cart = self.options.persistent_cart
        self.fetcher = fetcher or Fetcher(
            retry=self.options.retry,
            timeout=self.options.timeout,
            logger=self.options.logger,
            log_format=self.options.log_format,
            log_level=self.options.log_level,
            excluded_paths=self.options.excluded_paths,
            limited_paths=self.options.limited_paths,
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def query(
        self,
        path: str,
        context: Optional[StorefrontContext] = None,
        method: str = "GET",
        body: Optional[Payload] = None,
        log_level: Optional[str] = None,
    ) -> Optional[requests.Response]:
        """
        Send one request to the backend.

        Static headers are copied first, then the session cookie (when the
        context carries one) and a JSON content type (when there is a body).

        Returns:
            The response for any HTTP status, or None on a transport failure
        """
        headers = dict(self.headers)
        if context is not None and context.sid:
            headers["Cookie"] = f"{BACKEND_SESSION_COOKIE}={context.sid}"
        payload = dump_payload(body)
        if payload:
            headers["Content-Type"] = "application/json"

        try:
            return self.fetcher.query(
                url=f"{self.url}{path}",
                method=method,
                headers=headers,
                body=json.dumps(payload) if payload else None,
                log_level=log_level,
            )
        except requests.RequestException as e:
            logger.warning("Storefront request %s %s failed: %s", method, path, e)
            return None

    @staticmethod
    def _read_json(response: Optional[requests.Response]) -> Result:
        """Result holding the parsed JSON object of a successful response."""
        if response is None:
            return Result.failure(Failure.TRANSPORT)
        if not response.ok:
            return Result.failure(Failure.STATUS)
        try:
            data = response.json()
        except ValueError:
            return Result.failure(Failure.PARSE)
        if not isinstance(data, dict):
            return Result.failure(Failure.PARSE)
        return Result.success(data)

    def _payload(self, response: Optional[requests.Response], key: str) -> Result:
        result = self._read_json(response)
        if not result:
            return result
        value = result.data.get(key)
        if value is None:
            return Result.failure(Failure.NOT_FOUND)
        return Result.success(value)

    def _fetch(self, path: str, key: str, context: Optional[StorefrontContext] = None, method: str = "GET",
               body: Optional[Payload] = None) -> Result:
        return self._payload(self.query(path, context, method, body), key)

    @staticmethod
    def _first(result: Result) -> Result:
        if not result:
            return result
        if isinstance(result.data, list) and result.data:
            return Result.success(result.data[0])
        return Result.failure(Failure.NOT_FOUND)

    def _status(self, path: str, context: Optional[StorefrontContext] = None, method: str = "GET",
                body: Optional[Payload] = None, log_level: Optional[str] = None) -> Result:
        response = self.query(path, context, method, body, log_level)
        if response is None:
            return Result.failure(Failure.TRANSPORT)
        if not response.ok:
            return Result.failure(Failure.STATUS)
        return Result.success()

    # ------------------------------------------------------------------
    # Request bootstrap and session
    # ------------------------------------------------------------------

    def handle_request(self, cookies: CookieJar) -> StorefrontContext:
        """
        Build the per-request context from the browser's cookies.

        Called once per inbound request, before any other client call. The
        session check runs first because the persistent-cart lookup needs the
        resolved user.

        Args:
            cookies: Cookie jar of the inbound request

        Returns:
            Populated StorefrontContext (sid, user, cart_id, cart)
        """
        context = StorefrontContext()

        context.sid = cookies.get(SESSION_COOKIE) or ""
        if context.sid:
            context.user = self.get_customer(context, cookies).data

        context.cart_id = cookies.get(CART_COOKIE) or ""
        cart = self.get_cart(context, cookies).data
        context.cart_id = cart.get("id", "") if cart else ""
        context.cart = cart

        logger.debug("Storefront context resolved: %s", context.to_dict())
        return context

    def parse_auth_cookie(
        self, response_cookies: Optional[Iterable[Cookie]], context: StorefrontContext, cookies: CookieJar
    ) -> bool:
        """
        Copy the backend session cookie into the context and the browser's sid cookie.

        The backend's absolute expiry is turned into a relative max-age,
        floor(expires - now) in seconds.

        Args:
            response_cookies: Cookies set by an auth response (requests' response.cookies)
            context: Request context to update
            cookies: Cookie jar to write the sid cookie to

        Returns:
            True if a session cookie was found and stored, False otherwise
        """
        # iterate rather than .get(): the jar may hold the name for several paths
        for cookie in response_cookies or []:
            if cookie.name != BACKEND_SESSION_COOKIE or not cookie.value:
                continue
            context.sid = cookie.value
            cookies.set(SESSION_COOKIE, cookie.value, max_age=cookie_max_age(cookie, self.clock()))
            return True
        logger.debug("No %s cookie in auth response", BACKEND_SESSION_COOKIE)
        return False

    def get_customer(self, context: StorefrontContext, cookies: CookieJar) -> Result:
        """Logged-in customer for the context's session; also picks up a rotated session cookie."""
        response = self.query("/store/auth", context)
        result = self._payload(response, "customer")
        if response is not None and response.ok:
            self.parse_auth_cookie(response.cookies, context, cookies)
        return result

    def login(self, context: StorefrontContext, cookies: CookieJar, email: str, password: str) -> Result:
        """
        Log a customer in and store the new session.

        Returns:
            Success when the backend accepted the credentials and issued a
            session cookie; context.user is set from the response when present
        """
        if not email or not password:
            return Result.failure(Failure.PRECONDITION)

        response = self.query(
            "/store/auth", context, "POST", {"email": email, "password": password}, log_level="silent"
        )
        if response is None:
            return Result.failure(Failure.TRANSPORT)
        if not response.ok:
            return Result.failure(Failure.STATUS)
        if not self.parse_auth_cookie(response.cookies, context, cookies):
            return Result.failure(Failure.COOKIE)

        customer = self._payload(response, "customer")
        if customer:
            context.user = customer.data
        return Result.success()

    def logout(self, context: StorefrontContext, cookies: CookieJar) -> Result:
        """End the backend session; local session state is cleared only if the backend confirms."""
        result = self._status("/store/auth", context, "DELETE")
        if not result:
            return result
        context.sid = ""
        context.user = None
        cookies.delete(SESSION_COOKIE)
        return Result.success()

    def register(self, context: StorefrontContext, cookies: CookieJar, user: Payload) -> Result:
        """
        Create a customer account, then log it in.

        Success reflects the account creation; a failed follow-up login leaves
        the customer registered but anonymous.
        """
        payload = dump_payload(user)
        email, password = payload.get("email"), payload.get("password")
        if not email or not password:
            return Result.failure(Failure.PRECONDITION)

        result = self._status("/store/customers", context, "POST", payload, log_level="silent")
        if not result:
            return result
        if not self.login(context, cookies, email, password):
            logger.info("Customer registered but automatic login failed")
        return Result.success()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def get_search_results(self, q: str) -> Result:
        """Search hits for q; an empty query succeeds with no hits."""
        if not q:
            return Result.success([])
        return self._fetch("/store/products/search", "hits", method="POST", body={"q": q})

    def get_products(self, options: ListingOptions = None) -> Result:
        return self._fetch(build_query("/store/products", options), "products")

    def get_collections(self, options: ListingOptions = None) -> Result:
        return self._fetch(build_query("/store/collections", options), "collections")

    def get_collection(self, handle: str) -> Result:
        if not handle:
            return Result.failure(Failure.PRECONDITION)
        return self._first(self._fetch(f"/store/collections?handle[]={encode_component(handle)}", "collections"))

    def get_collection_products(self, collection_id: str, options: ListingOptions = None) -> Result:
        if not collection_id:
            return Result.failure(Failure.PRECONDITION)
        base = f"/store/products?collection_id[]={encode_component(collection_id)}"
        return self._fetch(build_query(base, options), "products")

    def get_product(self, handle: str) -> Result:
        """
        Product by handle, with each option's distinct values added as "filtered_values".

        A handle that matches no product is a NOT_FOUND failure.
        """
        if not handle:
            return Result.failure(Failure.PRECONDITION)
        result = self._first(self._fetch(f"/store/products?handle={encode_component(handle)}", "products"))
        if not result:
            return result
        product = result.data
        if not isinstance(product, dict):
            return Result.failure(Failure.PARSE)
        for option in product.get("options") or []:
            option["filtered_values"] = filtered_values(option)
        return Result.success(product)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def get_reviews(self, product_id: str) -> Result:
        # TODO: accept page/limit/sort/order listing options like get_products()
        if not product_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(f"/store/products/{product_id}/reviews", "product_reviews")

    def get_customer_reviews(self, context: StorefrontContext) -> Result:
        if not context.user:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch("/store/customers/me/reviews", "product_reviews", context)

    def get_review(self, review_id: str) -> Result:
        if not review_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(f"/store/reviews/{review_id}", "product_review")

    def add_review(self, context: StorefrontContext, review: Payload) -> Result:
        payload = dump_payload(review)
        if not payload.get("product_id"):
            return Result.failure(Failure.PRECONDITION)
        return self._status(f"/store/products/{payload['product_id']}/reviews", context, "POST", payload)

    def update_review(self, context: StorefrontContext, review_id: str, review: Payload) -> Result:
        if not review_id:
            return Result.failure(Failure.PRECONDITION)
        return self._status(f"/store/reviews/{review_id}", context, "POST", review)

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def _store_cart(self, context: StorefrontContext, cookies: CookieJar, cart_id: str) -> None:
        context.cart_id = cart_id
        cookies.set(CART_COOKIE, cart_id, max_age=CART_COOKIE_MAX_AGE)

    def _clear_cart(self, context: StorefrontContext, cookies: CookieJar) -> None:
        # cart id and cookie are always cleared together
        context.cart_id = ""
        context.cart = None
        cookies.delete(CART_COOKIE)

    def get_cart(self, context: StorefrontContext, cookies: CookieJar) -> Result:
        """
        Resolve the customer's open cart.

        - With a cart id: fetch it. A completed cart (completed_at set, e.g.
          checked out on another device) counts as not found.
        - Without one: when persistent carts are enabled and a customer is
          logged in, recover the customer's cart and issue the cart cookie.

        When a cart id was present but did not resolve, the context cart id and
        the cart cookie are both cleared.
        """
        if context.cart_id:
            result = self._fetch(f"/store/carts/{context.cart_id}", "cart", context)
            if result and (not isinstance(result.data, dict) or result.data.get("completed_at")):
                result = Result.failure(Failure.NOT_FOUND)
            if not result:
                logger.info("Cart %s did not resolve (%s), clearing it", context.cart_id, result.reason.value)
                self._clear_cart(context, cookies)
            return result

        if self.persistent_cart and context.user:
            result = self._fetch("/store/customers/me/cart", "cart", context)
            if result and isinstance(result.data, dict) and result.data.get("id"):
                self._store_cart(context, cookies, result.data["id"])
                return result
            return Result.failure(result.reason if not result else Failure.NOT_FOUND)

        return Result.failure(Failure.PRECONDITION)

    def add_to_cart(self, context: StorefrontContext, cookies: CookieJar, variant_id: str, quantity: int = 1) -> Result:
        """
        Add a variant to the open cart, creating a cart when needed.

        The existing cart is tried first. If there is none, or appending fails
        for any reason, a new cart seeded with the line item is created and its
        id stored in the context and the cart cookie.
        """
        if not variant_id:
            return Result.failure(Failure.PRECONDITION)
        line_item = {"variant_id": variant_id, "quantity": quantity}

        if context.cart_id:
            result = self._fetch(f"/store/carts/{context.cart_id}/line-items", "cart", context, "POST", line_item)
            if result:
                return result
            logger.info("Adding to cart %s failed (%s), creating a new cart", context.cart_id, result.reason.value)

        result = self._fetch("/store/carts", "cart", context, "POST", {"items": [line_item]})
        if not result:
            return result
        if not isinstance(result.data, dict) or not result.data.get("id"):
            return Result.failure(Failure.PARSE)
        self._store_cart(context, cookies, result.data["id"])
        return result

    def remove_from_cart(self, context: StorefrontContext, item_id: str) -> Result:
        if not context.cart_id or not item_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(f"/store/carts/{context.cart_id}/line-items/{item_id}", "cart", context, "DELETE")

    def update_cart(self, context: StorefrontContext, item_id: str, quantity: int) -> Result:
        if not context.cart_id or not item_id or not quantity:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(
            f"/store/carts/{context.cart_id}/line-items/{item_id}", "cart", context, "POST", {"quantity": quantity}
        )

    def update_cart_billing_address(self, context: StorefrontContext, address: Payload) -> Result:
        if not context.cart_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(
            f"/store/carts/{context.cart_id}", "cart", context, "POST", {"billing_address": dump_payload(address)}
        )

    def update_cart_shipping_address(self, context: StorefrontContext, address: Payload) -> Result:
        if not context.cart_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(
            f"/store/carts/{context.cart_id}", "cart", context, "POST", {"shipping_address": dump_payload(address)}
        )

    def get_shipping_options(self, context: StorefrontContext) -> Result:
        if not context.cart_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(f"/store/shipping-options/{context.cart_id}", "shipping_options", context)

    def select_shipping_option(self, context: StorefrontContext, shipping_option_id: str) -> Result:
        if not context.cart_id or not shipping_option_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(
            f"/store/carts/{context.cart_id}/shipping-methods", "cart", context, "POST",
            {"option_id": shipping_option_id},
        )

    def create_payment_sessions(self, context: StorefrontContext) -> Result:
        if not context.cart_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(f"/store/carts/{context.cart_id}/payment-sessions", "cart", context, "POST")

    def select_payment_session(self, context: StorefrontContext, provider_id: str) -> Result:
        if not context.cart_id or not provider_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(
            f"/store/carts/{context.cart_id}/payment-session", "cart", context, "POST", {"provider_id": provider_id}
        )

    def complete_cart(self, context: StorefrontContext, cookies: CookieJar) -> Result:
        """
        Place the order for the open cart.

        The backend answers with a tagged result. Only {"type": "order"} is a
        placed order; any other tag (e.g. "cart" when payment still needs
        action) is a REJECTED failure. A placed order's cart is spent, so the
        cart id and cookie are cleared.
        """
        if not context.cart_id:
            return Result.failure(Failure.PRECONDITION)
        reply = self._read_json(self.query(f"/store/carts/{context.cart_id}/complete", context, "POST"))
        if not reply:
            return reply
        if reply.data.get("type") != "order":
            logger.info("Cart %s was not completed, backend returned type %r", context.cart_id, reply.data.get("type"))
            return Result.failure(Failure.REJECTED)
        self._clear_cart(context, cookies)
        return Result.success(reply.data.get("data"))

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def get_addresses(self, context: StorefrontContext) -> Result:
        if not context.user:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch("/store/customers/me/addresses", "addresses", context)

    def add_shipping_address(self, context: StorefrontContext, address: Payload) -> Result:
        if not context.user:
            return Result.failure(Failure.PRECONDITION)
        return self._status("/store/customers/me/addresses", context, "POST", {"address": dump_payload(address)})

    def update_shipping_address(self, context: StorefrontContext, address_id: str, address: Payload) -> Result:
        if not context.user or not address_id:
            return Result.failure(Failure.PRECONDITION)
        return self._status(f"/store/customers/me/addresses/{address_id}", context, "POST", address)

    def delete_address(self, context: StorefrontContext, address_id: str) -> Result:
        if not context.user or not address_id:
            return Result.failure(Failure.PRECONDITION)
        return self._status(f"/store/customers/me/addresses/{address_id}", context, "DELETE")

    def edit_customer(self, context: StorefrontContext, customer: Payload) -> Result:
        if not context.user:
            return Result.failure(Failure.PRECONDITION)
        return self._status("/store/customers/me", context, "POST", customer)

    def get_order(self, context: StorefrontContext, order_id: str) -> Result:
        if not order_id:
            return Result.failure(Failure.PRECONDITION)
        return self._fetch(f"/store/orders/{order_id}", "order", context)

    def request_reset_password(self, email: str) -> Result:
        if not email:
            return Result.failure(Failure.PRECONDITION)
        return self._status("/store/customers/password-token", method="POST", body={"email": email})

    def reset_password(self, email: str, password: str, token: str) -> Result:
        if not email or not password or not token:
            return Result.failure(Failure.PRECONDITION)
        return self._status(
            "/store/customers/password-reset", method="POST",
            body={"email": email, "password": password, "token": token},
            log_level="silent",
        )
