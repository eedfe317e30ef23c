"""
Tests for cart resolution, cart mutations and checkout.

Covers the cart consistency rules: the context cart id and the cartid cookie
are created, replaced and cleared together.
"""

import json

import pytest
import requests

from storefront import CART_COOKIE, Address, CookieJar, Failure, StorefrontContext
from storefront.cookies import CART_COOKIE_MAX_AGE
from tests.conftest import make_response, requested, routed

ADDRESS = Address(
    first_name="Ada",
    last_name="Lovelace",
    address_1="1 Analytical Way",
    city="London",
    country_code="gb",
    province="Greater London",
    postal_code="N1 9GU",
)


class TestPreconditions:
    """Calls that need a cart fail before touching the network."""

    @pytest.mark.parametrize("call", [
        lambda c, ctx: c.remove_from_cart(ctx, "item_1"),
        lambda c, ctx: c.update_cart(ctx, "item_1", 2),
        lambda c, ctx: c.update_cart_billing_address(ctx, ADDRESS),
        lambda c, ctx: c.update_cart_shipping_address(ctx, ADDRESS),
        lambda c, ctx: c.get_shipping_options(ctx),
        lambda c, ctx: c.select_shipping_option(ctx, "so_1"),
        lambda c, ctx: c.create_payment_sessions(ctx),
        lambda c, ctx: c.select_payment_session(ctx, "manual"),
        lambda c, ctx: c.complete_cart(ctx, CookieJar()),
    ])
    def test_missing_cart_id(self, client, fetcher, call):
        result = call(client, StorefrontContext())
        assert result.ok is False
        assert result.data is None
        assert result.reason == Failure.PRECONDITION
        fetcher.query.assert_not_called()

    def test_missing_arguments(self, client, fetcher):
        context = StorefrontContext(cart_id="cart_1")
        assert client.update_cart(context, "item_1", 0).reason == Failure.PRECONDITION
        assert client.select_payment_session(context, "").reason == Failure.PRECONDITION
        assert client.add_to_cart(context, CookieJar(), "").reason == Failure.PRECONDITION
        fetcher.query.assert_not_called()


class TestGetCart:
    """Test cases for get_cart."""

    def test_completed_cart_is_discarded(self, client, fetcher):
        fetcher.query.return_value = make_response(
            200, {"cart": {"id": "cart_1", "completed_at": "2024-01-01T10:00:00Z"}}
        )
        context = StorefrontContext(cart_id="cart_1")
        cookies = CookieJar({CART_COOKIE: "cart_1"})

        result = client.get_cart(context, cookies)

        assert result.reason == Failure.NOT_FOUND
        assert context.cart_id == ""
        assert cookies.was_deleted(CART_COOKIE)

    def test_transport_failure_clears_cart(self, client, fetcher):
        fetcher.query.side_effect = requests.ConnectionError("down")
        context = StorefrontContext(cart_id="cart_1")
        cookies = CookieJar({CART_COOKIE: "cart_1"})

        assert client.get_cart(context, cookies).reason == Failure.TRANSPORT
        assert context.cart_id == ""
        assert cookies.get(CART_COOKIE) is None

    def test_open_cart_is_kept(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1", "completed_at": None}})
        context = StorefrontContext(cart_id="cart_1")
        cookies = CookieJar({CART_COOKIE: "cart_1"})

        assert client.get_cart(context, cookies).data["id"] == "cart_1"
        assert context.cart_id == "cart_1"
        assert not cookies.was_deleted(CART_COOKIE)

    def test_persistent_cart_needs_user(self, persistent_client, fetcher):
        result = persistent_client.get_cart(StorefrontContext(), CookieJar())
        assert result.reason == Failure.PRECONDITION
        fetcher.query.assert_not_called()

    def test_persistent_cart_missing(self, persistent_client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": None})
        context = StorefrontContext(sid="S", user={"id": "cus_1"})
        cookies = CookieJar()

        assert persistent_client.get_cart(context, cookies).reason == Failure.NOT_FOUND
        assert context.cart_id == ""
        assert cookies.get(CART_COOKIE) is None


class TestAddToCart:
    """Test cases for add_to_cart."""

    def test_appends_to_existing_cart(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1", "items": [{"id": "item_1"}]}})
        context = StorefrontContext(cart_id="cart_1")
        cookies = CookieJar()

        result = client.add_to_cart(context, cookies, "variant_1", 2)

        assert result.data["id"] == "cart_1"
        assert requested(fetcher) == [("POST", "/store/carts/cart_1/line-items")]
        assert json.loads(fetcher.query.call_args.kwargs["body"]) == {"variant_id": "variant_1", "quantity": 2}
        assert cookies.options(CART_COOKIE) is None

    def test_creates_cart_when_none(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_new"}})
        context = StorefrontContext()
        cookies = CookieJar()

        result = client.add_to_cart(context, cookies, "variant_1")

        assert result.ok is True
        assert requested(fetcher) == [("POST", "/store/carts")]
        assert json.loads(fetcher.query.call_args.kwargs["body"]) == {
            "items": [{"variant_id": "variant_1", "quantity": 1}]
        }
        assert context.cart_id == "cart_new"
        assert cookies.get(CART_COOKIE) == "cart_new"
        assert cookies.options(CART_COOKIE)["max_age"] == CART_COOKIE_MAX_AGE

    def test_falls_back_to_new_cart_on_network_error(self, client, fetcher):
        """Test that a failing append creates a new cart and replaces the cookie."""
        fetcher.query.side_effect = routed({
            ("POST", "/store/carts/cart_old/line-items"): requests.ConnectionError("reset by peer"),
            ("POST", "/store/carts"): make_response(200, {"cart": {"id": "cart_new"}}),
        })
        context = StorefrontContext(cart_id="cart_old")
        cookies = CookieJar({CART_COOKIE: "cart_old"})

        result = client.add_to_cart(context, cookies, "variant_1")

        assert result.data == {"id": "cart_new"}
        assert context.cart_id == "cart_new"
        assert cookies.get(CART_COOKIE) == "cart_new"
        assert requested(fetcher) == [("POST", "/store/carts/cart_old/line-items"), ("POST", "/store/carts")]

    def test_falls_back_when_cart_rejects_item(self, client, fetcher):
        fetcher.query.side_effect = routed({
            ("POST", "/store/carts/cart_old/line-items"): make_response(400, {"message": "cart completed"}),
            ("POST", "/store/carts"): make_response(200, {"cart": {"id": "cart_new"}}),
        })
        context = StorefrontContext(cart_id="cart_old")
        assert client.add_to_cart(context, CookieJar(), "variant_1").ok is True
        assert context.cart_id == "cart_new"

    def test_failed_creation_leaves_state_untouched(self, client, fetcher):
        fetcher.query.return_value = make_response(500, {})
        context = StorefrontContext(cart_id="cart_old")
        cookies = CookieJar({CART_COOKIE: "cart_old"})

        result = client.add_to_cart(context, cookies, "variant_1")

        assert result.reason == Failure.STATUS
        assert context.cart_id == "cart_old"
        assert cookies.get(CART_COOKIE) == "cart_old"
        assert cookies.options(CART_COOKIE) is None

    def test_created_cart_without_id(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"items": []}})
        context = StorefrontContext()
        assert client.add_to_cart(context, CookieJar(), "variant_1").reason == Failure.PARSE
        assert context.cart_id == ""


class TestCartMutations:
    """Test cases for line item and checkout step calls."""

    def test_update_line_item(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1"}})
        result = client.update_cart(StorefrontContext(cart_id="cart_1"), "item_1", 3)
        assert result.ok is True
        assert requested(fetcher) == [("POST", "/store/carts/cart_1/line-items/item_1")]
        assert json.loads(fetcher.query.call_args.kwargs["body"]) == {"quantity": 3}

    def test_remove_line_item(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1", "items": []}})
        result = client.remove_from_cart(StorefrontContext(cart_id="cart_1"), "item_1")
        assert result.data == {"id": "cart_1", "items": []}
        assert requested(fetcher) == [("DELETE", "/store/carts/cart_1/line-items/item_1")]
        assert fetcher.query.call_args.kwargs["body"] is None

    def test_shipping_address_drops_unset_fields(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1"}})
        client.update_cart_shipping_address(StorefrontContext(cart_id="cart_1"), ADDRESS)

        body = json.loads(fetcher.query.call_args.kwargs["body"])
        assert body["shipping_address"]["city"] == "London"
        assert "phone" not in body["shipping_address"]

    def test_billing_address(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1"}})
        client.update_cart_billing_address(StorefrontContext(cart_id="cart_1"), ADDRESS)
        assert "billing_address" in json.loads(fetcher.query.call_args.kwargs["body"])

    def test_shipping_options(self, client, fetcher):
        options = [{"id": "so_1", "name": "Standard"}]
        fetcher.query.return_value = make_response(200, {"shipping_options": options})
        result = client.get_shipping_options(StorefrontContext(cart_id="cart_1"))
        assert result.data == options
        assert requested(fetcher) == [("GET", "/store/shipping-options/cart_1")]

    def test_select_shipping_and_payment(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"cart": {"id": "cart_1"}})
        context = StorefrontContext(cart_id="cart_1")

        assert client.select_shipping_option(context, "so_1")
        assert client.create_payment_sessions(context)
        assert client.select_payment_session(context, "manual")

        assert requested(fetcher) == [
            ("POST", "/store/carts/cart_1/shipping-methods"),
            ("POST", "/store/carts/cart_1/payment-sessions"),
            ("POST", "/store/carts/cart_1/payment-session"),
        ]
        assert json.loads(fetcher.query.call_args.kwargs["body"]) == {"provider_id": "manual"}

    def test_missing_payload_key_is_not_found(self, client, fetcher):
        fetcher.query.return_value = make_response(200, {"unexpected": True})
        result = client.create_payment_sessions(StorefrontContext(cart_id="cart_1"))
        assert result.reason == Failure.NOT_FOUND

    def test_non_json_body_is_parse_failure(self, client, fetcher):
        fetcher.query.return_value = make_response(200, text="<html>bad gateway</html>")
        result = client.get_shipping_options(StorefrontContext(cart_id="cart_1"))
        assert result.reason == Failure.PARSE


class TestCompleteCart:
    """Test cases for complete_cart."""

    def test_order_placed(self, client, fetcher):
        order = {"id": "order_1", "display_id": 1}
        fetcher.query.return_value = make_response(200, {"type": "order", "data": order})
        context = StorefrontContext(cart_id="cart_1", cart={"id": "cart_1"})
        cookies = CookieJar({CART_COOKIE: "cart_1"})

        result = client.complete_cart(context, cookies)

        assert result.ok is True
        assert result.data == order
        assert requested(fetcher) == [("POST", "/store/carts/cart_1/complete")]
        # the spent cart is forgotten
        assert context.cart_id == ""
        assert context.cart is None
        assert cookies.was_deleted(CART_COOKIE)

    @pytest.mark.parametrize("tag", ["cart", "swap", None])
    def test_non_order_tag_is_rejected(self, client, fetcher, tag):
        fetcher.query.return_value = make_response(200, {"type": tag, "data": {"id": "cart_1"}})
        context = StorefrontContext(cart_id="cart_1")
        cookies = CookieJar({CART_COOKIE: "cart_1"})

        result = client.complete_cart(context, cookies)

        assert result.reason == Failure.REJECTED
        assert result.data is None
        assert context.cart_id == "cart_1"
        assert not cookies.was_deleted(CART_COOKIE)

    def test_transport_failure(self, client, fetcher):
        fetcher.query.side_effect = requests.Timeout("timed out")
        result = client.complete_cart(StorefrontContext(cart_id="cart_1"), CookieJar())
        assert result.reason == Failure.TRANSPORT
