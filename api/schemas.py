"""
Pydantic schemas for FastAPI request and response models.

This module defines the request bodies the storefront API accepts and the small
response envelopes it returns. Payloads that are forwarded to Medusa unchanged
(Address, User, Customer) are defined in storefront.models and reused as-is.

The schemas include:
- LoginRequest, PasswordTokenRequest, PasswordResetRequest: account auth bodies
- AddToCartRequest, UpdateLineItemRequest: cart line item bodies
- ShippingMethodRequest, PaymentSessionRequest: checkout step bodies
- ReviewInput: review body (product id comes from the path)
- SessionView, StatusResponse: response envelopes
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Customer login email")
    password: str = Field(..., min_length=1, description="Customer password")


class PasswordTokenRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Email of the account to reset")


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, description="New password")
    token: str = Field(..., min_length=1, description="Token from the password reset email")


class AddToCartRequest(BaseModel):
    """
    Input model for adding a variant to the cart.

    A cart is created on the fly when the customer does not have one yet.
    """
    variant_id: str = Field(..., min_length=1, description="Product variant id")
    quantity: int = Field(1, ge=1, description="Quantity to add")

    model_config = ConfigDict(
        json_schema_extra={"example": {"variant_id": "variant_01H8Z3K3Q2", "quantity": 2}}
    )


class UpdateLineItemRequest(BaseModel):
    quantity: int = Field(..., ge=1, description="New quantity for the line item")


class ShippingMethodRequest(BaseModel):
    option_id: str = Field(..., min_length=1, description="Shipping option id from /checkout/shipping-options")


class PaymentSessionRequest(BaseModel):
    provider_id: str = Field(..., min_length=1, description="Payment provider id, e.g. 'manual' or 'stripe'")


class ReviewInput(BaseModel):
    display_name: str = Field(..., min_length=1, description="Name shown next to the review")
    content: str = Field(..., min_length=1, description="Review text")
    rating: int = Field(..., ge=1, le=5, description="Star rating, 1-5")


class SessionView(BaseModel):
    """Storefront state of the current request, as resolved by the bootstrap."""
    logged_in: bool = Field(..., description="Whether a customer session was resolved")
    user: Optional[Dict[str, Any]] = Field(None, description="Logged-in customer, if any")
    cart_id: str = Field("", description="Id of the open cart, empty when none")
    cart: Optional[Dict[str, Any]] = Field(None, description="Open cart, if any")


class StatusResponse(BaseModel):
    success: bool = Field(..., description="Whether the backend accepted the operation")
