"""
Request payload models for the Medusa store API.

These pydantic models describe the bodies the storefront client sends. Client
methods accept either a model instance or a plain dict; models are dumped with
exclude_none so optional fields the caller did not set are not sent.

The shapes follow the Medusa store API request schemas:
- User:     POST /store/customers
- Customer: POST /store/customers/me
- Address:  POST /store/customers/me/addresses, cart billing/shipping address
- Review:   POST /store/products/{id}/reviews, POST /store/reviews/{id}

Responses are not modelled: the client returns the backend's JSON payloads as-is.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Address(BaseModel):
    """Postal address used for customer address book entries and cart addresses."""
    first_name: str = Field(..., description="Recipient first name")
    last_name: str = Field(..., description="Recipient last name")
    phone: Optional[str] = Field(None, description="Contact phone number")
    company: Optional[str] = Field(None, description="Company name")
    address_1: str = Field(..., description="Street address, first line")
    address_2: Optional[str] = Field(None, description="Street address, second line")
    city: str = Field(..., description="City")
    country_code: str = Field(..., description="ISO 3166-1 alpha-2 country code (lowercase in Medusa)")
    province: str = Field(..., description="Province or state")
    postal_code: str = Field(..., description="Postal code")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")


class User(BaseModel):
    """New customer account, as sent to register()."""
    first_name: str = Field(..., description="Customer first name")
    last_name: str = Field(..., description="Customer last name")
    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Login password")
    phone: Optional[str] = Field(None, description="Contact phone number")


class Customer(BaseModel):
    """Partial customer profile update, as sent to edit_customer()."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    billing_address: Optional[Address] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class Review(BaseModel):
    """Product review written by a logged-in customer."""
    id: Optional[str] = Field(None, description="Review id (set by the backend)")
    product_id: str = Field(..., description="Reviewed product id")
    customer_id: Optional[str] = Field(None, description="Author id (set by the backend)")
    display_name: str = Field(..., description="Name shown next to the review")
    content: str = Field(..., description="Review text")
    rating: int = Field(..., ge=1, le=5, description="Star rating, 1-5")
    approved: Optional[bool] = Field(None, description="Moderation state (set by the backend)")


class ProductRetrievalOptions(BaseModel):
    """Listing options for /store/products, see storefront.utils.query.build_query."""
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)
    order: Optional[str] = Field(None, description="Sort field, prefix with '-' for descending")
    expand: Optional[str] = Field(None, description="Comma-separated relations to expand")
    fields: Optional[str] = Field(None, description="Comma-separated fields to return")
    query: Optional[str] = Field(None, description="Free-form query string fragment")

    model_config = ConfigDict(extra="ignore")


class CollectionRetrievalOptions(BaseModel):
    """Listing options for /store/collections."""
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(extra="ignore")


Payload = Union[BaseModel, Dict[str, Any]]


def dump_payload(payload: Optional[Payload]) -> Dict[str, Any]:
    """Convert a model or dict into the JSON body sent to the backend."""
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_none=True)
    return {
        key: value.model_dump(exclude_none=True) if isinstance(value, BaseModel) else value
        for key, value in payload.items()
        if value is not None
    }
