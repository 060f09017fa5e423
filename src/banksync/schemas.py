"""Pydantic schemas for Plaid transaction and account payloads.

The sync poller treats records as opaque dicts. These schemas are applied only
at the edges: when writing a completed sync to Parquet and when rendering
pass-through reads.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        extra="ignore",
        use_enum_values=True,
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )


def _enum_to_str(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    return str(v)


class LocationSchema(BaseSchema):
    """Schema for transaction location data."""

    address: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None
    lat: float | None = Field(None, ge=-90, le=90)
    lon: float | None = Field(None, ge=-180, le=180)
    store_number: str | None = None


class BalanceSchema(BaseSchema):
    """Schema for account balance information."""

    available: float | None = Field(None, description="Available balance")
    current: float | None = Field(None, description="Current balance")
    limit: float | None = Field(None, description="Credit limit or overdraft limit")
    iso_currency_code: str | None = Field(None, max_length=3)
    unofficial_currency_code: str | None = None
    last_updated_datetime: datetime | None = None


class AccountSchema(BaseSchema):
    """Schema for Plaid account data."""

    account_id: str = Field(..., description="Plaid account ID")
    balances: BalanceSchema
    mask: str | None = Field(None, max_length=4)
    name: str = Field(..., description="Account name")
    official_name: str | None = None
    persistent_account_id: str | None = None
    subtype: str | None = None
    type: str

    @field_validator("type", "subtype", mode="before")
    @classmethod
    def coerce_account_enums(cls, v: Any) -> Any:
        """Accept Plaid SDK enums or strings."""
        return _enum_to_str(v)


class TransactionSchema(BaseSchema):
    """Schema for an added or modified Plaid transaction."""

    transaction_id: str = Field(..., description="Plaid transaction ID")
    account_id: str = Field(..., description="Associated account ID")
    amount: Decimal = Field(..., description="Transaction amount")
    iso_currency_code: str | None = Field(None, max_length=3)
    unofficial_currency_code: str | None = None

    transaction_date: date = Field(..., description="Posted date", alias="date")
    authorized_date: date | None = None
    authorized_datetime: datetime | None = None
    transaction_datetime: datetime | None = Field(None, alias="datetime")

    name: str | None = None
    merchant_name: str | None = None
    original_description: str | None = None

    category: list[str] = Field(default_factory=list)
    personal_finance_category: dict[str, Any] | None = None

    payment_channel: str | None = None
    location: LocationSchema | None = None

    pending: bool = False
    pending_transaction_id: str | None = None
    logo_url: str | None = None
    website: str | None = None

    @field_validator("payment_channel", mode="before")
    @classmethod
    def coerce_payment_channel(cls, v: Any) -> Any:
        """Coerce Plaid SDK enums into strings."""
        return _enum_to_str(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:
        """Ensure category is a list of strings; Plaid may return None."""
        if v is None:
            return []
        if isinstance(v, list):
            items = cast(list[object], v)
            return [str(x) for x in items]
        return [str(v)]

    @field_validator("personal_finance_category", mode="before")
    @classmethod
    def coerce_personal_finance_category(cls, v: Any) -> Any:
        """Convert SDK PersonalFinanceCategory objects into dicts."""
        if v is None or isinstance(v, dict):
            return v
        to_dict = getattr(v, "to_dict", None)
        if callable(to_dict):
            converted = to_dict()
            return converted if isinstance(converted, dict) else None
        return None


class RemovedTransactionSchema(BaseSchema):
    """Schema for a transaction the feed reports as removed."""

    transaction_id: str
    account_id: str | None = None


def to_rows(schema: type[BaseSchema], records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Validate records against a schema and dump them as flat-ish rows."""
    return [schema.model_validate(r).model_dump(mode="python") for r in records]
