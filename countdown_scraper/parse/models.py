"""Data models for scraped and stored products."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware(value: datetime) -> datetime:
    # Stored dates without an offset were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UpsertDecision(str, Enum):
    """Outcome of reconciling one scraped product against storage."""

    NEW_PRODUCT = "new_product"
    PRICE_CHANGED = "price_changed"
    INFO_CHANGED = "info_changed"
    ALREADY_UP_TO_DATE = "already_up_to_date"
    FAILED = "failed"


class DatedPrice(BaseModel):
    """A single observed price."""

    model_config = ConfigDict(frozen=True)

    date: datetime
    price: float

    @field_validator("date")
    @classmethod
    def _aware_date(cls, value: datetime) -> datetime:
        return _ensure_aware(value)


class Product(BaseModel):
    """A product listing as scraped or as stored.

    Field ranges are not enforced here so that malformed candidates can be
    built and then rejected by ``validate_product``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Retailer product id (primary key)")
    name: str
    size: Optional[str] = None
    source_site: str = "countdown.co.nz"
    category: list[str] = Field(default_factory=list)
    current_price: float
    price_history: list[DatedPrice] = Field(default_factory=list)
    last_checked: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)
    unit_price: Optional[float] = None
    unit_name: Optional[str] = None
    original_unit_quantity: Optional[int] = None

    @field_validator("last_checked", "last_updated")
    @classmethod
    def _aware_timestamps(cls, value: datetime) -> datetime:
        return _ensure_aware(value)

    @field_validator("category", mode="before")
    @classmethod
    def _none_category(cls, value):
        return [] if value is None else value

    @field_validator("price_history", mode="before")
    @classmethod
    def _none_history(cls, value):
        return [] if value is None else value


class CategorisedUrl(BaseModel):
    """A scrape target and the category tags attached to everything found there."""

    url: str
    categories: list[str] = Field(default_factory=list)
