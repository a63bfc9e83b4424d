"""Domain models for zp_listing.

Prices here are whole US dollars, straight from the listing source; they are
not token amounts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MAJOR_CITIES: tuple[str, ...] = (
    "Los Angeles, CA",
    "New York, NY",
    "Chicago, IL",
    "Houston, TX",
    "Phoenix, AZ",
    "Philadelphia, PA",
    "San Antonio, TX",
    "San Diego, CA",
    "Dallas, TX",
    "San Jose, CA",
    "Austin, TX",
    "Jacksonville, FL",
    "Fort Worth, TX",
    "Columbus, OH",
    "Charlotte, NC",
    "San Francisco, CA",
    "Indianapolis, IN",
    "Seattle, WA",
    "Denver, CO",
    "Boston, MA",
    "Miami, FL",
    "Atlanta, GA",
    "Detroit, MI",
    "Portland, OR",
    "Las Vegas, NV",
)


def listing_ref_from_zpid(zpid: int | str) -> str:
    """Zillow property id -> bytes32-style ref: 0x + zpid left-padded to 64 chars."""
    return "0x" + str(zpid).zfill(64)


class Listing(BaseModel):
    """One entry of the propertyExtendedSearch `props` array."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    zpid: int
    address: str = ""
    price: int = 0
    img_src: str | None = Field(default=None, alias="imgSrc")
    bedrooms: int | None = None
    bathrooms: float | None = None
    living_area: int | None = Field(default=None, alias="livingArea")
    home_type: str | None = Field(default=None, alias="homeType")
    latitude: float | None = None
    longitude: float | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "zpid": self.zpid,
            "address": self.address,
            "price": self.price,
            "imgSrc": self.img_src,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "livingArea": self.living_area,
            "homeType": self.home_type,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass
class RandomListing:
    city: str
    listing: Listing
    displayed_price: int
    adjustment: float  # fraction, e.g. -0.0712

    @property
    def actual_price(self) -> int:
        return self.listing.price

    @property
    def listing_ref(self) -> str:
        return listing_ref_from_zpid(self.listing.zpid)

    @property
    def adjustment_percent(self) -> str:
        return f"{self.adjustment * 100:.2f}"

    def to_payload(self) -> dict[str, Any]:
        """Flat public shape served by /api/random-listing."""
        return {
            "success": True,
            "city": self.city,
            "listing": self.listing.to_payload(),
            "contractData": {
                "listingId": self.listing_ref,
                "displayedPrice": self.displayed_price,
                "actualPrice": self.actual_price,
            },
            "priceInfo": {
                "actual": self.actual_price,
                "displayed": self.displayed_price,
                "adjustmentPercent": self.adjustment_percent,
            },
        }


@dataclass
class ListingRecord:
    """What the initializer stored for a listing_ref; the settler reads actual_price back."""

    listing_ref: str
    zpid: int
    city: str
    address: str
    actual_price: int
    displayed_price: int
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_random_listing(cls, rl: RandomListing) -> "ListingRecord":
        return cls(
            listing_ref=rl.listing_ref,
            zpid=rl.listing.zpid,
            city=rl.city,
            address=rl.listing.address,
            actual_price=rl.actual_price,
            displayed_price=rl.displayed_price,
            payload=rl.listing.to_payload(),
        )


@dataclass
class InitializationReport:
    initialized: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
