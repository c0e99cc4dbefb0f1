"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Town:
    id: Any
    name: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Town":
        return cls(id=payload.get("id"), name=payload.get("name") or "")


@dataclass(frozen=True)
class Street:
    id: Any
    name: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Street":
        return cls(id=payload.get("id"), name=payload.get("name") or "")


@dataclass(frozen=True)
class Address:
    id: Any
    street: str | None
    post_code: str | None
    locality: str | None
    country: str | None
    house_name: str | None = None
    house_no: str | None = None
    house_alpha: str | None = None
    flat_no: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Address":
        return cls(
            id=payload.get("id"),
            street=payload.get("street"),
            post_code=payload.get("postCode"),
            locality=payload.get("locality"),
            country=payload.get("country"),
            house_name=payload.get("houseName"),
            house_no=payload.get("houseNo"),
            house_alpha=payload.get("houseAlpha"),
            flat_no=payload.get("flatNo"),
        )


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class AggregatedRecord:
    address: Address
    geocode: GeocodeResult

    @property
    def id(self) -> Any:
        return self.address.id

    def to_dict(self) -> dict[str, Any]:
        """Upstream field names in output order; absent values stay ``None``."""
        return {
            "id": self.address.id,
            "houseName": self.address.house_name,
            "houseAlpha": self.address.house_alpha,
            "houseNo": self.address.house_no,
            "flatNo": self.address.flat_no,
            "street": self.address.street,
            "postCode": self.address.post_code,
            "locality": self.address.locality,
            "country": self.address.country,
            "latitude": self.geocode.latitude,
            "longitude": self.geocode.longitude,
        }
