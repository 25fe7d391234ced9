"""Search request and result types."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from autoagent_mcp.constants import CONDITIONS, MAX_RADIUS_MILES
from autoagent_mcp.errors import ValidationError

# wire name -> attribute name; snake_case spellings are accepted too
_PARAM_ALIASES: dict[str, str] = {
    "location": "location",
    "condition": "condition",
    "maxPrice": "max_price",
    "max_price": "max_price",
    "make": "make",
    "model": "model",
    "radiusMiles": "radius_miles",
    "radius_miles": "radius_miles",
}


@dataclass(frozen=True)
class SearchParams:
    location: str
    condition: str
    max_price: int | float | None = None
    make: str | None = None
    model: str | None = None
    radius_miles: int | float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form with absent optionals omitted."""
        data: dict[str, Any] = {"location": self.location, "condition": self.condition}
        if self.max_price is not None:
            data["maxPrice"] = self.max_price
        if self.make is not None:
            data["make"] = self.make
        if self.model is not None:
            data["model"] = self.model
        if self.radius_miles is not None:
            data["radiusMiles"] = self.radius_miles
        return data


@dataclass(frozen=True)
class Dealer:
    name: str
    address: str | None = None
    lat: float | None = None
    lng: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.address is not None:
            data["address"] = self.address
        if self.lat is not None:
            data["lat"] = self.lat
        if self.lng is not None:
            data["lng"] = self.lng
        return data


@dataclass(frozen=True)
class Vehicle:
    id: str
    year: int
    make: str
    model: str
    price: float
    dealer: Dealer
    mileage: int | None = None
    image_url: str | None = None
    features: list[str] = field(default_factory=list)
    vin: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "year": self.year,
            "make": self.make,
            "model": self.model,
            "price": self.price,
        }
        if self.mileage is not None:
            data["mileage"] = self.mileage
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        data["features"] = list(self.features)
        if self.vin is not None:
            data["vin"] = self.vin
        data["dealer"] = self.dealer.to_dict()
        return data


@dataclass(frozen=True)
class SearchResult:
    vehicles: tuple[Vehicle, ...]
    total_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicles": [v.to_dict() for v in self.vehicles],
            "totalCount": self.total_count,
        }


def _coerce_number(name: str, value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name}: expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name}: must be a finite number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _optional_text(name: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name}: expected a string, got {value!r}")
    stripped = value.strip()
    return stripped or None


def parse_search_params(raw: Any) -> SearchParams:
    """Validate raw tool arguments into :class:`SearchParams`.

    Unknown keys are ignored. Optional values that are ``None`` or blank
    strings are treated as absent.
    """
    if isinstance(raw, SearchParams):
        return raw
    if not isinstance(raw, dict):
        raise ValidationError("Invalid search parameters: expected an object")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        attr = _PARAM_ALIASES.get(key)
        if attr is not None and value is not None:
            values[attr] = value

    problems: list[str] = []

    location = values.get("location")
    if not isinstance(location, str) or not location.strip():
        problems.append("location: must be a non-empty string")
        location = ""
    else:
        location = location.strip()

    condition = values.get("condition")
    if isinstance(condition, str):
        condition = condition.strip().lower()
    if condition not in CONDITIONS:
        problems.append("condition: must be one of 'new', 'used'")

    max_price: int | float | None = None
    if "max_price" in values:
        try:
            max_price = _coerce_number("maxPrice", values["max_price"])
            if max_price <= 0:
                problems.append("maxPrice: must be positive")
        except ValidationError as exc:
            problems.append(str(exc))

    radius: int | float | None = None
    if "radius_miles" in values:
        try:
            radius = _coerce_number("radiusMiles", values["radius_miles"])
            if radius <= 0:
                problems.append("radiusMiles: must be positive")
            elif radius > MAX_RADIUS_MILES:
                problems.append(f"radiusMiles: must be at most {MAX_RADIUS_MILES}")
        except ValidationError as exc:
            problems.append(str(exc))

    make = model = None
    try:
        make = _optional_text("make", values.get("make"))
    except ValidationError as exc:
        problems.append(str(exc))
    try:
        model = _optional_text("model", values.get("model"))
    except ValidationError as exc:
        problems.append(str(exc))

    if problems:
        raise ValidationError(
            f"Invalid search parameters: {', '.join(problems)}",
            details={"problems": problems},
        )

    return SearchParams(
        location=location,
        condition=condition,
        max_price=max_price,
        make=make,
        model=model,
        radius_miles=radius,
    )
