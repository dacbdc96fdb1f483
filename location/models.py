"""Location data model: coordinates, fixes, and persisted location records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FixSource(str, Enum):
    GPS = "gps"
    CACHE = "cache"
    MANUAL = "manual"


@dataclass(frozen=True)
class Coordinate:
    """WGS-84 decimal degrees."""

    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class LocationFix:
    """One positioning result. ``timestamp`` is epoch seconds."""

    coordinate: Coordinate
    accuracy_meters: float
    timestamp: float
    source: FixSource = FixSource.GPS


class CachedLocation(BaseModel):
    """Last known fix persisted together with its display address."""

    address: str
    lat: float
    lng: float
    accuracy_meters: float = Field(ge=0)
    timestamp: float

    model_config = ConfigDict(extra="ignore")

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def age_seconds(self, now: float) -> float:
        return now - self.timestamp

    def to_fix(self) -> LocationFix:
        return LocationFix(
            coordinate=self.coordinate,
            accuracy_meters=self.accuracy_meters,
            timestamp=self.timestamp,
            source=FixSource.CACHE,
        )


class SavedLocation(BaseModel):
    """A user-named address such as home or work."""

    id: str
    kind: Literal["home", "work", "custom"] = "custom"
    label: str
    address: str
    lat: float
    lng: float

    model_config = ConfigDict(extra="ignore")

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


class RecentLocation(BaseModel):
    id: str
    title: str
    subtitle: str = ""
    address: str = ""
    lat: float | None = None
    lng: float | None = None
    timestamp: float = 0.0

    model_config = ConfigDict(extra="ignore")

    @property
    def coordinate(self) -> Coordinate | None:
        if self.lat is None or self.lng is None:
            return None
        return Coordinate(self.lat, self.lng)


__all__ = [
    "CachedLocation",
    "Coordinate",
    "FixSource",
    "LocationFix",
    "RecentLocation",
    "SavedLocation",
]
