"""Last destinations models."""

from __future__ import annotations

from pydantic import Field

from pyconnecteddrive.models._base import CdBaseModel


class Destination(CdBaseModel):
    lat: float = 0.0
    lon: float = 0.0
    country: str = ""
    city: str = ""
    street: str = ""
    street_number: str = ""
    type: str = ""
    created_at: str = ""

    @property
    def label(self) -> str:
        street = " ".join(part for part in (self.street, self.street_number) if part)
        return ", ".join(part for part in (street, self.city, self.country) if part) or "-"


class DestinationContainer(CdBaseModel):
    destinations: list[Destination] = Field(default_factory=list)
