from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class CityInfo:
    """City and state resolved from a ZIP code."""

    city: str
    state: str

    @property
    def full_location(self) -> str:
        return f"{self.city}, {self.state}"


class PostalLookup(Protocol):
    """Port for ZIP code → city/state resolution.

    Implementations return ``None`` for every failure mode; a lookup must
    never raise.
    """

    def lookup(self, zip_code: str) -> CityInfo | None: ...


@dataclass
class StaticPostalLookup(PostalLookup):
    """Table-backed lookup used in tests; records the ZIPs it was asked for."""

    table: Mapping[str, CityInfo] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def lookup(self, zip_code: str) -> CityInfo | None:
        self.calls.append(zip_code)
        return self.table.get(zip_code)
