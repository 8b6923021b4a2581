"""
matchpoint.services._shared.ports
=================================

Collection of *ports* (hexagonal interfaces) for the two external systems the
service layer talks to.

Modules
-------
- :mod:`identity_provider`:
    Defines :class:`~.IdentityProvider` (account creation and deletion,
    password verification, bearer-token checks) plus the in-memory double.

- :mod:`postal_lookup`:
    Defines :class:`~.PostalLookup` and :class:`~.CityInfo` for best-effort ZIP
    code resolution, plus a table-backed double.

Design Notes
------------
Concrete adapters (Firebase, Zippopotam) implement these interfaces under
``matchpoint.infra``.
"""

from __future__ import annotations

from .identity_provider import (
    IdentityAccount,
    IdentityProvider,
    InMemoryIdentityProvider,
    UnconfiguredIdentityProvider,
    VerifiedIdentity,
)
from .postal_lookup import CityInfo, PostalLookup, StaticPostalLookup

__all__ = [
    "IdentityAccount",
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "UnconfiguredIdentityProvider",
    "VerifiedIdentity",
    "CityInfo",
    "PostalLookup",
    "StaticPostalLookup",
]
