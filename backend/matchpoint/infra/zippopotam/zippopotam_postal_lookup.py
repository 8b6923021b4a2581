# comments in English; reST docstrings
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from matchpoint.services._shared.ports import CityInfo, PostalLookup

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ZippopotamPostalLookup(PostalLookup):
    """
    ZIP lookup over the public Zippopotam API (``GET {base_url}/{zip}``).

    Best effort only: network errors, timeouts, non-200 answers, malformed
    JSON and empty ``places`` all yield ``None``.

    :param base_url: Country endpoint, e.g. ``https://api.zippopotam.us/US``.
    :param timeout: Seconds before the request is abandoned.
    """

    base_url: str = "https://api.zippopotam.us/US"
    timeout: float = 5.0
    session: requests.Session = field(default_factory=requests.Session, repr=False)

    def lookup(self, zip_code: str) -> CityInfo | None:
        url = f"{self.base_url.rstrip('/')}/{zip_code}"
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("ZIP lookup failed for %s: %s", zip_code, exc)
            return None

        if resp.status_code != 200:
            log.info("ZIP lookup for %s returned HTTP %s", zip_code, resp.status_code)
            return None

        try:
            place = resp.json()["places"][0]
            city = str(place["place name"]).strip()
            state = str(place["state abbreviation"]).strip()
        except (ValueError, KeyError, IndexError, TypeError):
            log.warning("ZIP lookup for %s returned an unexpected payload", zip_code)
            return None

        if not city or not state:
            return None
        return CityInfo(city=city, state=state)
