# location.py
"""
Geocoding helpers for RentWise.

- Uses OpenStreetMap Nominatim via geopy.
- geocode_address(): typed search text -> formatted address + coordinates.
- reverse_geocode(): map click / marker drag coordinates -> formatted address.
- Geocoder failures are logged and reported as "not found" (None).

NOTE: Nominatim allows about one request per second per application.
"""

import logging
from typing import Any, Dict, Optional

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

logger = logging.getLogger(__name__)

_geolocators: Dict[str, Nominatim] = {}


def _get_geolocator(user_agent: str) -> Nominatim:
    if user_agent not in _geolocators:
        # user_agent required by Nominatim policy
        _geolocators[user_agent] = Nominatim(user_agent=user_agent)
    return _geolocators[user_agent]


def _to_place(loc: Any) -> Optional[Dict[str, Any]]:
    if not loc or not getattr(loc, "address", None):
        return None
    return {"address": loc.address, "lat": loc.latitude, "lng": loc.longitude}


def geocode_address(query: str, user_agent: str, language: str = "en") -> Optional[Dict[str, Any]]:
    """Resolve search text to {address, lat, lng}, or None when nothing matches."""
    if not query or not query.strip():
        return None
    geo = _get_geolocator(user_agent)
    try:
        loc = geo.geocode(query.strip(), language=language)
    except GeopyError as e:
        logger.warning("Geocoding failed for %r: %s", query, e)
        return None
    return _to_place(loc)


def reverse_geocode(lat: float, lng: float, user_agent: str, language: str = "en") -> Optional[Dict[str, Any]]:
    geo = _get_geolocator(user_agent)
    try:
        loc = geo.reverse((lat, lng), language=language, exactly_one=True)
    except GeopyError as e:
        logger.warning("Reverse geocoding failed for (%s, %s): %s", lat, lng, e)
        return None
    return _to_place(loc)
