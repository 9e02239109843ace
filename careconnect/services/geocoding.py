# SPDX-License-Identifier: Apache-2.0

"""
Geocoding seam for cause locations.

The platform stores whatever a geocoder returns without validating it.
Deployments plug in a real provider by subclassing `Geocoder`.
"""

import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]


class GeocodingError(Exception):
    """Raised by a geocoder when the provider cannot be reached."""
    pass


class Geocoder:
    """Resolves free-text locations to (latitude, longitude)."""

    def geocode(self, location: str) -> Optional[Coordinates]:
        raise NotImplementedError


class NullGeocoder(Geocoder):
    """Geocoder used when no provider is configured; never resolves."""

    def geocode(self, location: str) -> Optional[Coordinates]:
        logger.debug("No geocoder configured, storing location without coordinates")
        return None


def resolve_coordinates(geocoder: Geocoder, location: str) -> Optional[Coordinates]:
    """Geocode a location, treating provider failures as an unknown position."""
    try:
        return geocoder.geocode(location)
    except GeocodingError as e:
        logger.warning(f"Geocoding failed for location: {str(e)}")
        return None
