"""
Geocoding and solar-resource lookups for a picked location.

Forward/reverse geocoding comes from OpenStreetMap Nominatim, irradiance and
temperature from the NASA POWER daily point API. Provider failures surface as
``GeoLookupError``; ``resolve_picked_location`` turns them into warnings and
falls back to the static state table so the wizard can always proceed.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date

import numpy as np
import requests
import streamlit as st

from solar_ppa_engine.assessment_models import ValidationError
from solar_ppa_engine.solar_calculator_logic import get_state_irradiance
from solar_ppa_engine.utils import NIGERIA_BOUNDS, NIGERIAN_STATES, round_half_up

NOMINATIM_SEARCH_ENDPOINT = "https://nominatim.openstreetmap.org/search"
NOMINATIM_REVERSE_ENDPOINT = "https://nominatim.openstreetmap.org/reverse"
NASA_POWER_DAILY_ENDPOINT = "https://power.larc.nasa.gov/api/temporal/daily/point"
REQUEST_TIMEOUT_SECONDS = 10
NASA_POWER_FILL_VALUE = -999.0
MIN_SEARCH_QUERY_LENGTH = 3

# Nominatim's usage policy requires an identifying User-Agent; the app may override it from secrets.
NOMINATIM_USER_AGENT_HOLDER = {"user_agent": "NigeriaSolarPPAValidator/1.0"}

# Alternative spellings found in provider addresses
STATE_ALIASES = {
    "Federal Capital Territory": "FCT",
    "Abuja": "FCT",
    "Nassarawa": "Nasarawa",
}

geo_logger = logging.getLogger('geo_lookup')


class GeoLookupError(Exception):
    """A geocoding or irradiance provider could not answer."""


class NetworkError(GeoLookupError):
    """Transport failure, timeout, HTTP error status or unreadable body."""


class NoResultsError(GeoLookupError):
    """The provider answered but had nothing usable for the request."""


@dataclass
class LocationPicked:
    """A point chosen on the map, by search, GPS or a quick-location button."""
    lat: float
    lng: float
    address: str | None = None
    state: str | None = None


@dataclass
class LocationLookupResult:
    address: str
    state: str
    coordinates: tuple
    irradiance: float
    temperature: float | None
    irradiance_source: str  # "nasa_power" or "state_table"
    warnings: list = field(default_factory=list)


# =========== Helpers ===========
def is_within_nigeria(lat, lng):
    return (NIGERIA_BOUNDS["min_lat"] <= lat <= NIGERIA_BOUNDS["max_lat"]
            and NIGERIA_BOUNDS["min_lng"] <= lng <= NIGERIA_BOUNDS["max_lng"])


def validate_picked_location(event: LocationPicked) -> None:
    if not is_within_nigeria(event.lat, event.lng):
        raise ValidationError(
            f"Location ({event.lat:.4f}, {event.lng:.4f}) is outside Nigeria. "
            "Please select a location within Nigeria."
        )


def extract_state_from_address(address):
    """
    Finds the state named in a free-text address.
    Provider addresses run from most to least specific, so the last state mentioned wins.
    Returns None when no state is recognised.
    """
    if not address:
        return None

    candidates = {name: name for name in NIGERIAN_STATES}
    candidates.update(STATE_ALIASES)

    best_state, best_pos = None, -1
    for name, state in candidates.items():
        # Word boundaries keep "Niger" from matching "Nigeria"
        for match in re.finditer(rf"\b{re.escape(name)}\b", address, flags=re.IGNORECASE):
            if match.start() > best_pos:
                best_state, best_pos = state, match.start()
    return best_state


def default_date_range(today=None):
    """The last complete calendar year, as NASA POWER YYYYMMDD strings."""
    year = (today or date.today()).year - 1
    return f"{year}0101", f"{year}1231"


def _mean_of_valid(values):
    """Mean of the numeric, non-fill values in a provider series, or None."""
    numbers = np.array(
        [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)],
        dtype=float,
    )
    valid = numbers[np.isfinite(numbers) & (numbers != NASA_POWER_FILL_VALUE)]
    if valid.size == 0:
        return None
    return float(valid.mean())


def _get_json(url, params):
    headers = {'User-Agent': NOMINATIM_USER_AGENT_HOLDER["user_agent"]}
    try:
        response = requests.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        geo_logger.warning(f"Request to {url} failed: {e}")
        raise NetworkError(f"Lookup service error: {e}") from e
    except ValueError as e:
        geo_logger.warning(f"Unreadable response from {url}: {e}")
        raise NetworkError(f"Lookup service returned an unreadable response: {e}") from e


# =========== Provider Calls ===========
@st.cache_data(ttl=3600, show_spinner=False)
def search_address(query, limit=5):
    """
    Forward search restricted to Nigeria.
    Returns a list of {lat, lng, display_name}; queries under 3 characters return [] without a call.
    """
    query = (query or "").strip()
    if len(query) < MIN_SEARCH_QUERY_LENGTH:
        return []

    params = {
        "q": f"{query}, Nigeria",
        "format": "json",
        "countrycodes": "ng",
        "limit": limit,
        "addressdetails": 1,
    }
    data = _get_json(NOMINATIM_SEARCH_ENDPOINT, params)
    if not data:
        raise NoResultsError(f"Address '{query}' not found by Nominatim.")

    try:
        results = [
            {"lat": float(item["lat"]), "lng": float(item["lon"]), "display_name": item.get("display_name", "")}
            for item in data
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise NoResultsError(f"Geocoding parsing error: {e}") from e

    geo_logger.info(f"Address search returned {len(results)} result(s).")
    return results


@st.cache_data(ttl=3600, show_spinner=False)
def reverse_geocode(lat, lng):
    """Returns {display_name, state} for a coordinate; `state` may be None."""
    params = {
        "lat": f"{lat:.6f}",
        "lon": f"{lng:.6f}",
        "format": "json",
        "addressdetails": 1,
    }
    data = _get_json(NOMINATIM_REVERSE_ENDPOINT, params)
    display_name = data.get("display_name") if isinstance(data, dict) else None
    if not display_name:
        reason = data.get("error") if isinstance(data, dict) else None
        raise NoResultsError(reason or f"No address found for ({lat:.4f}, {lng:.4f}).")

    address_parts = data.get("address") or {}
    state = extract_state_from_address(address_parts.get("state", "")) or extract_state_from_address(display_name)
    return {"display_name": display_name, "state": state}


@st.cache_data(ttl=3600, show_spinner=False)
def fetch_average_irradiance(lat, lng, date_range=None):
    """
    Average daily irradiance (kWh/m²/day) and 2 m air temperature (°C) over `date_range`.
    The renewable-energy community returns both series already in those units.
    """
    start, end = date_range or default_date_range()
    params = {
        "start": start,
        "end": end,
        "latitude": f"{lat:.6f}",
        "longitude": f"{lng:.6f}",
        "community": "RE",
        "parameters": "ALLSKY_SFC_SW_DWN,T2M",
        "format": "JSON",
    }
    data = _get_json(NASA_POWER_DAILY_ENDPOINT, params)

    try:
        parameter = data["properties"]["parameter"]
        irradiance_series = parameter["ALLSKY_SFC_SW_DWN"]
        temperature_series = parameter.get("T2M") or {}
    except (KeyError, TypeError) as e:
        raise NoResultsError("NASA POWER response is missing irradiance data.") from e

    irradiance = _mean_of_valid(irradiance_series.values())
    if irradiance is None:
        raise NoResultsError("NASA POWER returned no valid irradiance values for this point.")
    temperature = _mean_of_valid(temperature_series.values())

    return {
        "irradiance": round_half_up(irradiance, 2),
        "temperature": round_half_up(temperature, 1) if temperature is not None else None,
    }


class GeoLookupAdapter:
    """
    The lookup contract the wizard consumes. Any provider exposing the same
    three methods (and raising GeoLookupError) can be swapped in.
    """

    def search(self, query, limit=5):
        return search_address(query, limit)

    def reverse(self, lat, lng):
        return reverse_geocode(lat, lng)

    def irradiance(self, lat, lng, date_range=None):
        return fetch_average_irradiance(lat, lng, date_range)


# =========== Location Resolution ===========
def resolve_picked_location(event: LocationPicked, adapter, date_range=None) -> LocationLookupResult:
    """
    Turns a picked point into everything the location step records.
    Raises ValidationError for points outside Nigeria; provider failures only add warnings.
    """
    validate_picked_location(event)
    warnings = []

    address = event.address
    state = event.state
    if not address:
        try:
            reverse = adapter.reverse(event.lat, event.lng)
            address = reverse["display_name"]
            state = state or reverse["state"]
        except GeoLookupError as e:
            geo_logger.warning(f"Reverse geocoding failed for ({event.lat}, {event.lng}): {e}")
            warnings.append(f"Could not look up the address for this point ({e}). You can still continue.")

    address = address or f"{event.lat:.4f}, {event.lng:.4f}"
    state = state or extract_state_from_address(address) or ""

    try:
        power = adapter.irradiance(event.lat, event.lng, date_range)
        irradiance, temperature, source = power["irradiance"], power["temperature"], "nasa_power"
    except GeoLookupError as e:
        geo_logger.warning(f"Irradiance lookup failed for ({event.lat}, {event.lng}): {e}")
        irradiance, temperature, source = get_state_irradiance(state), None, "state_table"
        warnings.append(
            "Satellite irradiance data is unavailable right now, so the state average is used. "
            "Pick the location again later to retry."
        )

    return LocationLookupResult(
        address=address,
        state=state,
        coordinates=(event.lat, event.lng),
        irradiance=irradiance,
        temperature=temperature,
        irradiance_source=source,
        warnings=warnings,
    )
