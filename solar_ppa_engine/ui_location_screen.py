import dataclasses

import pandas as pd
import streamlit as st

from solar_ppa_engine.assessment_models import ValidationError
from solar_ppa_engine.geo_lookup import GeoLookupError, LocationPicked
from solar_ppa_engine.solar_calculator_logic import get_state_irradiance
from solar_ppa_engine.utils import NIGERIA_MAP_CENTER, NIGERIAN_STATES, QUICK_LOCATIONS, TOOLTIPS


def handle_location_picked(wizard, event):
    """Feeds a LocationPicked event into the wizard and reports the outcome."""
    with st.spinner("Fetching address and solar data for this location..."):
        try:
            result = wizard.pick_location(event, st.session_state.geo_adapter)
        except ValidationError as e:
            st.error(str(e), icon="🌍")
            return None

    st.session_state.location_warnings = result.warnings
    if result.state in NIGERIAN_STATES:
        st.session_state.s1_state_override = result.state
    else:
        st.session_state.pop("s1_state_override", None)
    st.toast(f"Location selected. Solar irradiance: {result.irradiance} kWh/m²/day", icon="📍")
    return result


def _display_address_search(wizard):
    st.subheader("🔎 Search an Address")
    search_col, button_col = st.columns([4, 1], vertical_alignment="bottom")
    with search_col:
        query = st.text_input(
            "Address, district or city",
            placeholder="e.g. Garki District, Abuja",
            key="s1_address_query",
            help=TOOLTIPS.get("address_search"),
        )
    with button_col:
        search_pressed = st.button("Search", icon=":material/search:", width="stretch", key="s1_search_btn")

    if search_pressed:
        try:
            st.session_state.s1_search_results = st.session_state.geo_adapter.search(query)
            if not st.session_state.s1_search_results:
                st.info("Type at least 3 characters to search.", icon="💡")
        except GeoLookupError as e:
            st.session_state.s1_search_results = []
            st.warning(f"Address search is unavailable right now: {e}. Please try again.", icon="⚠️")

    results = st.session_state.get("s1_search_results") or []
    if results:
        labels = [r["display_name"] for r in results]
        choice = st.selectbox("Matching addresses", options=range(len(results)),
                              format_func=lambda i: labels[i], key="s1_search_choice")
        if st.button("Use This Address", type="primary", key="s1_use_search_result"):
            picked = results[choice]
            handle_location_picked(wizard, LocationPicked(picked["lat"], picked["lng"], address=picked["display_name"]))


def _display_quick_locations(wizard):
    st.subheader("⚡ Quick Locations")
    cols = st.columns(len(QUICK_LOCATIONS))
    for col, location in zip(cols, QUICK_LOCATIONS):
        with col:
            if st.button(location["name"], key=f"s1_quick_{location['name']}", width="stretch"):
                handle_location_picked(wizard, LocationPicked(
                    location["lat"], location["lng"],
                    address=f"{location['name']}, {location['state']} State, Nigeria",
                    state=location["state"],
                ))


def _display_coordinate_entry(wizard):
    with st.expander("📐 Enter Coordinates (GPS or map pin)"):
        coordinates = wizard.record.location.coordinates or NIGERIA_MAP_CENTER
        lat_col, lng_col = st.columns(2)
        with lat_col:
            lat = st.number_input("Latitude", min_value=-90.0, max_value=90.0, value=float(coordinates[0]),
                                  step=0.0001, format="%.4f", key="s1_lat", help=TOOLTIPS.get("coordinates"))
        with lng_col:
            lng = st.number_input("Longitude", min_value=-180.0, max_value=180.0, value=float(coordinates[1]),
                                  step=0.0001, format="%.4f", key="s1_lng")
        if st.button("Use These Coordinates", icon=":material/my_location:", key="s1_use_coordinates"):
            handle_location_picked(wizard, LocationPicked(lat, lng))


def _display_selected_location(wizard):
    record = wizard.record
    location = record.location
    st.map(pd.DataFrame({"lat": [location.coordinates[0]], "lon": [location.coordinates[1]]}), zoom=9)

    with st.container(border=True):
        st.success(f"**Selected:** {location.address}", icon="✅")
        info1, info2, info3 = st.columns(3)
        info1.metric("Coordinates", f"{location.coordinates[0]:.4f}, {location.coordinates[1]:.4f}")
        info2.metric("Solar Irradiance", f"{record.solar_data.irradiance_kwh_m2_day} kWh/m²/day")
        if record.solar_data.temperature_c is not None:
            info3.metric("Avg. Temperature", f"{record.solar_data.temperature_c:.1f} °C")

        if record.solar_data.irradiance_source == "nasa_power":
            st.caption("Irradiance: NASA POWER satellite average for the last full year.")
        else:
            st.caption("Irradiance: long-run state average.")

        if "s1_state_override" not in st.session_state and location.state in NIGERIAN_STATES:
            st.session_state.s1_state_override = location.state
        chosen_state = st.selectbox(
            "State", options=NIGERIAN_STATES, index=None, placeholder="Select the site's state",
            key="s1_state_override", help=TOOLTIPS.get("state_override"),
        )
        if chosen_state and chosen_state != location.state:
            partial = {"location": {"address": location.address, "state": chosen_state,
                                    "coordinates": location.coordinates}}
            # State averages follow the state; satellite values belong to the point itself
            if record.solar_data.irradiance_source == "state_table":
                partial["solar_data"] = dataclasses.replace(
                    record.solar_data, irradiance_kwh_m2_day=get_state_irradiance(chosen_state),
                    daily_output_kwh=0.0, annual_output_kwh=0.0,
                )
            wizard.update(partial)
            st.rerun()


def display_location_screen(wizard):
    st.info("Search for an address, choose a quick location or enter coordinates. "
            "We fetch the address and satellite solar data for the chosen point.", icon="🗺️")

    _display_address_search(wizard)
    _display_quick_locations(wizard)
    _display_coordinate_entry(wizard)

    for warning in st.session_state.get("location_warnings", []):
        st.warning(warning, icon="⚠️")

    if wizard.record.location.coordinates is not None:
        _display_selected_location(wizard)
    else:
        st.map(pd.DataFrame({"lat": [NIGERIA_MAP_CENTER[0]], "lon": [NIGERIA_MAP_CENTER[1]]}), zoom=5)
