from streamlit.testing.v1 import AppTest
import sys, os

current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

from solar_ppa_engine.assessment_models import Location, SiteInfo
from solar_ppa_engine.wizard_state import WizardStateMachine

APP_PATH = os.path.join(project_root, "solar_ppa_app.py")


class OfflineGeoAdapter:
    """Answers every lookup from memory so the app never touches the network."""

    def search(self, query, limit=5):
        return [{"lat": 9.0331, "lng": 7.4893, "display_name": "Garki, Abuja, Federal Capital Territory, Nigeria"}]

    def reverse(self, lat, lng):
        return {"display_name": "Garki, Abuja, Federal Capital Territory, Nigeria", "state": "FCT"}

    def irradiance(self, lat, lng, date_range=None):
        return {"irradiance": 5.63, "temperature": 27.4}


def _next_button(at):
    return next((b for b in at.button if b.key == "nav_next"), None)


def test_first_step_is_location_with_next_disabled():
    """
    A fresh session opens on the Location step and cannot move on yet.
    """
    at = AppTest.from_file(APP_PATH)
    at.session_state.geo_adapter = OfflineGeoAdapter()
    at.run()

    assert not at.exception
    assert at.title[0].value == "☀️ NigeriaSolar PPA Validator"
    assert at.header[0].value == "Location"
    next_button = _next_button(at)
    assert next_button is not None
    assert next_button.disabled


def test_quick_location_unlocks_next_step():
    """
    Picking the Abuja quick location records the site and lets the user advance to Site Info.
    """
    at = AppTest.from_file(APP_PATH)
    at.session_state.geo_adapter = OfflineGeoAdapter()
    at.run()

    at.button(key="s1_quick_Abuja").click().run()
    wizard = at.session_state.wizard
    assert wizard.record.location.state == "FCT"
    assert wizard.record.solar_data.irradiance_source == "nasa_power"
    assert not _next_button(at).disabled

    _next_button(at).click().run()
    assert at.session_state.wizard.current == 1
    assert at.header[0].value == "Site Info"


def test_zero_roof_area_keeps_next_disabled():
    """
    On Site Info, clearing the roof area closes the gate again.
    """
    wizard = WizardStateMachine()
    wizard.update({"location": Location(address="Abuja, FCT, Nigeria", state="FCT", coordinates=(9.0765, 7.3986))})
    wizard.current = 1

    at = AppTest.from_file(APP_PATH)
    at.session_state.geo_adapter = OfflineGeoAdapter()
    at.session_state.wizard = wizard
    at.run()

    # Default roof area sizes a system straight away
    assert not _next_button(at).disabled

    at.number_input(key="s2_roof_area").set_value(0.0).run()
    assert _next_button(at).disabled
    assert at.session_state.wizard.record.site_info.system_size_kw == 0.0
    assert at.session_state.wizard.current == 1


def test_results_screen_renders_report_exports():
    """
    A completed record reaches Results, which shows the viability verdict and no Next button.
    """
    wizard = WizardStateMachine()
    wizard.update({
        "location": Location(address="Abuja, FCT, Nigeria", state="FCT", coordinates=(9.0765, 7.3986)),
        "site_info": SiteInfo(roof_area_m2=150, panel_efficiency_pct=20, system_size_kw=4.5),
        "solar_data": {"daily_output_kwh": 22.95, "annual_output_kwh": 8376.75, "irradiance_kwh_m2_day": 5.1},
        "savings": {"current_usage_kwh": 2000, "current_bill_ngn": 450000,
                    "monthly_savings_ngn": 30983, "annual_savings_ngn": 371796},
    })
    wizard.current = wizard.last_index

    at = AppTest.from_file(APP_PATH)
    at.session_state.geo_adapter = OfflineGeoAdapter()
    at.session_state.wizard = wizard
    at.run()

    assert not at.exception
    assert at.header[0].value == "Results"
    assert _next_button(at) is None
    assert any("Prepare PDF Report" in b.label for b in at.button)


def _abuja_wizard_on(step_index):
    """Wizard with the Abuja site already located, using the FCT state average of 5.1 kWh/m²/day."""
    wizard = WizardStateMachine()
    wizard.update({"location": Location(address="Abuja, FCT, Nigeria", state="FCT", coordinates=(9.0765, 7.3986))})
    wizard.current = step_index
    return wizard


def test_presets_carry_abuja_site_through_to_results():
    """
    Medium roof and commercial usage presets, 4 of 5 mandatory items ticked, Next pressed at every step.
    """
    at = AppTest.from_file(APP_PATH)
    at.session_state.geo_adapter = OfflineGeoAdapter()
    at.session_state.wizard = _abuja_wizard_on(1)
    at.run()

    # Site Info
    at.button(key="s2_preset_medium").click().run()
    assert at.session_state.wizard.record.site_info.system_size_kw == 4.5
    _next_button(at).click().run()

    # Solar Potential
    assert at.header[0].value == "Solar Potential"
    solar_data = at.session_state.wizard.record.solar_data
    assert solar_data.irradiance_source == "state_table"
    assert solar_data.daily_output_kwh == 22.95
    _next_button(at).click().run()

    # Savings
    assert at.header[0].value == "Savings"
    at.button(key="s4_preset_commercial").click().run()
    assert at.session_state.wizard.record.savings.monthly_savings_ngn == 30983
    _next_button(at).click().run()

    # Compliance: items 1, 2, 3 and 5 are mandatory, item 6 is left open
    assert at.header[0].value == "Compliance"
    assert _next_button(at).disabled
    for requirement_id in (1, 2, 3, 5):
        at.checkbox(key=f"s5_requirement_{requirement_id}").check()
    at.run()
    assert at.session_state.wizard.record.compliance.mandatory_score == 80
    assert not _next_button(at).disabled
    _next_button(at).click().run()

    assert not at.exception
    assert at.session_state.wizard.current == 5
    assert at.header[0].value == "Results"


def test_savings_without_a_bill_keeps_next_disabled():
    """
    Usage alone is not enough: with the bill left at 0 there are no savings and the user stays on Savings.
    """
    wizard = _abuja_wizard_on(3)
    wizard.update({
        "site_info": SiteInfo(roof_area_m2=150, panel_efficiency_pct=20, system_size_kw=4.5),
        "solar_data": {"daily_output_kwh": 22.95, "annual_output_kwh": 8376.75, "irradiance_kwh_m2_day": 5.1},
    })

    at = AppTest.from_file(APP_PATH)
    at.session_state.geo_adapter = OfflineGeoAdapter()
    at.session_state.wizard = wizard
    at.run()

    at.number_input(key="s4_usage").set_value(2000.0).run()
    assert at.session_state.wizard.record.savings.current_usage_kwh == 2000
    assert at.session_state.wizard.record.savings.monthly_savings_ngn is None
    assert _next_button(at).disabled

    _next_button(at).click().run()
    assert at.session_state.wizard.current == 3
    assert at.header[0].value == "Savings"
