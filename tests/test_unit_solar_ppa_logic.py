import sys
import os
import pytest

# --- CONFIGURATION ---
# Add project root to path to allow importing from `solar_ppa_engine` folder
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

from solar_ppa_engine.assessment_models import AssessmentRecord, ComplianceItem, Location, SolarData
from solar_ppa_engine.solar_calculator_logic import (
    calculate_system_size_kw,
    get_state_irradiance,
    resolve_irradiance,
    get_performance_rating,
    calculate_solar_output,
    calculate_ppa_savings,
    calculate_compliance_score,
    calculate_viability_score,
    calculate_record_viability
)
from solar_ppa_engine.utils import round_half_up, format_naira, STATE_IRRADIANCE, NIGERIAN_STATES


# ======================= 1. SYSTEM SIZING =======================
@pytest.mark.parametrize("roof_area, efficiency, expected_kw", [
    (150, 20, 4.5),   # Abuja commercial roof
    (50, 18, 1.4),    # 1.35 rounds half-up
    (300, 22, 9.9),
    (0, 20, 0.0),
    (-40, 20, 0.0),   # Negative roof is treated as no roof
])
def test_calculate_system_size_kw(roof_area, efficiency, expected_kw):
    assert calculate_system_size_kw(roof_area, efficiency) == expected_kw


def test_system_size_grows_with_roof_and_efficiency():
    assert calculate_system_size_kw(200, 20) >= calculate_system_size_kw(150, 20)
    assert calculate_system_size_kw(150, 22) >= calculate_system_size_kw(150, 20)


# ======================= 2. IRRADIANCE =======================
def test_state_table_covers_every_state():
    assert set(NIGERIAN_STATES) == set(STATE_IRRADIANCE)
    assert get_state_irradiance("FCT") == 5.1
    assert get_state_irradiance("Sokoto") == 6.2


def test_unknown_state_uses_default_irradiance():
    assert get_state_irradiance("Atlantis") == 4.5
    assert get_state_irradiance("") == 4.5


def test_resolve_irradiance_prefers_satellite_value():
    record = AssessmentRecord(
        location=Location(address="Garki, Abuja", state="FCT", coordinates=(9.03, 7.49)),
        solar_data=SolarData(irradiance_kwh_m2_day=5.63, irradiance_source="nasa_power"),
    )
    assert resolve_irradiance(record) == (5.63, "nasa_power")


def test_resolve_irradiance_falls_back_to_state_table():
    record = AssessmentRecord(location=Location(state="FCT", coordinates=(9.03, 7.49)))
    assert resolve_irradiance(record) == (5.1, "state_table")


@pytest.mark.parametrize("irradiance, expected", [
    (6.2, "Excellent"), (5.5, "Excellent"), (5.1, "Good"), (4.5, "Good"), (3.9, "Fair"), (3.0, "Poor"),
])
def test_get_performance_rating(irradiance, expected):
    assert get_performance_rating(irradiance) == expected


# ======================= 3. SOLAR OUTPUT =======================
def test_solar_output_for_abuja_site():
    """4.5 kW in the FCT at 5.1 kWh/m²/day."""
    output = calculate_solar_output(4.5, 5.1)
    assert output["daily"] == 22.95
    assert output["annual"] == output["daily"] * 365


def test_solar_output_is_never_negative():
    assert calculate_solar_output(0, 5.1) == {"daily": 0.0, "annual": 0.0}
    assert calculate_solar_output(-3, 5.1)["daily"] == 0.0


# ======================= 4. SAVINGS =======================
def test_ppa_savings_for_abuja_commercial_usage():
    """22.95 kWh/day covers 688.5 of 2,000 kWh; ₦45 saved per kWh rounds half-up to ₦30,983."""
    savings = calculate_ppa_savings(22.95, 2000)
    assert savings["monthly"] == 30983
    assert savings["annual"] == 30983 * 12
    assert savings["coverage_kwh"] == pytest.approx(688.5)
    assert savings["coverage_pct"] == 34.4


def test_one_decimal_rounding_would_overstate_abuja_savings():
    """Daily output stays at 0.01 kWh; 23.0 kWh/day would claim ₦67 more per month."""
    daily = calculate_solar_output(4.5, 5.1)["daily"]
    assert daily != round_half_up(daily, 1) == 23.0
    assert calculate_ppa_savings(daily, 2000)["monthly"] == 30983
    assert calculate_ppa_savings(23.0, 2000)["monthly"] == 31050


def test_savings_are_capped_by_usage():
    """Solar beyond the site's own usage earns nothing."""
    savings = calculate_ppa_savings(100, 500)
    assert savings["coverage_kwh"] == 500
    assert savings["coverage_pct"] == 100.0
    assert savings["monthly"] == 500 * 45


def test_zero_output_means_zero_savings():
    savings = calculate_ppa_savings(0, 2000)
    assert savings["monthly"] == 0
    assert savings["annual"] == 0
    assert savings["coverage_pct"] == 0


def test_zero_usage_means_zero_coverage():
    savings = calculate_ppa_savings(22.95, 0)
    assert savings["monthly"] == 0
    assert savings["coverage_pct"] == 0


def test_savings_use_given_rates():
    savings = calculate_ppa_savings(10, 1000, grid_tariff=250, ppa_rate=200)
    assert savings["monthly"] == 300 * 50


# ======================= 5. COMPLIANCE =======================
def _checklist(flags):
    """`flags` is a list of (mandatory, satisfied) pairs."""
    return [
        ComplianceItem(id=i, requirement=f"Requirement {i}", mandatory=m, satisfied=s)
        for i, (m, s) in enumerate(flags, start=1)
    ]


def test_empty_checklist_scores_zero():
    result = calculate_compliance_score([])
    assert result["score"] == 0
    assert result["mandatory_score"] == 0
    assert result["total_items"] == 0


def test_compliance_score_counts_mandatory_separately():
    # 5 mandatory, 4 of them done; 2 optional, none done
    checklist = _checklist([(True, True)] * 4 + [(True, False)] + [(False, False)] * 2)
    result = calculate_compliance_score(checklist)
    assert result["score"] == 57  # 4/7 = 57.14
    assert result["mandatory_score"] == 80
    assert result["completed_items"] == 4
    assert result["mandatory_completed"] == 4
    assert result["mandatory_total"] == 5


def test_checklist_without_mandatory_items_has_zero_mandatory_score():
    result = calculate_compliance_score(_checklist([(False, True), (False, True)]))
    assert result["score"] == 100
    assert result["mandatory_score"] == 0


def test_ticking_an_item_never_lowers_the_score():
    before = _checklist([(True, False), (False, False), (True, True)])
    after = _checklist([(True, True), (False, False), (True, True)])
    assert calculate_compliance_score(after)["score"] >= calculate_compliance_score(before)["score"]
    assert calculate_compliance_score(after)["mandatory_score"] >= calculate_compliance_score(before)["mandatory_score"]


# ======================= 6. VIABILITY =======================
def test_viability_highly_viable_site():
    result = calculate_viability_score(6.0, 60000, 90)
    assert result["irradiance_points"] == 25
    assert result["savings_points"] == 25
    assert result["compliance_points"] == 45
    assert result["total"] == 95
    assert result["category"] == "Highly Viable"


@pytest.mark.parametrize("irradiance, savings, compliance, expected_total, expected_category", [
    (5.1, 30983, 57, 58.5, "Viable"),
    (4.5, 20000, 80, 70, "Highly Viable"),  # Tier boundaries are inclusive
    (3.0, 0, 0, 10, "Needs Attention"),
    (5.0, 10000, 60, 50, "Viable"),
])
def test_viability_tiers_and_categories(irradiance, savings, compliance, expected_total, expected_category):
    result = calculate_viability_score(irradiance, savings, compliance)
    assert result["total"] == expected_total
    assert result["category"] == expected_category


def test_viability_handles_missing_savings():
    """A record whose savings were never calculated still scores, with the floor for savings."""
    record = AssessmentRecord(solar_data=SolarData(irradiance_kwh_m2_day=5.1))
    result = calculate_record_viability(record)
    assert result["savings_points"] == 5
    assert result["compliance_points"] == 0
    assert result["total"] == 20


# ======================= 7. UTILITIES =======================
@pytest.mark.parametrize("value, digits, expected", [
    (30982.5, 0, 30983),
    (2.5, 0, 3),
    (1.35, 1, 1.4),
    (22.945, 2, 22.95),
])
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == expected


def test_format_naira():
    assert format_naira(30983) == "₦30,983"
    assert format_naira(None) == "N/A"
    assert format_naira(1500000, symbol="NGN ") == "NGN 1,500,000"
