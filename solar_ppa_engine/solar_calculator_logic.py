from solar_ppa_engine.utils import (
    COMPLIANCE_POINT_WEIGHT,
    DAYS_PER_MONTH,
    DAYS_PER_YEAR,
    DEFAULT_IRRADIANCE_KWH_M2_DAY,
    GRID_TARIFF_NGN,
    HIGHLY_VIABLE_MIN_SCORE,
    IRRADIANCE_POINT_TIERS,
    MONTHS_PER_YEAR,
    PANEL_AREA_FACTOR,
    PPA_RATE_NGN,
    SAVINGS_POINT_TIERS,
    STATE_IRRADIANCE,
    TIER_FLOOR_POINTS,
    VIABLE_MIN_SCORE,
    round_half_up,
)


# --- System Sizing ---
def calculate_system_size_kw(roof_area_m2, panel_efficiency_pct):
    """
    Sizes the PV array from the usable roof area.
    Formula: Roof Area × (Efficiency / 100) × 0.15, rounded to 1 decimal.
    A negative roof area is treated as no roof at all.
    """
    roof_area = max(float(roof_area_m2 or 0), 0.0)
    size = roof_area * float(panel_efficiency_pct or 0) / 100 * PANEL_AREA_FACTOR
    return max(round_half_up(size, 1), 0.0)


# --- Irradiance Lookup ---
def get_state_irradiance(state):
    """Returns the average daily irradiance for a state, 4.5 kWh/m²/day if unknown."""
    return STATE_IRRADIANCE.get(state, DEFAULT_IRRADIANCE_KWH_M2_DAY)


def resolve_irradiance(record):
    """
    Picks the irradiance for the solar step: the satellite value stored by the
    location step when there is one, else the state table.
    Returns (irradiance, source).
    """
    solar_data = record.solar_data
    if solar_data.irradiance_source == "nasa_power" and solar_data.irradiance_kwh_m2_day > 0:
        return solar_data.irradiance_kwh_m2_day, "nasa_power"
    return get_state_irradiance(record.location.state), "state_table"


def get_performance_rating(irradiance):
    if irradiance >= 5.5:
        return "Excellent"
    elif irradiance >= 4.5:
        return "Good"
    elif irradiance >= 3.5:
        return "Fair"
    return "Poor"


def get_irradiance_message(irradiance):
    messages = {
        "Excellent": "Excellent solar conditions for PPA projects!",
        "Good": "Good solar potential for commercial viability.",
        "Fair": "Moderate solar conditions, feasible with optimization.",
        "Poor": "Lower solar irradiance, consider site improvements.",
    }
    return messages[get_performance_rating(irradiance)]


# --- Solar Output ---
def calculate_solar_output(system_size_kw, irradiance):
    """
    Daily output (kWh/day) = System Size (kW) × Solar Irradiance (kWh/m²/day).
    Annual output is exactly the daily figure times 365.
    """
    # Kept to 0.01 kWh: one decimal would turn 22.95 into 23.0 and the monthly savings into ₦31,050
    daily = max(round_half_up(float(system_size_kw or 0) * float(irradiance or 0), 2), 0.0)
    return {"daily": daily, "annual": daily * DAYS_PER_YEAR}


# --- PPA Savings ---
def calculate_ppa_savings(daily_output_kwh, current_usage_kwh,
                          grid_tariff=GRID_TARIFF_NGN, ppa_rate=PPA_RATE_NGN):
    """
    Savings from buying solar power at the PPA rate instead of the grid tariff.
    Only the part of the monthly usage that solar can cover earns savings.
    """
    monthly_solar_output = max(float(daily_output_kwh or 0), 0.0) * DAYS_PER_MONTH
    usage = max(float(current_usage_kwh or 0), 0.0)

    coverage_kwh = min(monthly_solar_output, usage)
    coverage_pct = min(monthly_solar_output / usage * 100, 100.0) if usage > 0 else 0.0

    monthly = max(round_half_up(coverage_kwh * (grid_tariff - ppa_rate)), 0)
    return {
        "monthly": monthly,
        "annual": monthly * MONTHS_PER_YEAR,
        "coverage_kwh": coverage_kwh,
        "coverage_pct": round_half_up(coverage_pct, 1),
    }


# --- Compliance ---
def _percentage(part, whole):
    if whole == 0:
        return 0
    return round_half_up(100 * part / whole)


def calculate_compliance_score(checklist):
    """
    Scores a checklist of items exposing `mandatory` and `satisfied`.
    `score` covers every item, `mandatory_score` only the mandatory ones.
    An empty checklist scores 0.
    """
    total = len(checklist)
    completed = sum(1 for item in checklist if item.satisfied)
    mandatory_items = [item for item in checklist if item.mandatory]
    mandatory_completed = sum(1 for item in mandatory_items if item.satisfied)

    return {
        "score": _percentage(completed, total),
        "mandatory_score": _percentage(mandatory_completed, len(mandatory_items)),
        "completed_items": completed,
        "total_items": total,
        "mandatory_completed": mandatory_completed,
        "mandatory_total": len(mandatory_items),
    }


# --- Viability (the one place solar, savings & compliance are combined) ---
def _tier_points(value, tiers):
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return TIER_FLOOR_POINTS


def calculate_viability_score(irradiance, monthly_savings, compliance_score):
    """
    Weighted site score out of 100:
    - irradiance: 25 pts at >= 5.5, 15 at >= 4.5, else 5
    - monthly savings: 25 pts at >= ₦50,000, 15 at >= ₦20,000, else 5
    - compliance: score × 0.5 (max 50)
    70+ is "Highly Viable", 50+ is "Viable", anything lower "Needs Attention".
    """
    irradiance_points = _tier_points(irradiance or 0, IRRADIANCE_POINT_TIERS)
    savings_points = _tier_points(monthly_savings or 0, SAVINGS_POINT_TIERS)
    compliance_points = (compliance_score or 0) * COMPLIANCE_POINT_WEIGHT
    total = irradiance_points + savings_points + compliance_points

    if total >= HIGHLY_VIABLE_MIN_SCORE:
        category = "Highly Viable"
    elif total >= VIABLE_MIN_SCORE:
        category = "Viable"
    else:
        category = "Needs Attention"

    return {
        "total": total,
        "irradiance_points": irradiance_points,
        "savings_points": savings_points,
        "compliance_points": compliance_points,
        "category": category,
    }


def calculate_record_viability(record):
    """Runs the viability score against a finished assessment record."""
    return calculate_viability_score(
        record.solar_data.irradiance_kwh_m2_day,
        record.savings.monthly_savings_ngn,
        record.compliance.score,
    )
