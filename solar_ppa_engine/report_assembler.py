import dataclasses
from datetime import datetime

from solar_ppa_engine.solar_calculator_logic import calculate_record_viability, get_performance_rating
from solar_ppa_engine.utils import format_naira

REPORT_TITLE = "NIGERIASOLAR PPA VALIDATOR - ASSESSMENT REPORT"
IRRADIANCE_SOURCE_LABELS = {
    "nasa_power": "NASA POWER satellite average",
    "state_table": "State average",
}


def _number(value):
    """Compact number for the report: 4.5 -> '4.5', 150.0 -> '150', 2000 -> '2,000'."""
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def build_report_payload(record, generated_at=None):
    """
    Structured version of the report: every record field, the viability result and the timestamp.
    Deterministic for a fixed `generated_at`.
    """
    generated_at = generated_at or datetime.now()
    payload = dataclasses.asdict(record)

    coordinates = record.location.coordinates
    payload["location"]["coordinates"] = (
        {"lat": coordinates[0], "lng": coordinates[1]} if coordinates else None
    )
    payload["solar_data"]["performance_rating"] = get_performance_rating(
        record.solar_data.irradiance_kwh_m2_day
    )
    payload["viability"] = calculate_record_viability(record)
    payload["generated_at"] = generated_at.isoformat(timespec="seconds")
    payload["title"] = REPORT_TITLE
    return payload


def assemble_report(record, generated_at=None):
    """Plain-text assessment report, ready for download or e-mail."""
    generated_at = generated_at or datetime.now()
    location = record.location
    site = record.site_info
    solar = record.solar_data
    savings = record.savings
    compliance = record.compliance
    viability = calculate_record_viability(record)

    coordinates_line = (
        f"{location.coordinates[0]:.4f}, {location.coordinates[1]:.4f}"
        if location.coordinates else "Not selected"
    )
    source_label = IRRADIANCE_SOURCE_LABELS.get(solar.irradiance_source, solar.irradiance_source)

    lines = [
        REPORT_TITLE,
        "=" * len(REPORT_TITLE),
        "",
        "SITE INFORMATION",
        f"Location: {location.address or 'N/A'}",
        f"State: {location.state or 'N/A'}",
        f"Coordinates: {coordinates_line}",
        f"System Size: {_number(site.system_size_kw)} kW",
        f"Roof Area: {_number(site.roof_area_m2)} m²",
        f"Panel Efficiency: {_number(site.panel_efficiency_pct)}%",
        "",
        "SOLAR POTENTIAL",
        f"Daily Output: {_number(solar.daily_output_kwh)} kWh/day",
        f"Annual Output: {solar.annual_output_kwh:,.0f} kWh/year",
        f"Solar Irradiance: {_number(solar.irradiance_kwh_m2_day)} kWh/m²/day ({source_label})",
    ]
    if solar.temperature_c is not None:
        lines.append(f"Average Temperature: {solar.temperature_c:.1f} °C")
    lines += [
        f"Performance Rating: {get_performance_rating(solar.irradiance_kwh_m2_day)}",
        "",
        "PPA SAVINGS",
        f"Current Usage: {_number(savings.current_usage_kwh)} kWh/month",
        f"Current Bill: {format_naira(savings.current_bill_ngn)}/month",
        f"PPA Rate: {format_naira(savings.ppa_rate_ngn)}/kWh vs Grid: {format_naira(savings.grid_tariff_ngn)}/kWh",
        f"Solar Coverage: {_number(savings.solar_coverage_pct)}%",
        f"Monthly Savings: {format_naira(savings.monthly_savings_ngn) if savings.monthly_savings_ngn is not None else 'Not calculated'}",
        f"Annual Savings: {format_naira(savings.annual_savings_ngn) if savings.annual_savings_ngn is not None else 'Not calculated'}",
        "",
        "COMPLIANCE SCORE",
        f"Overall Score: {compliance.score}%",
        f"Mandatory Score: {compliance.mandatory_score}%",
        f"Completed Requirements: {compliance.completed_items}/{compliance.total_items}",
    ]
    for item in compliance.checklist:
        mark = "x" if item.satisfied else " "
        tag = " (mandatory)" if item.mandatory else ""
        lines.append(f"  [{mark}] {item.requirement}{tag}")

    lines += [
        "",
        "VIABILITY",
        f"Status: {viability['category']}",
        (
            f"Score: {_number(viability['total'])}/100 "
            f"(Irradiance {viability['irradiance_points']} + Savings {viability['savings_points']} "
            f"+ Compliance {_number(viability['compliance_points'])})"
        ),
        "",
        f"Generated on: {generated_at.strftime('%Y-%m-%d %H:%M')}",
    ]
    return "\n".join(lines) + "\n"
