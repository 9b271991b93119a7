"""
Gate predicates deciding whether the wizard may leave a step.

Each validator only reads the record; none of them raise.
"""
from __future__ import annotations

from solar_ppa_engine.assessment_models import AssessmentRecord
from solar_ppa_engine.utils import MANDATORY_COMPLIANCE_THRESHOLD_PCT


def location_complete(record: AssessmentRecord) -> bool:
    """The address has been resolved to a lat/lng pair."""
    return record.location.coordinates is not None


def site_info_complete(record: AssessmentRecord) -> bool:
    site = record.site_info
    return site.roof_area_m2 > 0 and site.system_size_kw > 0


def solar_potential_complete(record: AssessmentRecord) -> bool:
    return record.solar_data.daily_output_kwh > 0


def savings_complete(record: AssessmentRecord) -> bool:
    """The savings calculation has run; zero savings still counts."""
    return record.savings.monthly_savings_ngn is not None


def compliance_complete(record: AssessmentRecord,
                        threshold_pct: float = MANDATORY_COMPLIANCE_THRESHOLD_PCT) -> bool:
    return record.compliance.mandatory_score >= threshold_pct


def results_complete(record: AssessmentRecord) -> bool:
    # Results is terminal; there is nothing to advance to.
    return False


STEP_VALIDATORS = {
    "location": location_complete,
    "site_info": site_info_complete,
    "solar_potential": solar_potential_complete,
    "savings": savings_complete,
    "compliance": compliance_complete,
    "results": results_complete,
}


def is_step_complete(step_key, record, compliance_threshold_pct=MANDATORY_COMPLIANCE_THRESHOLD_PCT):
    if step_key not in STEP_VALIDATORS:
        raise KeyError(f"Unknown wizard step '{step_key}'.")
    if step_key == "compliance":
        return compliance_complete(record, compliance_threshold_pct)
    return STEP_VALIDATORS[step_key](record)


def describe_gate(step_key, record, compliance_threshold_pct=MANDATORY_COMPLIANCE_THRESHOLD_PCT):
    """
    Returns the message shown under a disabled "Next" button,
    or None when the step's gate is open (or the step is terminal).
    """
    if step_key == "results" or is_step_complete(step_key, record, compliance_threshold_pct):
        return None

    messages = {
        "location": "Select a location on the map, search an address or pick a quick location.",
        "site_info": "Enter a roof area greater than 0 m² to size the system.",
        "solar_potential": "Calculate the solar output for this site to continue.",
        "savings": "Enter your monthly usage and bill, then calculate your PPA savings.",
        "compliance": (
            f"At least {compliance_threshold_pct:g}% of the mandatory requirements must be "
            f"completed (currently {record.compliance.mandatory_score}%)."
        ),
    }
    return messages[step_key]
