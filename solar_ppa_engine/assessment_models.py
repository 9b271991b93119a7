"""
Assessment record shared by every wizard step.

The record is split into one slice per step; a step writes only its own slice
and the wizard merges slices into the record by top-level key.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import List, Optional, Tuple

from solar_ppa_engine.utils import (
    COMPLIANCE_REQUIREMENTS,
    DEFAULT_PANEL_EFFICIENCY_PCT,
    DEFAULT_TOTAL_COMPLIANCE_ITEMS,
    GRID_TARIFF_NGN,
    PPA_RATE_NGN,
)


class ValidationError(ValueError):
    """Input out of its declared range, or a record update with the wrong shape."""


@dataclass
class Location:
    address: str = ""
    state: str = ""
    coordinates: Optional[Tuple[float, float]] = None  # (lat, lng)


@dataclass
class SiteInfo:
    roof_area_m2: float = 0.0
    panel_efficiency_pct: float = DEFAULT_PANEL_EFFICIENCY_PCT
    system_size_kw: float = 0.0


@dataclass
class SolarData:
    daily_output_kwh: float = 0.0
    annual_output_kwh: float = 0.0
    irradiance_kwh_m2_day: float = 0.0
    temperature_c: Optional[float] = None
    irradiance_source: str = "state_table"  # or "nasa_power"


@dataclass
class Savings:
    current_usage_kwh: float = 0.0
    current_bill_ngn: float = 0.0
    ppa_rate_ngn: float = PPA_RATE_NGN
    grid_tariff_ngn: float = GRID_TARIFF_NGN
    solar_coverage_pct: float = 0.0
    monthly_savings_ngn: Optional[int] = None  # None until the savings calculation has run
    annual_savings_ngn: Optional[int] = None


@dataclass
class ComplianceItem:
    id: int
    requirement: str
    category: str = ""
    description: str = ""
    mandatory: bool = False
    satisfied: bool = False
    link: Optional[str] = None


def default_checklist() -> List[ComplianceItem]:
    return [ComplianceItem(**req) for req in COMPLIANCE_REQUIREMENTS]


@dataclass
class Compliance:
    checklist: List[ComplianceItem] = field(default_factory=default_checklist)
    score: int = 0
    mandatory_score: int = 0
    completed_items: int = 0
    total_items: int = DEFAULT_TOTAL_COMPLIANCE_ITEMS

    def __post_init__(self):
        # Checklist entries may arrive as plain dicts from a partial update
        self.checklist = [
            item if isinstance(item, ComplianceItem) else ComplianceItem(**item)
            for item in self.checklist
        ]


@dataclass
class AssessmentRecord:
    location: Location = field(default_factory=Location)
    site_info: SiteInfo = field(default_factory=SiteInfo)
    solar_data: SolarData = field(default_factory=SolarData)
    savings: Savings = field(default_factory=Savings)
    compliance: Compliance = field(default_factory=Compliance)


# Top-level record keys and the slice type each one holds
SLICE_TYPES = {f.name: f.default_factory for f in fields(AssessmentRecord)}


def coerce_slice(key, value):
    """
    Returns a private copy of `value` as the slice type registered for `key`.
    Accepts a slice instance or a dict of its fields; anything else raises ValidationError.
    """
    if key not in SLICE_TYPES:
        raise ValidationError(f"Unknown assessment section '{key}'.")

    slice_type = SLICE_TYPES[key]
    if isinstance(value, slice_type):
        return copy.deepcopy(value)
    if isinstance(value, dict):
        try:
            return slice_type(**copy.deepcopy(value))
        except TypeError as e:
            raise ValidationError(f"Invalid fields for '{key}': {e}") from e
    raise ValidationError(
        f"Section '{key}' expects {slice_type.__name__} or dict, got {type(value).__name__}."
    )
