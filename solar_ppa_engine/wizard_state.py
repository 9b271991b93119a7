"""
Sequential wizard owning the assessment record and the current-step pointer.

All mutation goes through ``update``, ``advance`` and ``retreat``. The UI holds
one ``WizardStateMachine`` per session and hands it to each screen.
"""
from __future__ import annotations

import dataclasses
import functools
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Optional

from solar_ppa_engine.assessment_models import (
    AssessmentRecord,
    Location,
    SolarData,
    ValidationError,
    coerce_slice,
)
from solar_ppa_engine.geo_lookup import LocationLookupResult, LocationPicked, resolve_picked_location
from solar_ppa_engine.solar_calculator_logic import (
    calculate_compliance_score,
    calculate_ppa_savings,
    calculate_record_viability,
    calculate_solar_output,
    calculate_system_size_kw,
)
from solar_ppa_engine.step_validators import describe_gate, is_step_complete
from solar_ppa_engine.utils import MANDATORY_COMPLIANCE_THRESHOLD_PCT, round_half_up

wizard_logger = logging.getLogger('wizard_state')


@dataclass(frozen=True)
class StepBinding:
    index: int
    key: str
    title: str
    description: str
    owned_slice: Optional[str]
    calculator: Optional[Callable]
    validator: Optional[Callable] = None  # bound by WizardStateMachine.current_step()


WIZARD_STEPS = (
    StepBinding(0, "location", "Location", "Select location on interactive map", "location", resolve_picked_location),
    StepBinding(1, "site_info", "Site Info", "Enter site specifications", "site_info", calculate_system_size_kw),
    StepBinding(2, "solar_potential", "Solar Potential", "Calculate solar output", "solar_data", calculate_solar_output),
    StepBinding(3, "savings", "Savings", "Estimate PPA savings", "savings", calculate_ppa_savings),
    StepBinding(4, "compliance", "Compliance", "Check regulatory requirements", "compliance", calculate_compliance_score),
    StepBinding(5, "results", "Results", "View assessment report", None, calculate_record_viability),
)


class WizardStateMachine:
    """Owns the ordered steps, the AssessmentRecord and the current step index."""

    def __init__(self, record: AssessmentRecord | None = None,
                 compliance_threshold_pct: float = MANDATORY_COMPLIANCE_THRESHOLD_PCT,
                 steps=WIZARD_STEPS) -> None:
        self.steps = steps
        self.record = record or AssessmentRecord()
        self.compliance_threshold_pct = compliance_threshold_pct
        self.current = 0
        self._location_request_id = 0

    # ------------------------------------------------------------------
    # Step pointer
    # ------------------------------------------------------------------

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1

    @property
    def is_terminal(self) -> bool:
        return self.current == self.last_index

    @property
    def progress_pct(self) -> int:
        return round_half_up((self.current + 1) / len(self.steps) * 100)

    def current_step(self) -> StepBinding:
        """The active step with its gate bound to this wizard's compliance policy."""
        binding = self.steps[self.current]
        validator = functools.partial(
            is_step_complete, binding.key,
            compliance_threshold_pct=self.compliance_threshold_pct,
        )
        return dataclasses.replace(binding, validator=validator)

    def can_advance(self) -> bool:
        if self.is_terminal:
            return False
        return is_step_complete(
            self.steps[self.current].key, self.record,
            compliance_threshold_pct=self.compliance_threshold_pct,
        )

    def gate_message(self) -> str | None:
        return describe_gate(
            self.steps[self.current].key, self.record,
            compliance_threshold_pct=self.compliance_threshold_pct,
        )

    def advance(self) -> bool:
        """Moves forward one step if the current gate is satisfied; otherwise does nothing."""
        if not self.can_advance():
            wizard_logger.debug(f"Advance refused on step '{self.steps[self.current].key}'.")
            return False
        self.current += 1
        wizard_logger.info(f"Advanced to step {self.current} ({self.steps[self.current].key}).")
        return True

    def retreat(self) -> bool:
        """Going back is never gated."""
        if self.current == 0:
            return False
        self.current -= 1
        return True

    def reset(self) -> None:
        self.record = AssessmentRecord()
        self.current = 0
        # Any lookup still in flight belongs to the old session
        self._location_request_id += 1

    # ------------------------------------------------------------------
    # Record mutation
    # ------------------------------------------------------------------

    def update(self, partial: Mapping) -> None:
        """
        Shallow-merges `partial` into the record by top-level key.
        Every value is checked before anything is written, so a bad partial changes nothing.
        """
        if not isinstance(partial, Mapping):
            raise ValidationError(f"Update expects a mapping, got {type(partial).__name__}.")
        coerced = {key: coerce_slice(key, value) for key, value in partial.items()}
        for key, value in coerced.items():
            setattr(self.record, key, value)

    # ------------------------------------------------------------------
    # Location events (last request wins)
    # ------------------------------------------------------------------

    def begin_location_lookup(self) -> int:
        """Starts a lookup and supersedes any earlier one still in flight."""
        self._location_request_id += 1
        return self._location_request_id

    def apply_location_result(self, token: int, result: LocationLookupResult) -> bool:
        """Records a lookup result unless a newer lookup has started since `token` was issued."""
        if token != self._location_request_id:
            wizard_logger.info(f"Ignoring stale location result (request {token}, latest {self._location_request_id}).")
            return False

        # A new location invalidates any solar output computed for the old one
        self.update({
            "location": Location(address=result.address, state=result.state, coordinates=result.coordinates),
            "solar_data": SolarData(
                irradiance_kwh_m2_day=result.irradiance,
                temperature_c=result.temperature,
                irradiance_source=result.irradiance_source,
            ),
        })
        return True

    def pick_location(self, event: LocationPicked, adapter, date_range=None) -> LocationLookupResult:
        """Runs one LocationPicked event end to end. Raises ValidationError for points outside Nigeria."""
        token = self.begin_location_lookup()
        binding = next(step for step in self.steps if step.key == "location")
        result = binding.calculator(event, adapter, date_range)
        self.apply_location_result(token, result)
        return result
