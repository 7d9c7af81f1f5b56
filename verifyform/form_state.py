# verifyform/form_state.py
"""
Per-session form state.

One ``FormStateManager`` is built per ``FormConfig`` and owns every
mutable bit of the session: field values, touched fields, errors and the
current step pointer. It is not thread safe; callers serialize access.
"""
from __future__ import annotations
import copy
import logging
from datetime import datetime
from typing import Any, TypeAlias
from collections.abc import Callable
from dataclasses import dataclass, field

from .form_schema import (
    ENTRIES_KEY, TIMELINE_ERROR_KEY, TIMELINE_STEPS, TOTAL_YEARS_KEY,
    FormConfig, FormStep, FormValue, StepId, StepValues,
)
from .options import is_college_or_higher
from .state_log import StateRecorder
from .timeline import calculate_coverage
from .validation import (
    ValidatorFunc, first_error, is_date_after, is_date_string, required, required_unless,
)

logger = logging.getLogger(__name__)

Clock: TypeAlias = Callable[[], datetime]
EntryRules: TypeAlias = dict[str, list[ValidatorFunc]]

# Checks applied to every row of a timeline step's `entries` list.
ENTRY_RULES: EntryRules = {
    'startDate': [
        required('Start date is required.'),
        is_date_string('Use the YYYY-MM date format.'),
    ],
    'endDate': [
        required_unless('isCurrent', 'End date is required unless this is your current entry.'),
        is_date_string('Use the YYYY-MM date format.'),
        is_date_after('startDate', 'End date must not be before the start date.'),
    ],
}

_present = required()

# ===================================================================
# 1. STATE SNAPSHOTS
# ===================================================================

@dataclass
class FormStepState:
    id: StepId
    values: StepValues = field(default_factory=dict)
    touched: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)
    is_valid: bool = False
    is_complete: bool = False

    def to_dict(self) -> dict[str, Any]:
        # Sets are not JSON; `touched` goes out as a sorted list.
        return {
            'id': self.id.value,
            'values': copy.deepcopy(self.values),
            'touched': sorted(self.touched),
            'errors': dict(self.errors),
            'isValid': self.is_valid,
            'isComplete': self.is_complete,
        }

@dataclass
class FormState:
    current_step: StepId
    steps: dict[StepId, FormStepState]
    is_submitting: bool = False
    is_complete: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            'currentStep': self.current_step.value,
            'steps': {step_id.value: step.to_dict() for step_id, step in self.steps.items()},
            'isSubmitting': self.is_submitting,
            'isComplete': self.is_complete,
        }

@dataclass(frozen=True)
class NavigationState:
    can_move_next: bool
    can_move_previous: bool
    available_steps: list[StepId]
    completed_steps: list[StepId]


class NavigationError(LookupError):
    """A requested step change was refused. State is left untouched."""

    def __init__(self, step_id: StepId | str, message: str, blocking_step: StepId | None = None) -> None:
        self.step_id = step_id
        self.message = message
        self.blocking_step = blocking_step
        super().__init__(message)

# ===================================================================
# 2. THE MANAGER
# ===================================================================

class FormStateManager:
    def __init__(
        self,
        config: FormConfig,
        clock: Clock | None = None,
        recorder: StateRecorder | None = None,
    ) -> None:
        self._config = config
        self._clock: Clock = clock or datetime.now
        self._recorder = recorder
        self._state = FormState(
            current_step=config.initial_step,
            steps={step.id: FormStepState(id=step.id) for step in config.steps},
        )

    @property
    def config(self) -> FormConfig:
        return self._config

    # --- Reading ---
    def get_state(self) -> FormState:
        """A deep copy; mutating it never affects the manager."""
        return copy.deepcopy(self._state)

    def get_step_state(self, step_id: StepId | str) -> FormStepState | None:
        sid = _as_step_id(step_id)
        if sid is None or sid not in self._state.steps:
            return None
        return copy.deepcopy(self._state.steps[sid])

    def get_navigation_state(self) -> NavigationState:
        enabled = self._config.enabled_step_ids()
        current = self._state.current_step
        index = enabled.index(current)
        step_state = self._state.steps[current]
        return NavigationState(
            can_move_next=step_state.is_valid and step_state.is_complete and index < len(enabled) - 1,
            can_move_previous=index > 0,
            available_steps=list(enabled),
            completed_steps=[s.id for s in self._config.steps if self._state.steps[s.id].is_complete],
        )

    # --- Writing ---
    def set_value(self, step_id: StepId | str, field_id: str, value: FormValue) -> FormState:
        """
        Stores one field value and re-validates the whole step in a single
        transition: field rules, entry rows, timeline coverage (kept under
        `totalYears`), validity and completion. Never raises.
        """
        sid = _as_step_id(step_id)
        step_config = self._config.get_step(sid) if sid is not None else None
        if step_config is None or sid is None:
            logger.warning(f"Ignoring value for unknown step '{step_id}'.")
            return self.get_state()

        current = self._state.steps[sid]
        values: dict[str, Any] = dict(current.values)
        values[field_id] = value
        touched = set(current.touched)
        touched.add(field_id)
        self._state.steps[sid] = self._transition(step_config, values, touched)
        self._refresh_form_completion()
        logger.debug(f"Set {sid.value}.{field_id}; errors={self._state.steps[sid].errors}")
        return self._snapshot()

    def revalidate(self, step_id: StepId | str) -> FormState:
        """Re-runs validation on the stored values, e.g. for a step without fields."""
        sid = _as_step_id(step_id)
        step_config = self._config.get_step(sid) if sid is not None else None
        if step_config is None or sid is None:
            logger.warning(f"Cannot revalidate unknown step '{step_id}'.")
            return self.get_state()
        current = self._state.steps[sid]
        self._state.steps[sid] = self._transition(step_config, dict(current.values), set(current.touched))
        self._refresh_form_completion()
        return self._snapshot()

    def set_submitting(self, is_submitting: bool) -> FormState:
        self._state.is_submitting = is_submitting
        return self._snapshot()

    # --- Navigation ---
    def move_to_step(self, step_id: StepId | str) -> FormState:
        """
        Moves the current step pointer. Backward moves always succeed;
        anything else needs every required step before the target to be
        complete. Raises NavigationError and changes nothing otherwise.
        """
        enabled = self._config.enabled_step_ids()
        sid = _as_step_id(step_id)
        if sid is None or sid not in enabled:
            logger.warning(f"Navigation to '{step_id}' refused: step is not enabled.")
            raise NavigationError(step_id, f"Step '{step_id}' is not part of this form.")

        target_index = enabled.index(sid)
        current_index = enabled.index(self._state.current_step)
        if target_index >= current_index:
            required_steps = set(self._config.navigation.required_steps)
            for earlier in enabled[:target_index]:
                if earlier in required_steps and not self._state.steps[earlier].is_complete:
                    logger.warning(f"Navigation to '{sid.value}' refused: '{earlier.value}' is incomplete.")
                    raise NavigationError(
                        sid, f"Please complete '{earlier.value}' before continuing.", blocking_step=earlier,
                    )

        logger.info(f"Moving from '{self._state.current_step.value}' to '{sid.value}'.")
        self._state.current_step = sid
        return self._snapshot()

    def next_step_id(self) -> StepId | None:
        enabled = self._config.enabled_step_ids()
        index = enabled.index(self._state.current_step)
        return enabled[index + 1] if index < len(enabled) - 1 else None

    def previous_step_id(self) -> StepId | None:
        enabled = self._config.enabled_step_ids()
        index = enabled.index(self._state.current_step)
        return enabled[index - 1] if index > 0 else None

    def move_next(self) -> FormState:
        next_id = self.next_step_id()
        if next_id is None:
            raise NavigationError(self._state.current_step, "Already on the last step.")
        return self.move_to_step(next_id)

    def move_previous(self) -> FormState:
        prev_id = self.previous_step_id()
        if prev_id is None:
            raise NavigationError(self._state.current_step, "Already on the first step.")
        return self.move_to_step(prev_id)

    # --- Internals ---
    def _transition(self, step_config: FormStep, values: dict[str, Any], touched: set[str]) -> FormStepState:
        errors: dict[str, str] = {}
        for form_field in step_config.fields:
            message = first_error(form_field.validators(), values.get(form_field.id), values)
            if message:
                errors[form_field.id] = message

        raw_entries = values.get(ENTRIES_KEY)
        entries: list[Any] = raw_entries if isinstance(raw_entries, list) else []
        rules = step_config.validation_rules
        coverage_met = True

        if step_config.id in TIMELINE_STEPS:
            clean_entries = _validate_entries(entries, errors)
            coverage = calculate_coverage(clean_entries, self._clock())
            values[TOTAL_YEARS_KEY] = round(coverage, 2)
            if rules is not None and rules.required_years is not None and coverage < rules.required_years:
                coverage_met = False
                errors[TIMELINE_ERROR_KEY] = (
                    f"Your history covers {coverage:.1f} of the required {rules.required_years} years."
                )
            if rules is not None and rules.required_employers is not None and len(clean_entries) < rules.required_employers:
                coverage_met = False
                errors[TIMELINE_ERROR_KEY] = (
                    f"Please list at least {rules.required_employers} employers; {len(clean_entries)} given."
                )

        if step_config.id is StepId.EDUCATION and is_college_or_higher(values.get('highestLevel')) and not entries:
            errors.setdefault(ENTRIES_KEY, 'Please add the schools you attended after high school.')

        is_valid = not errors
        has_required = all(
            _present(values.get(f.id), values)[0] for f in step_config.fields if f.required
        )
        return FormStepState(
            id=step_config.id,
            values=values,
            touched=touched,
            errors=errors,
            is_valid=is_valid,
            is_complete=is_valid and has_required and coverage_met,
        )

    def _refresh_form_completion(self) -> None:
        self._state.is_complete = all(
            self._state.steps[sid].is_complete for sid in self._config.navigation.required_steps
        )

    def _snapshot(self) -> FormState:
        snapshot = self.get_state()
        if self._recorder is not None:
            self._recorder.record(snapshot)
        return snapshot


def _validate_entries(entries: list[Any], errors: dict[str, str]) -> list[dict[str, Any]]:
    """Row checks on timeline entries; returns the rows that passed."""
    clean: list[dict[str, Any]] = []
    for row_index, row_data in enumerate(entries):
        if not isinstance(row_data, dict):
            errors[f"{ENTRIES_KEY}_{row_index}"] = 'Invalid entry.'
            continue
        row_ok = True
        for col_key, validator_list in ENTRY_RULES.items():
            message = first_error(validator_list, row_data.get(col_key), row_data)
            if message:
                row_ok = False
                errors.setdefault(f"{ENTRIES_KEY}_{row_index}_{col_key}", message)
        if row_ok:
            clean.append(row_data)
    return clean

def _as_step_id(step_id: StepId | str | None) -> StepId | None:
    if isinstance(step_id, StepId):
        return step_id
    try:
        return StepId(step_id)
    except ValueError:
        return None
