# tests/test_web.py
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from verifyform.form_schema import FieldSchema, FormField, StepId
from verifyform.form_state import NavigationState
from verifyform.key_decoder import KeyFormatError
from verifyform.state_log import StateHistory
from verifyform.web import build_session, entry_detail_fields, step_progress, widget_kind

# ===================================================================
# WIDGET SELECTION
# ===================================================================

@pytest.mark.parametrize("form_field, expected", [
    (FieldSchema.EMAIL, 'input'),
    (FieldSchema.PHONE, 'input'),
    (FieldSchema.FULL_NAME, 'input'),
    (FieldSchema.DRUG_TEST_CONSENT, 'checkbox'),
    (FieldSchema.HIGHEST_LEVEL, 'select'),
    (FieldSchema.WET_SIGNATURE, 'signature'),
    (FieldSchema.CHECKBOX_SIGNATURE, 'checkbox'),
    (FieldSchema.RESIDENCE_ENTRIES, 'entries'),
])
def test_widget_kind(form_field: FormField, expected: str) -> None:
    assert widget_kind(form_field) == expected

def test_unknown_field_type_renders_as_input() -> None:
    assert widget_kind(FormField(id='notes', label='Notes', type='textarea')) == 'input'

def test_entry_detail_fields() -> None:
    assert [key for key, _ in entry_detail_fields(StepId.EMPLOYMENT_HISTORY)] == ['company', 'position']
    assert entry_detail_fields(StepId.SIGNATURE) == [], "Steps without entries have no detail columns"

# ===================================================================
# PROGRESS + SESSIONS
# ===================================================================

def test_step_progress() -> None:
    navigation = NavigationState(
        can_move_next=True,
        can_move_previous=False,
        available_steps=[StepId.PERSONAL_INFO, StepId.EDUCATION, StepId.SIGNATURE],
        completed_steps=[StepId.PERSONAL_INFO],
    )
    assert step_progress(navigation) == (1, 3)

def test_build_session() -> None:
    history = StateHistory('en-M-N-N-N-E-N-C')
    config, manager = build_session('en-M-N-N-N-E-N-C', history)

    assert config.enabled_step_ids() == [StepId.PERSONAL_INFO, StepId.EDUCATION, StepId.SIGNATURE]
    assert manager.get_state().current_step is StepId.PERSONAL_INFO

    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    latest = history.latest()
    assert latest is not None, "The session history records every change"
    assert latest['state']['steps']['personal-info']['values'] == {'fullName': 'Jane Doe'}

def test_build_session_rejects_bad_keys() -> None:
    with pytest.raises(KeyFormatError) as exc_info:
        build_session('en-Q-N-N-N-N-N-C')
    assert exc_info.value.slot == 'personal'
