# tests/test_navigation.py
from __future__ import annotations

import sys
from pathlib import Path
from datetime import datetime

import pytest

# Make the `verifyform` directory importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from verifyform.config_generator import generate
from verifyform.form_schema import StepId
from verifyform.form_state import FormStateManager, NavigationError

# A simple, predictable sequence: personal-info (full name), education, signature (checkbox)
MOCK_KEY = 'en-M-N-N-N-E-N-C'

def _manager() -> FormStateManager:
    return FormStateManager(generate(MOCK_KEY), clock=lambda: datetime(2025, 1, 1))

def test_starts_on_initial_step() -> None:
    manager = _manager()
    navigation = manager.get_navigation_state()

    assert manager.get_state().current_step is StepId.PERSONAL_INFO
    assert not navigation.can_move_previous, "Nothing before the first step"
    assert not navigation.can_move_next, "An empty step is not complete"
    assert navigation.available_steps == [StepId.PERSONAL_INFO, StepId.EDUCATION, StepId.SIGNATURE]
    assert navigation.completed_steps == []

def test_forward_move_blocked_until_previous_steps_complete() -> None:
    manager = _manager()

    with pytest.raises(NavigationError) as exc_info:
        manager.move_to_step(StepId.EDUCATION)
    assert exc_info.value.blocking_step is StepId.PERSONAL_INFO
    assert manager.get_state().current_step is StepId.PERSONAL_INFO, "A refused move changes nothing"

    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    state = manager.move_to_step(StepId.EDUCATION)
    assert state.current_step is StepId.EDUCATION

def test_skipping_ahead_needs_every_earlier_step() -> None:
    manager = _manager()
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')

    with pytest.raises(NavigationError) as exc_info:
        manager.move_to_step(StepId.SIGNATURE)
    assert exc_info.value.blocking_step is StepId.EDUCATION

    manager.set_value(StepId.EDUCATION, 'highestLevel', 'high_school')
    assert manager.move_to_step(StepId.SIGNATURE).current_step is StepId.SIGNATURE

def test_backward_moves_are_unconditional() -> None:
    manager = _manager()
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    manager.move_to_step(StepId.EDUCATION)

    # Breaking the earlier step does not trap the user on the later one.
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', '')
    assert manager.move_to_step(StepId.PERSONAL_INFO).current_step is StepId.PERSONAL_INFO

def test_unknown_or_disabled_steps_are_refused() -> None:
    manager = _manager()
    with pytest.raises(NavigationError):
        manager.move_to_step(StepId.CONSENTS)
    with pytest.raises(NavigationError):
        manager.move_to_step('not-a-step')
    assert manager.get_state().current_step is StepId.PERSONAL_INFO

def test_string_step_ids_are_accepted() -> None:
    manager = _manager()
    manager.set_value('personal-info', 'fullName', 'Jane Doe')
    assert manager.move_to_step('education').current_step is StepId.EDUCATION

def test_navigation_state_follows_current_step() -> None:
    manager = _manager()
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    assert manager.get_navigation_state().can_move_next

    manager.move_to_step(StepId.EDUCATION)
    navigation = manager.get_navigation_state()
    assert navigation.can_move_previous
    assert not navigation.can_move_next
    assert navigation.completed_steps == [StepId.PERSONAL_INFO]

def test_last_step_cannot_move_next() -> None:
    manager = _manager()
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    manager.set_value(StepId.EDUCATION, 'highestLevel', 'high_school')
    manager.move_to_step(StepId.SIGNATURE)
    manager.set_value(StepId.SIGNATURE, 'confirmation', True)

    navigation = manager.get_navigation_state()
    assert not navigation.can_move_next, "Should stay on the last step"
    assert manager.next_step_id() is None
    with pytest.raises(NavigationError):
        manager.move_next()

def test_completed_steps_can_be_out_of_order() -> None:
    manager = _manager()
    manager.set_value(StepId.SIGNATURE, 'confirmation', True)
    assert manager.get_navigation_state().completed_steps == [StepId.SIGNATURE]

def test_move_next_and_previous() -> None:
    manager = _manager()
    assert manager.previous_step_id() is None
    with pytest.raises(NavigationError):
        manager.move_previous()

    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    assert manager.move_next().current_step is StepId.EDUCATION
    assert manager.move_previous().current_step is StepId.PERSONAL_INFO
