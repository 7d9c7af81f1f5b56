# ===================================================================
# 1. IMPORTS
# ===================================================================
from __future__ import annotations
import logging
import uuid
from typing import Any

from nicegui import ui

from .config_generator import generate
from .documents import DocumentError, render_summary_pdf
from .form_schema import ENTRIES_KEY, TIMELINE_ERROR_KEY, FormConfig, FormField, FormStep, StepId
from .form_state import FormStateManager, NavigationError, NavigationState
from .key_decoder import KeyFormatError, encode_facets, decode
from .settings import EnvironmentConfig, configure_logging, load_config
from .state_log import StateHistory

logger = logging.getLogger(__name__)
CONFIG: EnvironmentConfig = load_config()

# ===================================================================
# 2. PURE HELPERS
# ===================================================================

WIDGET_BY_TYPE: dict[str, str] = {
    'text': 'input',
    'email': 'input',
    'tel': 'input',
    'checkbox': 'checkbox',
    'select': 'select',
    'signature': 'signature',
    'array': 'entries',
}

# Extra columns the entry editor asks for, beyond the dates.
ENTRY_DETAIL_FIELDS: dict[StepId, list[tuple[str, str]]] = {
    StepId.RESIDENCE_HISTORY: [('address', 'Address'), ('city', 'City'), ('state', 'State'), ('zipCode', 'ZIP code')],
    StepId.EMPLOYMENT_HISTORY: [('company', 'Company'), ('position', 'Position')],
    StepId.EDUCATION: [('institution', 'Institution'), ('degree', 'Degree')],
    StepId.PROFESSIONAL_LICENSES: [('licenseType', 'License type'), ('licenseNumber', 'License number'),
                                   ('issuingAuthority', 'Issuing authority')],
}

def widget_kind(form_field: FormField) -> str:
    return WIDGET_BY_TYPE.get(form_field.type, 'input')

def entry_detail_fields(step_id: StepId) -> list[tuple[str, str]]:
    return ENTRY_DETAIL_FIELDS.get(step_id, [])

def step_progress(navigation: NavigationState) -> tuple[int, int]:
    """(completed, total) over the steps of this form."""
    completed = [s for s in navigation.completed_steps if s in navigation.available_steps]
    return len(completed), len(navigation.available_steps)

def build_session(key: str, history: StateHistory | None = None) -> tuple[FormConfig, FormStateManager]:
    """Decodes the key and creates a fresh manager. KeyFormatError propagates."""
    requirements = decode(key)
    config = generate(requirements)
    logger.info(f"Started form session for key {encode_facets(requirements)!r} with {len(config.steps)} steps.")
    return config, FormStateManager(config, recorder=history)

# ===================================================================
# 3. UI RENDERING ENGINE
# ===================================================================

def _render_entries_editor(manager: FormStateManager, step: FormStep, form_field: FormField, refresh: Any) -> None:
    step_state = manager.get_step_state(step.id)
    entries: list[dict[str, Any]] = list(step_state.values.get(ENTRIES_KEY) or []) if step_state else []

    def remove_entry(index: int) -> None:
        manager.set_value(step.id, ENTRIES_KEY, entries[:index] + entries[index + 1:])
        refresh()

    ui.label(form_field.label).classes('text-subtitle1')
    for index, entry in enumerate(entries):
        with ui.card().classes('w-full q-pa-sm'):
            with ui.row().classes('w-full items-center justify-between'):
                end = 'present' if entry.get('isCurrent') else entry.get('endDate') or '?'
                details = ', '.join(str(entry.get(k, '')) for k, _ in entry_detail_fields(step.id) if entry.get(k))
                ui.label(f"{entry.get('startDate', '?')} to {end}  {details}")
                ui.button(icon='delete', on_click=lambda i=index: remove_entry(i)).props('flat dense color=negative')

    draft: dict[str, Any] = {'startDate': '', 'endDate': '', 'isCurrent': False}

    def add_entry() -> None:
        new_entry = dict(draft)
        if new_entry['isCurrent']:
            new_entry['endDate'] = None
        manager.set_value(step.id, ENTRIES_KEY, entries + [new_entry])
        refresh()

    with ui.row().classes('w-full items-end'):
        ui.input('From (YYYY-MM)').bind_value(draft, 'startDate')
        ui.input('To (YYYY-MM)').bind_value(draft, 'endDate')
        ui.checkbox('Current').bind_value(draft, 'isCurrent')
        for key, label in entry_detail_fields(step.id):
            draft[key] = ''
            ui.input(label).bind_value(draft, key)
        ui.button('Add', on_click=add_entry).props('unelevated')

def create_field(manager: FormStateManager, step: FormStep, form_field: FormField, refresh: Any) -> None:
    step_state = manager.get_step_state(step.id)
    value = step_state.values.get(form_field.id) if step_state else None
    error = step_state.errors.get(form_field.id) if step_state and form_field.id in step_state.touched else None

    def on_change(e: Any) -> None:
        manager.set_value(step.id, form_field.id, e.value)

    kind = widget_kind(form_field)
    if kind == 'entries':
        _render_entries_editor(manager, step, form_field, refresh)
    elif kind == 'checkbox':
        ui.checkbox(form_field.label, value=bool(value), on_change=on_change)
    elif kind == 'select':
        ui.select(form_field.options or {}, label=form_field.label, value=value, on_change=on_change).classes('w-full')
    elif kind == 'signature':
        ui.input('Type your full name to sign', value=value or '', on_change=on_change).classes('w-full')
    else:
        ui.input(form_field.label, value=value or '', on_change=on_change).classes('w-full')
    if error:
        ui.label(error).classes('text-negative text-caption')

def render_generic_step(manager: FormStateManager, step: FormStep, refresh: Any) -> None:
    navigation = manager.get_navigation_state()
    completed, total = step_progress(navigation)
    ui.label(f"Step {step.order} of {total}: {step.title}").classes('text-h6 q-mb-md')
    ui.linear_progress(value=completed / total if total else 0, show_value=False).classes('q-mb-md')

    for form_field in step.fields:
        create_field(manager, step, form_field, refresh)

    step_state = manager.get_step_state(step.id)
    if step_state and TIMELINE_ERROR_KEY in step_state.errors:
        ui.label(step_state.errors[TIMELINE_ERROR_KEY]).classes('text-negative')

    def go(target: StepId | None) -> None:
        if target is None:
            return
        try:
            manager.move_to_step(target)
        except NavigationError as e:
            ui.notify(e.message, type='negative')
        refresh()

    def confirm() -> None:
        manager.revalidate(step.id)
        if manager.get_navigation_state().can_move_next:
            go(manager.next_step_id())
        else:
            ui.notify("Please fix the highlighted fields.", type='negative')
            refresh()

    with ui.row().classes('w-full q-mt-md justify-between'):
        if navigation.can_move_previous:
            ui.button("← Back", on_click=lambda: go(manager.previous_step_id())).props('flat color=grey')
        else:
            ui.label()
        if manager.next_step_id() is not None:
            ui.button("Confirm & Continue →", on_click=confirm).props('color=primary unelevated')
        else:
            ui.button("Submit", on_click=lambda: submit(manager, refresh)).props('color=green unelevated')

def submit(manager: FormStateManager, refresh: Any) -> None:
    state = manager.revalidate(manager.get_state().current_step)
    if not state.is_complete:
        ui.notify("Some required steps are still incomplete.", type='negative')
        refresh()
        return
    manager.set_submitting(True)
    tracking_id = uuid.uuid4().hex[:12].upper()
    try:
        pdf_bytes = render_summary_pdf(manager.get_state(), tracking_id)
        ui.download(src=pdf_bytes, filename=f"verification_{tracking_id}.pdf")
        ui.notify(f"Submitted. Tracking ID: {tracking_id}", type='positive')
    except (DocumentError, RuntimeError) as e:
        logger.error(f"Summary generation failed for {tracking_id}: {e}", exc_info=True)
        ui.notify(f"Could not generate the summary: {e}", type='negative', multi_line=True)
    finally:
        manager.set_submitting(False)

# ===================================================================
# 4. PAGE ROUTING
# ===================================================================

@ui.page('/')
def main_page(key: str | None = None) -> None:
    collection_key = key or CONFIG.default_collection_key
    try:
        config, manager = build_session(collection_key, StateHistory(collection_key))
    except KeyFormatError as e:
        ui.label(f"This verification link is not valid: {e.message} ({e.slot}).").classes('text-negative text-h6')
        return

    @ui.refreshable
    def update_step_content() -> None:
        current = manager.get_state().current_step
        step = config.get_step(current)
        if step is None:
            ui.label(f"Unknown step ({current.value})").classes('text-negative text-h6')
            return
        render_generic_step(manager, step, update_step_content.refresh)

    ui.query('body').style('background-color: #f0f2f5;')
    with ui.header(elevated=True).classes('bg-primary text-white q-pa-sm items-center'):
        ui.label("Background Verification").classes('text-h5')
    with ui.column().classes('w-full items-center'):
        with ui.card().classes('q-pa-md shadow-4').style('width: 95%; max-width: 900px;'):
            update_step_content()

def run() -> None:
    configure_logging(CONFIG)
    ui.run(host='0.0.0.0', port=CONFIG.port, storage_secret=CONFIG.storage_secret, reload=False)

if __name__ in {"__main__", "__mp_main__"}:
    run()
