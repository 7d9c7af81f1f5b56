# verifyform/documents.py
"""
Summary documents for a finished form: a structured JSON document and a
plain PDF rendering of the same data. Both read step values by the field
ids the form config declared.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any

import fitz

from .form_schema import (
    ENTRIES_KEY, STEP_TITLES, TOTAL_YEARS_KEY, ConsentsValues, PersonalInfoValues, StepId, TimelineEntry,
)
from .form_state import FormState

logger = logging.getLogger(__name__)

DOCUMENT_VERSION: str = '1.0.0'

TIMELINE_SECTIONS: dict[StepId, str] = {
    StepId.RESIDENCE_HISTORY: 'residenceHistory',
    StepId.EMPLOYMENT_HISTORY: 'employmentHistory',
    StepId.EDUCATION: 'education',
    StepId.PROFESSIONAL_LICENSES: 'professionalLicenses',
}

# --- PDF layout (A4, points) ---
PAGE_WIDTH: float = 595
PAGE_HEIGHT: float = 842
MARGIN: float = 56
FONT_NAME: str = 'helv'
FONT_SIZE: int = 10
TITLE_SIZE: int = 16
LINE_HEIGHT: float = 15
MAX_LINE_CHARS: int = 95


class DocumentError(ValueError):
    """The form state is not ready to be turned into a document."""

# ===================================================================
# 1. JSON DOCUMENT
# ===================================================================

def generate_json_document(state: FormState, tracking_id: str, now: datetime | None = None) -> dict[str, Any]:
    submitted_at = now or datetime.now(timezone.utc)
    document: dict[str, Any] = {
        'metadata': {
            'trackingId': tracking_id,
            'submissionDate': submitted_at.isoformat(),
            'version': DOCUMENT_VERSION,
        },
        'personalInfo': _extract_personal_info(state),
        'timeline': _extract_timeline(state),
        'signature': _extract_signature(state, submitted_at),
    }
    consents = _extract_consents(state)
    if consents:
        document['consents'] = consents
    logger.info(f"Generated JSON document for tracking id '{tracking_id}'.")
    return document

def _extract_personal_info(state: FormState) -> PersonalInfoValues:
    step = state.steps.get(StepId.PERSONAL_INFO)
    return dict(step.values) if step else {}

def _extract_consents(state: FormState) -> ConsentsValues:
    step = state.steps.get(StepId.CONSENTS)
    if not step:
        return {}
    return {key: value for key, value in step.values.items() if isinstance(value, bool)}

def _extract_timeline(state: FormState) -> dict[str, list[TimelineEntry]]:
    timeline: dict[str, list[TimelineEntry]] = {}
    for step_id, section in TIMELINE_SECTIONS.items():
        step = state.steps.get(step_id)
        if step and isinstance(step.values.get(ENTRIES_KEY), list):
            timeline[section] = list(step.values[ENTRIES_KEY])
    return timeline

def _extract_signature(state: FormState, signed_at: datetime) -> dict[str, Any]:
    step = state.steps.get(StepId.SIGNATURE)
    if step is None:
        raise DocumentError("Signature step is missing from the form state.")
    if not step.is_complete:
        raise DocumentError("Signature step is not complete.")
    value = step.values.get('signature', step.values.get('confirmation'))
    return {
        'value': value,
        'signatureDate': step.values.get('signatureDate') or signed_at.date().isoformat(),
    }

# ===================================================================
# 2. PDF SUMMARY
# ===================================================================

def summary_lines(state: FormState) -> list[tuple[str, bool]]:
    """(text, is_heading) pairs in the order they are printed."""
    lines: list[tuple[str, bool]] = []
    for step_id, step in state.steps.items():
        lines.append((STEP_TITLES[step_id], True))
        if not step.values:
            lines.append(("No information provided.", False))
        for key, value in step.values.items():
            if key == ENTRIES_KEY and isinstance(value, list):
                lines.append((f"{len(value)} entries:", False))
                for entry in value:
                    lines.append(("  - " + _format_entry(entry), False))
            elif key == TOTAL_YEARS_KEY:
                lines.append((f"Years covered: {value}", False))
            elif key == 'signature' and isinstance(value, str) and value.startswith('data:'):
                lines.append(("signature: [signed]", False))
            else:
                lines.append((f"{key}: {_format_scalar(value)}", False))
    return lines

def render_summary_pdf(state: FormState, tracking_id: str) -> bytes:
    """Renders the state as a text PDF using PyMuPDF and returns the bytes."""
    doc = fitz.open()
    try:
        page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        page.insert_text((MARGIN, MARGIN), "Verification Summary", fontname=FONT_NAME, fontsize=TITLE_SIZE)
        y_pos = MARGIN + 2 * LINE_HEIGHT
        page.insert_text((MARGIN, y_pos), f"Tracking ID: {tracking_id}", fontname=FONT_NAME, fontsize=FONT_SIZE)
        y_pos += 2 * LINE_HEIGHT

        for text, is_heading in summary_lines(state):
            if is_heading:
                y_pos += LINE_HEIGHT / 2
            if y_pos > PAGE_HEIGHT - MARGIN:
                page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                y_pos = MARGIN
            size = FONT_SIZE + 2 if is_heading else FONT_SIZE
            page.insert_text((MARGIN, y_pos), _truncate(text), fontname=FONT_NAME, fontsize=size)
            y_pos += LINE_HEIGHT

        pdf_bytes = doc.tobytes(garbage=4, deflate=True, clean=True)
    finally:
        doc.close()
    logger.info(f"Rendered {len(pdf_bytes)} byte summary PDF for tracking id '{tracking_id}'.")
    return pdf_bytes

def _format_entry(entry: Any) -> str:
    if not isinstance(entry, dict):
        return str(entry)
    end = 'present' if entry.get('isCurrent') else entry.get('endDate', '')
    details = ', '.join(
        f"{k}: {_format_scalar(v)}" for k, v in entry.items()
        if k not in ('startDate', 'endDate', 'isCurrent', 'id')
    )
    period = f"{entry.get('startDate', '')} to {end}"
    return f"{period} | {details}" if details else period

def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if value is None:
        return ''
    return str(value)

def _truncate(text: str) -> str:
    return text if len(text) <= MAX_LINE_CHARS else text[:MAX_LINE_CHARS - 3] + '...'
