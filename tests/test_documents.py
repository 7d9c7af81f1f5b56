# tests/test_documents.py
from __future__ import annotations

import sys
from pathlib import Path
from datetime import datetime, timezone

import fitz
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from verifyform.config_generator import generate
from verifyform.documents import DocumentError, generate_json_document, render_summary_pdf, summary_lines
from verifyform.form_schema import StepId
from verifyform.form_state import FormStateManager

SUBMITTED = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

def _completed_manager() -> FormStateManager:
    manager = FormStateManager(generate('en-EM-D-R1-N-N-N-C'), clock=lambda: datetime(2025, 1, 1))
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    manager.set_value(StepId.PERSONAL_INFO, 'email', 'jane@example.com')
    manager.set_value(StepId.CONSENTS, 'driverLicenseConsent', True)
    manager.set_value(StepId.RESIDENCE_HISTORY, 'entries', [
        {'startDate': '2022-01', 'endDate': None, 'isCurrent': True, 'address': '1 Main St', 'city': 'Springfield'},
    ])
    manager.set_value(StepId.SIGNATURE, 'confirmation', True)
    return manager

def test_json_document_structure() -> None:
    document = generate_json_document(_completed_manager().get_state(), 'TRK-1', now=SUBMITTED)

    assert document['metadata'] == {
        'trackingId': 'TRK-1',
        'submissionDate': '2025-01-01T12:00:00+00:00',
        'version': '1.0.0',
    }
    assert document['personalInfo'] == {'fullName': 'Jane Doe', 'email': 'jane@example.com'}
    assert document['consents'] == {'driverLicenseConsent': True}
    assert document['timeline']['residenceHistory'][0]['address'] == '1 Main St'
    assert 'employmentHistory' not in document['timeline'], "Only steps with entries appear"
    assert document['signature'] == {'value': True, 'signatureDate': '2025-01-01'}

def test_json_document_omits_empty_consents() -> None:
    manager = FormStateManager(generate('en-M-N-N-N-N-N-C'))
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    manager.set_value(StepId.SIGNATURE, 'confirmation', True)
    assert 'consents' not in generate_json_document(manager.get_state(), 'TRK-2')

def test_json_document_needs_a_signature() -> None:
    manager = FormStateManager(generate('en-M-N-N-N-N-N-C'))
    manager.set_value(StepId.PERSONAL_INFO, 'fullName', 'Jane Doe')
    with pytest.raises(DocumentError):
        generate_json_document(manager.get_state(), 'TRK-3')

def test_summary_lines() -> None:
    lines = summary_lines(_completed_manager().get_state())
    texts = [text for text, _ in lines]
    headings = [text for text, is_heading in lines if is_heading]

    assert headings == ['Personal Information', 'Required Consents', 'Residence History', 'Review & Sign']
    assert 'fullName: Jane Doe' in texts
    assert 'driverLicenseConsent: Yes' in texts
    assert '1 entries:' in texts
    assert '  - 2022-01 to present | address: 1 Main St, city: Springfield' in texts

def test_wet_signature_image_is_not_printed() -> None:
    manager = FormStateManager(generate('en-N-N-N-N-N-N-W'))
    manager.set_value(StepId.SIGNATURE, 'signature', 'data:image/png;base64,AAAA')
    texts = [text for text, _ in summary_lines(manager.get_state())]
    assert 'signature: [signed]' in texts

def test_render_summary_pdf() -> None:
    pdf_bytes = render_summary_pdf(_completed_manager().get_state(), 'TRK-4')
    assert pdf_bytes.startswith(b'%PDF')

    with fitz.open(stream=pdf_bytes, filetype='pdf') as doc:
        text = doc[0].get_text()
    assert 'Verification Summary' in text
    assert 'TRK-4' in text
    assert 'Jane Doe' in text

def test_long_summaries_span_pages() -> None:
    manager = FormStateManager(generate('en-N-N-N-EN1-N-N-N'), clock=lambda: datetime(2025, 1, 1))
    entries = [
        {'startDate': f"{2000 + i % 20}-01", 'endDate': f"{2000 + i % 20}-06", 'isCurrent': False, 'company': f"Co {i}"}
        for i in range(80)
    ]
    manager.set_value(StepId.EMPLOYMENT_HISTORY, 'entries', entries)
    with fitz.open(stream=render_summary_pdf(manager.get_state(), 'TRK-5'), filetype='pdf') as doc:
        assert doc.page_count > 1
