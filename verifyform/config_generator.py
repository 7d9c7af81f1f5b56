# verifyform/config_generator.py
from __future__ import annotations
import logging
from collections.abc import Callable

from .form_schema import (
    FieldSchema, FormConfig, FormField, FormStep, NavigationPolicy,
    StepId, STEP_ORDER, STEP_TITLES, ValidationRules,
)
from .key_decoder import Requirements, decode
from .options import SignatureMode

logger = logging.getLogger(__name__)

StepBuilder = Callable[[Requirements], FormStep | None]

# ===================================================================
# STEP BUILDERS (one per step kind, None when the step is not needed)
# ===================================================================

def _step(step_id: StepId, fields: list[FormField], rules: ValidationRules | None = None) -> FormStep:
    # Order is assigned once all included steps are known.
    return FormStep(
        id=step_id, title=STEP_TITLES[step_id], order=0,
        enabled=True, required=True, fields=tuple(fields), validation_rules=rules,
    )

def build_personal_info_step(requirements: Requirements) -> FormStep | None:
    personal_info = requirements.verification_steps.personal_info
    if not personal_info.enabled:
        return None
    modes = personal_info.modes
    fields: list[FormField] = []
    if modes.email:
        fields.append(FieldSchema.EMAIL)
    if modes.phone:
        fields.append(FieldSchema.PHONE)
    if modes.full_name:
        fields.append(FieldSchema.FULL_NAME)
    if modes.name_alias:
        fields.append(FieldSchema.NAME_ALIAS)
    return _step(StepId.PERSONAL_INFO, fields)

def build_consents_step(requirements: Requirements) -> FormStep | None:
    consents = requirements.consents_required
    if not consents.any():
        return None
    # Only consents that were asked for get a checkbox.
    fields: list[FormField] = []
    if consents.driver_license:
        fields.append(FieldSchema.DRIVER_LICENSE_CONSENT)
    if consents.drug_test:
        fields.append(FieldSchema.DRUG_TEST_CONSENT)
    if consents.biometric:
        fields.append(FieldSchema.BIOMETRIC_CONSENT)
    return _step(StepId.CONSENTS, fields)

def build_residence_step(requirements: Requirements) -> FormStep | None:
    residence = requirements.verification_steps.residence_history
    if not residence.enabled:
        return None
    return _step(StepId.RESIDENCE_HISTORY, [FieldSchema.RESIDENCE_ENTRIES], ValidationRules(
        required_years=residence.years,
        required_verifications=('address', 'duration'),
    ))

def build_employment_step(requirements: Requirements) -> FormStep | None:
    employment = requirements.verification_steps.employment_history
    if not employment.enabled:
        return None
    verifications = ('company', 'position', 'duration')
    if employment.mode == 'employers':
        rules = ValidationRules(required_employers=employment.employers or 1, required_verifications=verifications)
    else:
        rules = ValidationRules(required_years=employment.years or 1, required_verifications=verifications)
    return _step(StepId.EMPLOYMENT_HISTORY, [FieldSchema.EMPLOYMENT_ENTRIES], rules)

def build_education_step(requirements: Requirements) -> FormStep | None:
    if not requirements.verification_steps.education.enabled:
        return None
    return _step(StepId.EDUCATION, [FieldSchema.HIGHEST_LEVEL, FieldSchema.EDUCATION_ENTRIES])

def build_professional_licenses_step(requirements: Requirements) -> FormStep | None:
    if not requirements.verification_steps.professional_license.enabled:
        return None
    return _step(StepId.PROFESSIONAL_LICENSES, [FieldSchema.LICENSE_ENTRIES])

def build_signature_step(requirements: Requirements) -> FormStep:
    signature = requirements.signature
    fields: list[FormField] = []
    if signature.required:
        fields.append(FieldSchema.WET_SIGNATURE if signature.mode is SignatureMode.WET else FieldSchema.CHECKBOX_SIGNATURE)
    return _step(StepId.SIGNATURE, fields)

STEP_BUILDERS: dict[StepId, StepBuilder] = {
    StepId.PERSONAL_INFO: build_personal_info_step,
    StepId.CONSENTS: build_consents_step,
    StepId.RESIDENCE_HISTORY: build_residence_step,
    StepId.EMPLOYMENT_HISTORY: build_employment_step,
    StepId.EDUCATION: build_education_step,
    StepId.PROFESSIONAL_LICENSES: build_professional_licenses_step,
    StepId.SIGNATURE: build_signature_step,
}

# ===================================================================
# THE GENERATOR
# ===================================================================

def generate(requirements: Requirements | str) -> FormConfig:
    """
    Builds the ordered form for a set of requirements (or a raw key, which
    is decoded first and may raise KeyFormatError). The signature step is
    always present, so the form is never empty.
    """
    if isinstance(requirements, str):
        requirements = decode(requirements)

    steps: list[FormStep] = []
    for step_id in STEP_ORDER:
        step = STEP_BUILDERS[step_id](requirements)
        if step is not None:
            steps.append(step.with_order(len(steps) + 1))

    initial_step = next((s.id for s in steps if s.enabled), StepId.SIGNATURE)
    config = FormConfig(
        steps=tuple(steps),
        initial_step=initial_step,
        navigation=NavigationPolicy(
            allow_skip=False,
            allow_previous=True,
            required_steps=tuple(s.id for s in steps if s.required),
        ),
    )
    logger.debug(f"Generated form config with steps: {[s.id.value for s in steps]}")
    return config
