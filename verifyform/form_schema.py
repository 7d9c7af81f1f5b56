# verifyform/form_schema.py
from __future__ import annotations
from typing import Any, TypedDict, TypeAlias
from dataclasses import dataclass, field, replace
from enum import Enum

from .options import consent_labels, education_levels
from .validation import (
    RuleType, ValidationRule, ValidatorFunc, build_validator,
    EMAIL_PATTERN, PHONE_PATTERN,
)

# ===================================================================
# 1. STEP IDENTIFIERS
# ===================================================================

class StepId(str, Enum):
    PERSONAL_INFO = 'personal-info'
    CONSENTS = 'consents'
    RESIDENCE_HISTORY = 'residence-history'
    EMPLOYMENT_HISTORY = 'employment-history'
    EDUCATION = 'education'
    PROFESSIONAL_LICENSES = 'professional-licenses'
    SIGNATURE = 'signature'

# Canonical order; generated configs never reorder it.
STEP_ORDER: tuple[StepId, ...] = (
    StepId.PERSONAL_INFO,
    StepId.CONSENTS,
    StepId.RESIDENCE_HISTORY,
    StepId.EMPLOYMENT_HISTORY,
    StepId.EDUCATION,
    StepId.PROFESSIONAL_LICENSES,
    StepId.SIGNATURE,
)

STEP_TITLES: dict[StepId, str] = {
    StepId.PERSONAL_INFO: 'Personal Information',
    StepId.CONSENTS: 'Required Consents',
    StepId.RESIDENCE_HISTORY: 'Residence History',
    StepId.EMPLOYMENT_HISTORY: 'Employment History',
    StepId.EDUCATION: 'Education',
    StepId.PROFESSIONAL_LICENSES: 'Professional Licenses',
    StepId.SIGNATURE: 'Review & Sign',
}

TIMELINE_STEPS: frozenset[StepId] = frozenset({StepId.RESIDENCE_HISTORY, StepId.EMPLOYMENT_HISTORY})

# Reserved error key for insufficient timeline coverage.
TIMELINE_ERROR_KEY: str = '_timeline'
ENTRIES_KEY: str = 'entries'
TOTAL_YEARS_KEY: str = 'totalYears'

# ===================================================================
# 2. FIELD, STEP & CONFIG STRUCTURES
# ===================================================================

@dataclass(frozen=True)
class FormField:
    """Defines everything about a form field in one place."""
    id: str
    label: str
    type: str = 'text'
    required: bool = False
    validation: tuple[ValidationRule, ...] = ()
    options: dict[str, str] | None = None

    def validators(self) -> list[ValidatorFunc]:
        return [build_validator(rule) for rule in self.validation]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'id': self.id, 'type': self.type, 'label': self.label, 'required': self.required,
            'validation': [rule.to_dict() for rule in self.validation],
        }
        if self.options is not None:
            data['options'] = dict(self.options)
        return data

@dataclass(frozen=True)
class ValidationRules:
    required_years: int | None = None
    required_employers: int | None = None
    required_verifications: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.required_years is not None:
            data['requiredYears'] = self.required_years
        if self.required_employers is not None:
            data['requiredEmployers'] = self.required_employers
        if self.required_verifications:
            data['requiredVerifications'] = list(self.required_verifications)
        return data

@dataclass(frozen=True)
class FormStep:
    id: StepId
    title: str
    order: int
    enabled: bool = True
    required: bool = True
    fields: tuple[FormField, ...] = ()
    validation_rules: ValidationRules | None = None

    def get_field(self, field_id: str) -> FormField | None:
        return next((f for f in self.fields if f.id == field_id), None)

    def with_order(self, order: int) -> FormStep:
        return replace(self, order=order)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'id': self.id.value, 'title': self.title, 'enabled': self.enabled,
            'required': self.required, 'order': self.order,
            'fields': [f.to_dict() for f in self.fields],
        }
        if self.validation_rules is not None:
            data['validationRules'] = self.validation_rules.to_dict()
        return data

@dataclass(frozen=True)
class NavigationPolicy:
    allow_skip: bool = False
    allow_previous: bool = True
    required_steps: tuple[StepId, ...] = ()

@dataclass(frozen=True)
class FormConfig:
    steps: tuple[FormStep, ...]
    initial_step: StepId
    navigation: NavigationPolicy = field(default_factory=NavigationPolicy)

    def get_step(self, step_id: StepId | str) -> FormStep | None:
        return next((s for s in self.steps if s.id == step_id), None)

    def enabled_step_ids(self) -> list[StepId]:
        return [s.id for s in self.steps if s.enabled]

    def to_dict(self) -> dict[str, Any]:
        return {
            'steps': [s.to_dict() for s in self.steps],
            'initialStep': self.initial_step.value,
            'navigation': {
                'allowSkip': self.navigation.allow_skip,
                'allowPrevious': self.navigation.allow_previous,
                'requiredSteps': [s.value for s in self.navigation.required_steps],
            },
        }

# ===================================================================
# 3. THE FIELD REGISTRY (Single Source of Truth)
# ===================================================================

def _rule(rule_type: RuleType, message: str, value: Any = None) -> ValidationRule:
    return ValidationRule(type=rule_type, message=message, value=value)

class FieldSchema:
    """
    Every field any step can show. The config generator picks from here,
    the state manager validates with the rules attached here.
    """
    EMAIL = FormField(id='email', label='Email Address', type='email', required=True, validation=(
        _rule(RuleType.REQUIRED, 'Email is required'),
        _rule(RuleType.PATTERN, 'Invalid email format', EMAIL_PATTERN),
    ))
    PHONE = FormField(id='phone', label='Phone Number', type='tel', required=True, validation=(
        _rule(RuleType.REQUIRED, 'Phone number is required'),
        _rule(RuleType.PATTERN, 'Phone number must be 10 digits', PHONE_PATTERN),
    ))
    FULL_NAME = FormField(id='fullName', label='Full Name', required=True, validation=(
        _rule(RuleType.REQUIRED, 'Full name is required'),
        _rule(RuleType.MIN_LENGTH, 'Name must be at least 2 characters', 2),
        _rule(RuleType.MAX_LENGTH, 'Name must be at most 100 characters', 100),
    ))
    NAME_ALIAS = FormField(id='nameAlias', label='Name Alias', validation=(
        _rule(RuleType.MAX_LENGTH, 'Alias must be at most 100 characters', 100),
    ))

    DRIVER_LICENSE_CONSENT = FormField(id='driverLicenseConsent', label=consent_labels['driverLicenseConsent'], type='checkbox',
                                       required=True, validation=(_rule(RuleType.REQUIRED, 'Driver license consent is required'),))
    DRUG_TEST_CONSENT = FormField(id='drugTestConsent', label=consent_labels['drugTestConsent'], type='checkbox',
                                  required=True, validation=(_rule(RuleType.REQUIRED, 'Drug test consent is required'),))
    BIOMETRIC_CONSENT = FormField(id='biometricConsent', label=consent_labels['biometricConsent'], type='checkbox',
                                  required=True, validation=(_rule(RuleType.REQUIRED, 'Biometric consent is required'),))

    RESIDENCE_ENTRIES = FormField(id=ENTRIES_KEY, label='Residences', type='array', required=True, validation=(
        _rule(RuleType.REQUIRED, 'At least one residence entry is required'),
    ))
    EMPLOYMENT_ENTRIES = FormField(id=ENTRIES_KEY, label='Employers', type='array', required=True, validation=(
        _rule(RuleType.REQUIRED, 'At least one employment entry is required'),
    ))
    HIGHEST_LEVEL = FormField(id='highestLevel', label='Highest Level of Education', type='select', required=True,
                              options=education_levels,
                              validation=(_rule(RuleType.REQUIRED, 'Highest level of education is required'),))
    EDUCATION_ENTRIES = FormField(id=ENTRIES_KEY, label='Schools', type='array')
    LICENSE_ENTRIES = FormField(id=ENTRIES_KEY, label='Licenses', type='array', required=True, validation=(
        _rule(RuleType.REQUIRED, 'At least one professional license is required'),
    ))

    WET_SIGNATURE = FormField(id='signature', label='Digital Signature', type='signature', required=True,
                              validation=(_rule(RuleType.REQUIRED, 'Signature is required'),))
    CHECKBOX_SIGNATURE = FormField(id='confirmation', label='Signature Acknowledgment', type='checkbox', required=True,
                                   validation=(_rule(RuleType.REQUIRED, 'Signature is required'),))

    @classmethod
    def get_all_fields(cls) -> list[FormField]:
        return [
            field_instance for field_instance in cls.__dict__.values()
            if isinstance(field_instance, FormField)
        ]

# ===================================================================
# 4. STEP VALUE RECORDS
# ===================================================================
# What the UI layer stores under each step. Keys are the field ids above.

class TimelineEntry(TypedDict):
    startDate: str
    endDate: str | None
    isCurrent: bool

class PersonalInfoValues(TypedDict, total=False):
    email: str
    phone: str
    fullName: str
    nameAlias: str

class ConsentsValues(TypedDict, total=False):
    driverLicenseConsent: bool
    drugTestConsent: bool
    biometricConsent: bool

class TimelineValues(TypedDict, total=False):
    entries: list[dict[str, Any]]
    totalYears: float

class EducationValues(TypedDict, total=False):
    highestLevel: str
    entries: list[dict[str, Any]]

class LicenseValues(TypedDict, total=False):
    entries: list[dict[str, Any]]

class SignatureValues(TypedDict, total=False):
    signature: str
    confirmation: bool
    signatureDate: str

StepValues: TypeAlias = (
    PersonalInfoValues | ConsentsValues | TimelineValues | EducationValues | LicenseValues | SignatureValues
)

FormValue: TypeAlias = str | int | float | bool | list[dict[str, Any]] | dict[str, Any] | None
